"""
Pydantic schemas for API request/response validation.

This package contains schema definitions for the data route endpoints.
"""

# Re-export schemas for convenient imports.
from .data import AddRequest as AddRequest
from .data import EditRequest as EditRequest
from .data import ListRequest as ListRequest
from .data import RemoveRequest as RemoveRequest
