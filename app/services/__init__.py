"""
Services package for the Data Route API.

Contains the data service that turns add/edit/remove/list calls into
single built statements against the configured database.
"""

from app.services.data_service import DataPolicy, DataService

__all__ = ["DataPolicy", "DataService"]
