"""
Domain-specific exceptions for the Data Route API.

These exceptions represent request, statement-building and execution
failures and are mapped to HTTP status codes in the API layer.
"""

from typing import Any


class DataRouteError(Exception):
    """Base exception for all data route errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(DataRouteError):
    """
    Raised when request input is missing or unusable.

    Examples:
    - Required parameter missing (schema, fields, whereFields)
    - Empty or malformed identifier
    - Negative offset or non-positive limit
    - Raw SQL fragments supplied by the caller

    HTTP Status: 400 Bad Request
    """

    pass


class BuildError(DataRouteError):
    """
    Raised when a statement cannot be assembled under the active policy.

    Examples:
    - Update with no assignments left after hooks ran
    - Unconditional update/delete without an explicit opt-in
    - Clause not supported by the configured dialect
    - Placeholder/argument mismatch in a statement template

    HTTP Status: 422 Unprocessable Entity
    """

    pass


class ExecutionError(DataRouteError):
    """
    Raised when the database driver reports a failure.

    The driver's message is propagated unchanged. No retry is attempted.

    Examples:
    - Constraint violation
    - Unknown table or column
    - Lost connection

    HTTP Status: 500 Internal Server Error
    """

    pass


# HTTP Status Code Mapping
ERROR_STATUS_MAP = {
    ValidationError: 400,
    BuildError: 422,
    ExecutionError: 500,
}


def get_status_code(error: Exception) -> int:
    """
    Get the HTTP status code for a given exception.

    Args:
        error: The exception instance

    Returns:
        HTTP status code (defaults to 500 for unknown errors)
    """
    return ERROR_STATUS_MAP.get(type(error), 500)
