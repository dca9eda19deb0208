"""
Pydantic schemas for the data route endpoints.

Request bodies use the camelCase keys clients send (``whereFields``); the
snake_case names are accepted as well.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Keys that would splice literal SQL around a placeholder. Only server-side
# hooks may produce wrapped values.
_WRAPPER_KEYS = ("beginStr", "endStr", "begin_str", "end_str")

# Column values bind as single driver parameters
_SCALAR_TYPES = (str, int, float, bool, type(None))


def require_scalar_values(name: str, values: dict[str, Any]) -> dict[str, Any]:
    """Refuse objects and arrays as column values."""
    for key, value in values.items():
        if not isinstance(value, _SCALAR_TYPES):
            raise ValueError(
                f"{name} entry '{key}' must be a string, number, boolean or null, "
                f"got {type(value).__name__}"
            )
    return values


def unwrap_where_fields(where_fields: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Normalize where entries to plain values.

    An entry is either a raw value or ``{"value": v}``. Objects carrying
    ``beginStr``/``endStr`` are refused, as is any other object shape. The
    unwrapped values must be scalars.
    """
    if where_fields is None:
        return None

    unwrapped: dict[str, Any] = {}
    for key, entry in where_fields.items():
        if isinstance(entry, dict):
            wrappers = [name for name in _WRAPPER_KEYS if name in entry]
            if wrappers:
                raise ValueError(
                    f"where entry '{key}' may not carry {', '.join(wrappers)}"
                )
            if set(entry) != {"value"}:
                raise ValueError(f"where entry '{key}' must be a value or {{\"value\": ...}}")
            unwrapped[key] = entry["value"]
        else:
            unwrapped[key] = entry
    return require_scalar_values("where", unwrapped)


class DataRequest(BaseModel):
    """Fields shared by every data route request."""

    model_config = ConfigDict(populate_by_name=True)

    schema_name: str = Field(
        ...,
        alias="schema",
        min_length=1,
        max_length=255,
        description="Table the operation targets",
        examples=["users"],
    )


class AddRequest(DataRequest):
    """Insert one row."""

    fields: dict[str, Any] = Field(
        ...,
        description="Column name to value, in column order",
        examples=[{"username": "ada", "email": "ada@example.com"}],
    )

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        return require_scalar_values("fields", v)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [{"schema": "users", "fields": {"username": "ada", "age": 36}}]
        },
    )


class EditRequest(DataRequest):
    """Update rows matching every where field."""

    where_fields: dict[str, Any] = Field(
        ...,
        alias="whereFields",
        description="Column name to value (or {\"value\": v}) to match",
        examples=[{"id": 1}],
    )
    fields: dict[str, Any] = Field(
        ...,
        description="Column name to new value",
        examples=[{"email": "ada@example.org"}],
    )
    unconditional: bool = Field(
        default=False,
        description="Allow an update without where fields (server must also allow it)",
    )

    @field_validator("where_fields")
    @classmethod
    def validate_where_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        """Unwrap {"value": v} entries and refuse SQL wrappers."""
        return unwrap_where_fields(v)

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        return require_scalar_values("fields", v)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"schema": "users", "whereFields": {"id": 1}, "fields": {"age": 37}}
            ]
        },
    )


class RemoveRequest(DataRequest):
    """Delete rows matching every where field."""

    where_fields: dict[str, Any] | None = Field(
        default=None,
        alias="whereFields",
        description="Column name to value (or {\"value\": v}) to match",
        examples=[{"id": 1}],
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum rows to delete (MySQL only)",
    )
    unconditional: bool = Field(
        default=False,
        description="Allow a delete without where fields (server must also allow it)",
    )

    @field_validator("where_fields")
    @classmethod
    def validate_where_fields(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        """Unwrap {"value": v} entries and refuse SQL wrappers."""
        return unwrap_where_fields(v)


class ListRequest(DataRequest):
    """List rows matching every where field."""

    where_fields: dict[str, Any] | None = Field(
        default=None,
        alias="whereFields",
        description="Column name to value (or {\"value\": v}) to match",
        examples=[{"username": "ada"}],
    )
    offset: int | None = Field(
        default=None,
        ge=0,
        description="Rows to skip; requires a limit",
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum rows to return (server default when omitted)",
        examples=[20],
    )

    @field_validator("where_fields")
    @classmethod
    def validate_where_fields(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        """Unwrap {"value": v} entries and refuse SQL wrappers."""
        return unwrap_where_fields(v)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"schema": "users", "whereFields": {"age": {"value": 36}}, "limit": 10}
            ]
        },
    )
