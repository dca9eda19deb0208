"""
Data service: add, edit, remove and list over any schema.

Glues the statement builder, the database handle and the result filter
together, and applies the configured pagination and safety policy. Each call
builds and executes exactly one statement; there is no retry and no
transaction across calls.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from app.core.config import Settings
from app.core.errors import ValidationError
from app.core.observability import get_region, metrics
from app.db.database import Database, RegisterCallback
from app.sql.builders import DEFAULT_LIST_LIMIT, StatementBuilder
from app.sql.dialects import dialect_for
from app.sql.hooks import FieldHooks
from app.sql.redaction import DEFAULT_SENSITIVE_FIELDS, RedactionFilter, ResultFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataPolicy:
    """Defaults and safety switches for the data operations."""

    list_default_limit: int = DEFAULT_LIST_LIMIT
    list_default_offset: int | None = None
    remove_default_limit: int | None = None
    allow_unconditional_update: bool = False
    allow_unconditional_delete: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataPolicy":
        return cls(
            list_default_limit=settings.data_list_default_limit,
            list_default_offset=settings.data_list_default_offset,
            remove_default_limit=settings.data_remove_default_limit,
            allow_unconditional_update=settings.data_allow_unconditional_update,
            allow_unconditional_delete=settings.data_allow_unconditional_delete,
        )


def _require_schema(schema: Any) -> str:
    if not isinstance(schema, str) or not schema.strip():
        raise ValidationError("Missing required parameter: schema", details={"parameter": "schema"})
    return schema


def _require_mapping(name: str, value: Any, *, required: bool = True) -> Mapping[str, Any]:
    if value is None:
        if required:
            raise ValidationError(f"Missing required parameter: {name}", details={"parameter": name})
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"{name} must be a key/value object", details={"parameter": name}
        )
    return value


class DataService:
    """
    Generic data access over arbitrary schemas.

    Hooks, redaction and policy are fixed at construction time and shared by
    all concurrent calls; every call builds its own statement.
    """

    def __init__(
        self,
        database: Database,
        *,
        hooks: FieldHooks | None = None,
        result_filter: ResultFilter | None = None,
        policy: DataPolicy | None = None,
    ) -> None:
        """
        Initialize the data service.

        Args:
            database: Handle used to execute statements
            hooks: Per-operation field hooks (none by default)
            result_filter: Post-processing for list rows (redacts the default
                sensitive fields when None)
            policy: Pagination defaults and unconditional-mutation switches
        """
        self.database = database
        self.builder = StatementBuilder(dialect_for(database.dialect.name), hooks)
        self.result_filter = result_filter or RedactionFilter(DEFAULT_SENSITIVE_FIELDS)
        self.policy = policy or DataPolicy()

    @contextmanager
    def _track(self, operation: str, schema: str) -> Iterator[None]:
        region = get_region() or "unknown"
        try:
            yield
        except Exception as exc:
            metrics.data_operations_total.labels(
                operation=operation, outcome="error", region=region
            ).inc()
            logger.info(
                f"Data {operation} failed: {exc}",
                extra={"operation": operation, "schema": schema, "error_type": type(exc).__name__},
            )
            raise
        metrics.data_operations_total.labels(
            operation=operation, outcome="success", region=region
        ).inc()

    async def register(self, on_register: RegisterCallback | None) -> None:
        """Run a one-off startup callback (table creation, seed rows) against the database."""
        if on_register is None:
            return
        logger.info("Running data route registration callback")
        await on_register(self.database)

    async def add(self, schema: str, fields: Mapping[str, Any]) -> bool:
        """
        Insert one row.

        Args:
            schema: Table name
            fields: Column name to value

        Returns:
            True on success

        Raises:
            ValidationError: If schema or fields are missing
            ExecutionError: If the database rejects the statement
        """
        schema = _require_schema(schema)
        fields = _require_mapping("fields", fields)

        with self._track("add", schema):
            statement = await self.builder.insert(schema, fields)
            result = await self.database.execute(statement, operation="add")

        logger.info(
            f"Added row to {schema}",
            extra={"operation": "add", "schema": schema, "rowcount": result.rowcount},
        )
        return True

    async def edit(
        self,
        schema: str,
        where_fields: Mapping[str, Any],
        fields: Mapping[str, Any],
        *,
        unconditional: bool = False,
    ) -> bool:
        """
        Update rows matching every where field.

        An empty where clause is refused unless both the policy and the caller
        allow it.

        Args:
            schema: Table name
            where_fields: Column name to value to match
            fields: Column name to new value
            unconditional: Caller opt-in for an update without where fields

        Returns:
            True on success

        Raises:
            ValidationError: If a required parameter is missing
            BuildError: If nothing is left to set, or the update would be unconditional
            ExecutionError: If the database rejects the statement
        """
        schema = _require_schema(schema)
        where_fields = _require_mapping("whereFields", where_fields)
        fields = _require_mapping("fields", fields)
        allow = unconditional and self.policy.allow_unconditional_update

        with self._track("edit", schema):
            statement = await self.builder.update(
                schema, fields, where_fields, allow_unconditional=allow
            )
            result = await self.database.execute(statement, operation="edit")

        logger.info(
            f"Edited rows in {schema}",
            extra={"operation": "edit", "schema": schema, "rowcount": result.rowcount},
        )
        return True

    async def remove(
        self,
        schema: str,
        where_fields: Mapping[str, Any] | None = None,
        *,
        limit: int | None = None,
        unconditional: bool = False,
    ) -> bool:
        """
        Delete rows matching every where field.

        Args:
            schema: Table name
            where_fields: Column name to value to match
            limit: Maximum rows to delete (falls back to the policy default)
            unconditional: Caller opt-in for a delete without where fields

        Returns:
            True on success

        Raises:
            ValidationError: If schema is missing or limit is invalid
            BuildError: If the delete would be unconditional, or the dialect
                cannot bound it
            ExecutionError: If the database rejects the statement
        """
        schema = _require_schema(schema)
        where_fields = _require_mapping("whereFields", where_fields, required=False)
        allow = unconditional and self.policy.allow_unconditional_delete
        if limit is None:
            limit = self.policy.remove_default_limit

        with self._track("remove", schema):
            statement = await self.builder.delete(
                schema, where_fields, limit=limit, allow_unconditional=allow
            )
            result = await self.database.execute(statement, operation="remove")

        logger.info(
            f"Removed rows from {schema}",
            extra={"operation": "remove", "schema": schema, "rowcount": result.rowcount},
        )
        return True

    async def list_rows(
        self,
        schema: str,
        where_fields: Mapping[str, Any] | None = None,
        *,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List rows matching every where field, with sensitive fields removed.

        Args:
            schema: Table name
            where_fields: Column name to value to match
            offset: Rows to skip (falls back to the policy default, which may be None)
            limit: Maximum rows (falls back to the policy default, 20 unless configured)

        Returns:
            Rows in database order, after the result filter ran

        Raises:
            ValidationError: If schema is missing or offset/limit are invalid
            ExecutionError: If the database rejects the statement
        """
        schema = _require_schema(schema)
        where_fields = _require_mapping("whereFields", where_fields, required=False)
        if offset is None:
            offset = self.policy.list_default_offset
        if limit is None:
            limit = self.policy.list_default_limit

        with self._track("list", schema):
            statement = await self.builder.select(
                schema, where_fields, offset=offset, limit=limit
            )
            result = await self.database.execute(statement, operation="list")

        region = get_region() or "unknown"
        before = sum(len(row) for row in result.rows)
        rows = self.result_filter(result.rows)
        redacted = before - sum(len(row) for row in rows)
        if redacted:
            metrics.data_fields_redacted_total.labels(region=region).inc(redacted)
        metrics.data_rows_returned.labels(region=region).observe(len(rows))

        logger.debug(
            f"Listed {len(rows)} rows from {schema}",
            extra={"operation": "list", "schema": schema, "count": len(rows), "redacted": redacted},
        )
        return rows
