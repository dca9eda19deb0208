"""
Statement builders for the data operations.

``StatementBuilder`` turns a schema name and open-ended field maps into
``Statement`` objects, running each field through the registered hook first.
The schema name and every field name are bound as identifiers; every value is
bound as a value.
"""

import logging
from collections.abc import Mapping
from typing import Any

from app.core.errors import BuildError, ValidationError
from app.sql.dialects import MySQLDialect, StatementDialect, placeholder
from app.sql.hooks import FieldHooks, resolve_fields
from app.sql.statement import Identifier, Statement
from app.sql.values import BoundValue

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20


def _join_terms(resolved: list[tuple[str, BoundValue]], separator: str) -> tuple[str, list[Any]]:
    """Join ``?? = ?`` terms. Returns ("", []) when nothing survived the hooks."""
    terms = [f"?? = {placeholder(bound)}" for _, bound in resolved]
    args: list[Any] = []
    for key, bound in resolved:
        args.extend((Identifier(key), bound.value))
    return separator.join(terms), args


def _assignments(resolved: list[tuple[str, BoundValue]]) -> tuple[str, list[Any]]:
    return _join_terms(resolved, ", ")


def _predicate(resolved: list[tuple[str, BoundValue]]) -> tuple[str, list[Any]]:
    return _join_terms(resolved, " AND ")


def _check_bound(name: str, value: int | None, *, minimum: int) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", details={name: value})
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", details={name: value})


class StatementBuilder:
    """
    Builds INSERT, UPDATE, DELETE and SELECT statements.

    Example:
        >>> builder = StatementBuilder(MySQLDialect())
        >>> stmt = await builder.insert("users", {"name": "Test_User"})
        >>> stmt.template
        'INSERT INTO ?? SET ?? = ?'
        >>> stmt.args
        [Identifier(name='users'), Identifier(name='name'), 'Test_User']
    """

    def __init__(self, dialect: StatementDialect | None = None, hooks: FieldHooks | None = None):
        """
        Initialize the StatementBuilder.

        Args:
            dialect: Statement dialect (defaults to MySQL)
            hooks: Per-operation field hooks (defaults to none)
        """
        self.dialect = dialect or MySQLDialect()
        self.hooks = hooks or FieldHooks()

    async def insert(self, schema: str, fields: Mapping[str, Any]) -> Statement:
        """
        Build an INSERT statement.

        Fields dropped by the insert hook are omitted. With no fields left the
        statement inserts a row of column defaults.

        Argument order follows the dialect. MySQL alternates identifier and
        value arguments (``t, k1, v1, k2, v2``) to match ``SET ?? = ?, ...``.
        Column-list dialects put every column identifier before the values
        (``t, k1, k2, v1, v2``) to match ``(??, ??) VALUES (?, ?)``.

        Args:
            schema: Table to insert into
            fields: Column name to value

        Returns:
            Statement with ``1 + 2 * len(surviving fields)`` arguments
        """
        resolved = await resolve_fields(self.hooks.insert_field, schema, fields)
        template = self.dialect.insert_template([bound for _, bound in resolved])
        args = self.dialect.order_insert_args(
            [Identifier(key) for key, _ in resolved],
            [bound.value for _, bound in resolved],
        )
        return Statement(template, [Identifier(schema), *args])

    async def update(
        self,
        schema: str,
        fields: Mapping[str, Any],
        where_fields: Mapping[str, Any],
        *,
        allow_unconditional: bool = False,
    ) -> Statement:
        """
        Build an UPDATE statement.

        Args:
            schema: Table to update
            fields: Column name to new value
            where_fields: Column name to value, AND-joined as equality terms
            allow_unconditional: Permit an update with no WHERE terms

        Returns:
            Statement

        Raises:
            BuildError: If no assignments remain, or no WHERE terms remain and
                ``allow_unconditional`` is False
        """
        resolved_set = await resolve_fields(self.hooks.update_field, schema, fields)
        resolved_where = await resolve_fields(self.hooks.update_where_field, schema, where_fields)

        if not resolved_set:
            raise BuildError("Update has no fields to set", details={"schema": schema})

        set_sql, set_args = _assignments(resolved_set)
        where_sql, where_args = _predicate(resolved_where)

        if not where_sql and not allow_unconditional:
            raise BuildError(
                "Update without where fields would affect every row",
                details={"schema": schema},
            )

        template = f"UPDATE ?? SET {set_sql}"
        if where_sql:
            template += f" WHERE {where_sql}"

        return Statement(template, [Identifier(schema), *set_args, *where_args])

    async def delete(
        self,
        schema: str,
        where_fields: Mapping[str, Any] | None,
        *,
        limit: int | None = None,
        allow_unconditional: bool = False,
    ) -> Statement:
        """
        Build a DELETE statement.

        Args:
            schema: Table to delete from
            where_fields: Column name to value, AND-joined as equality terms
            limit: Optional maximum number of rows to delete
            allow_unconditional: Permit a delete with no WHERE terms

        Returns:
            Statement

        Raises:
            BuildError: If no WHERE terms remain without opt-in, or the dialect
                cannot bound a delete
            ValidationError: If limit is not a positive integer
        """
        _check_bound("limit", limit, minimum=1)
        resolved_where = await resolve_fields(
            self.hooks.remove_where_field, schema, where_fields or {}
        )
        where_sql, where_args = _predicate(resolved_where)

        if not where_sql and not allow_unconditional:
            raise BuildError(
                "Delete without where fields would remove every row",
                details={"schema": schema},
            )

        template = "DELETE FROM ??"
        args: list[Any] = [Identifier(schema), *where_args]
        if where_sql:
            template += f" WHERE {where_sql}"

        if limit is not None:
            if not self.dialect.supports_delete_limit:
                raise BuildError(
                    f"Dialect '{self.dialect.name}' does not support DELETE ... LIMIT",
                    details={"schema": schema, "limit": limit},
                )
            template += " LIMIT ?"
            args.append(limit)

        return Statement(template, args)

    async def select(
        self,
        schema: str,
        where_fields: Mapping[str, Any] | None = None,
        *,
        offset: int | None = None,
        limit: int | None = DEFAULT_LIST_LIMIT,
    ) -> Statement:
        """
        Build a SELECT statement for listing rows.

        Args:
            schema: Table to read from
            where_fields: Optional column name to value, AND-joined
            offset: Rows to skip; omitted from the statement when None
            limit: Maximum rows to return; omitted when None

        Returns:
            Statement
        """
        _check_bound("offset", offset, minimum=0)
        _check_bound("limit", limit, minimum=1)

        resolved_where = await resolve_fields(
            self.hooks.list_where_field, schema, where_fields or {}
        )
        where_sql, where_args = _predicate(resolved_where)

        template = "SELECT * FROM ??"
        args: list[Any] = [Identifier(schema), *where_args]
        if where_sql:
            template += f" WHERE {where_sql}"

        if limit is not None:
            template += " LIMIT ?"
            args.append(limit)

        if offset is not None:
            if limit is None:
                raise ValidationError("offset requires a limit", details={"offset": offset})
            template += " OFFSET ?"
            args.append(offset)

        return Statement(template, args)
