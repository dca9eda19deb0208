"""
Dialect-specific statement shapes.

Identifier quoting is delegated to SQLAlchemy's dialect (backticks on MySQL,
double quotes elsewhere). What differs per engine, and lives here, is the
shape of a few statements:

- MySQL inserts with ``INSERT INTO t SET col = ?, ...`` and supports
  ``DELETE ... LIMIT``.
- SQLite and PostgreSQL insert with a column list and have no
  ``DELETE ... LIMIT``.
"""

from typing import Any, Protocol

from app.sql.statement import Identifier, escape_fragment
from app.sql.values import BoundValue


def placeholder(bound: BoundValue) -> str:
    """Render the value marker for a bound value, with any wrapping.

    Question marks inside the wrapping fragments stay literal.
    """
    before = escape_fragment(getattr(bound, "before", ""))
    after = escape_fragment(getattr(bound, "after", ""))
    return f"{before}?{after}"


class StatementDialect(Protocol):
    """Protocol for statement dialects."""

    name: str
    supports_delete_limit: bool

    def insert_template(self, assignments: list[BoundValue]) -> str: ...

    def order_insert_args(self, keys: list[Identifier], values: list[Any]) -> list[object]: ...


class MySQLDialect:
    """MySQL/MariaDB statement shapes."""

    name = "mysql"
    supports_delete_limit = True

    def insert_template(self, assignments: list[BoundValue]) -> str:
        if not assignments:
            return "INSERT INTO ?? () VALUES ()"
        sets = ", ".join(f"?? = {placeholder(bound)}" for bound in assignments)
        return f"INSERT INTO ?? SET {sets}"

    def order_insert_args(self, keys: list[Identifier], values: list[Any]) -> list[object]:
        # Identifier and value arguments alternate: key1, value1, key2, value2 ...
        ordered: list[object] = []
        for key, value in zip(keys, values, strict=True):
            ordered.extend((key, value))
        return ordered


class ANSIDialect:
    """Column-list statement shapes for SQLite, PostgreSQL and the like."""

    supports_delete_limit = False

    def __init__(self, name: str = "ansi") -> None:
        self.name = name

    def insert_template(self, assignments: list[BoundValue]) -> str:
        if not assignments:
            return "INSERT INTO ?? DEFAULT VALUES"
        columns = ", ".join("??" for _ in assignments)
        values = ", ".join(placeholder(bound) for bound in assignments)
        return f"INSERT INTO ?? ({columns}) VALUES ({values})"

    def order_insert_args(self, keys: list[Identifier], values: list[Any]) -> list[object]:
        return [*keys, *values]


_MYSQL_FAMILY = {"mysql", "mariadb"}


def dialect_for(name: str) -> StatementDialect:
    """
    Pick the statement dialect for a SQLAlchemy dialect name.

    Args:
        name: ``engine.dialect.name`` (e.g. "mysql", "sqlite", "postgresql")

    Returns:
        Statement dialect instance
    """
    if name in _MYSQL_FAMILY:
        return MySQLDialect()
    return ANSIDialect(name)
