"""
SQL statement building for the data route.

Provides injection-safe statement construction over arbitrary schemas:
identifier/value binding, per-field hooks, dialect-specific statement shapes
and redaction of sensitive result fields.
"""

from app.sql.builders import DEFAULT_LIST_LIMIT, StatementBuilder
from app.sql.dialects import ANSIDialect, MySQLDialect, StatementDialect, dialect_for
from app.sql.hooks import FieldHook, FieldHooks, resolve_fields
from app.sql.redaction import DEFAULT_SENSITIVE_FIELDS, RedactionFilter
from app.sql.statement import Identifier, Statement, quote_identifier
from app.sql.values import DROP, RawValue, WrappedValue

__all__ = [
    "ANSIDialect",
    "DEFAULT_LIST_LIMIT",
    "DEFAULT_SENSITIVE_FIELDS",
    "DROP",
    "FieldHook",
    "FieldHooks",
    "Identifier",
    "MySQLDialect",
    "RawValue",
    "RedactionFilter",
    "Statement",
    "StatementBuilder",
    "StatementDialect",
    "WrappedValue",
    "dialect_for",
    "quote_identifier",
    "resolve_fields",
]
