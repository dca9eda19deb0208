"""
Redaction of sensitive fields from rows returned by list.

Rows are plain mappings of column name to value. Any key whose lowercase form
appears in the denylist is removed before the rows leave the service.
"""

from collections.abc import Callable, Iterable, MutableMapping, Sequence
from typing import Any

DEFAULT_SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "passwordsalt",
        "password_salt",
        "passwordhash",
        "password_hash",
        "apikey",
        "api_key",
        "privatekey",
        "private_key",
        "secretkey",
        "secret_key",
    }
)

Row = MutableMapping[str, Any]
ResultFilter = Callable[[list[Row]], list[Row]]


class RedactionFilter:
    """
    Removes denylisted keys from result rows.

    Matching is case-insensitive: ``passwordSalt`` and ``PASSWORD_SALT`` are
    both removed when ``passwordsalt``/``password_salt`` are denylisted.
    """

    def __init__(self, denylist: Iterable[str] = DEFAULT_SENSITIVE_FIELDS) -> None:
        self.denylist = frozenset(name.strip().lower() for name in denylist if name.strip())

    def is_sensitive(self, key: str) -> bool:
        return key.lower() in self.denylist

    def redact_row(self, row: Row) -> Row:
        for key in [k for k in row if self.is_sensitive(k)]:
            del row[key]
        return row

    def apply(self, rows: Sequence[Row]) -> list[Row]:
        """Redact every row in place and return them as a list."""
        return [self.redact_row(row) for row in rows]

    __call__ = apply

    def extended(self, extra: Iterable[str]) -> "RedactionFilter":
        """Return a new filter with additional denylisted names."""
        return RedactionFilter([*self.denylist, *extra])
