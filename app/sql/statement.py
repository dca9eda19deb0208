"""
Identifier and parameter binding for dynamically built statements.

A ``Statement`` is a template plus an ordered argument list. The template
uses these markers:

- ``??`` binds the next argument as an identifier (table or column name). The
  argument must be an ``Identifier`` and is quoted by the target dialect.
- ``?`` binds the next argument as a value. The value never enters the SQL
  text; it is handed to the driver as a named bind parameter.
- ``\\?`` is a literal question mark. Trusted fragments spliced into a
  template (see ``escape_fragment``) use it so their own ``?`` characters,
  such as PostgreSQL's jsonb operators, are not read as markers.

Rendering is the only place where caller-controlled names touch SQL text, so
identifier quoting and value binding live here and nowhere else.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.engine import Dialect

from app.core.errors import BuildError, ValidationError

_MARKER_RE = re.compile(r"\\\?|\?\?|\?")
_LITERAL_MARK = "\\?"
_MISSING = object()


@dataclass(frozen=True, slots=True)
class Identifier:
    """A schema, table or column name bound through ``??``."""

    name: str


def quote_identifier(name: str, dialect: Dialect) -> str:
    """
    Quote an identifier for the given dialect.

    Dotted names are split and each part quoted separately, so
    ``"app.users"`` becomes ``app.users`` qualified (```app`.`users``` on
    MySQL). Quote characters inside a part are escaped by the dialect.

    Args:
        name: Raw identifier from the request
        dialect: SQLAlchemy dialect of the target engine

    Returns:
        Quoted identifier text

    Raises:
        ValidationError: If the identifier is empty or contains NUL bytes
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Identifier must be a non-empty string", details={"identifier": name})
    if "\x00" in name:
        raise ValidationError("Identifier contains a NUL character", details={"identifier": name})

    parts = name.split(".")
    if any(not part.strip() for part in parts):
        raise ValidationError("Identifier has an empty component", details={"identifier": name})

    preparer = dialect.identifier_preparer
    return ".".join(preparer.quote_identifier(part) for part in parts)


def escape_fragment(fragment: str) -> str:
    """Mark every ``?`` in a trusted SQL fragment as a literal question mark."""
    return fragment.replace("?", _LITERAL_MARK)


def _escape_colons(fragment: str) -> str:
    # text() treats ":word" as a bind parameter; "\:" is a literal colon.
    return fragment.replace(":", "\\:")


@dataclass(slots=True)
class Statement:
    """A SQL template with ``??``/``?`` markers and its ordered arguments."""

    template: str
    args: list[Any] = field(default_factory=list)

    @property
    def identifier_count(self) -> int:
        return sum(1 for arg in self.args if isinstance(arg, Identifier))

    @property
    def value_count(self) -> int:
        return sum(1 for arg in self.args if not isinstance(arg, Identifier))

    @property
    def values(self) -> list[Any]:
        """Value arguments in bind order."""
        return [arg for arg in self.args if not isinstance(arg, Identifier)]

    def render(self, dialect: Dialect) -> tuple[str, dict[str, Any]]:
        """
        Render the template into executable SQL text and bind parameters.

        Args:
            dialect: SQLAlchemy dialect used to quote identifiers

        Returns:
            Tuple of (SQL text for ``sqlalchemy.text``, bind parameter dict)

        Raises:
            BuildError: If markers and arguments do not line up
        """
        parts: list[str] = []
        params: dict[str, Any] = {}
        args = iter(self.args)
        position = 0

        for match in _MARKER_RE.finditer(self.template):
            literal = self.template[position : match.start()]
            if parts and parts[-1].startswith(":") and literal[:1].isalnum():
                # Keep a bind name from running into a following word.
                literal = " " + literal
            parts.append(_escape_colons(literal))
            position = match.end()

            if match.group() == _LITERAL_MARK:
                parts.append("?")
                continue

            arg = next(args, _MISSING)
            if arg is _MISSING:
                raise BuildError(
                    "Statement has more placeholders than arguments",
                    details={"template": self.template},
                )

            if match.group() == "??":
                if not isinstance(arg, Identifier):
                    raise BuildError(
                        "Identifier placeholder received a value argument",
                        details={"template": self.template, "position": match.start()},
                    )
                parts.append(_escape_colons(quote_identifier(arg.name, dialect)))
            else:
                if isinstance(arg, Identifier):
                    raise BuildError(
                        "Value placeholder received an identifier argument",
                        details={"template": self.template, "position": match.start()},
                    )
                bind_name = f"p{len(params)}"
                params[bind_name] = arg
                parts.append(f":{bind_name}")

        tail = self.template[position:]
        if parts and parts[-1].startswith(":") and tail[:1].isalnum():
            tail = " " + tail
        parts.append(_escape_colons(tail))

        if next(args, _MISSING) is not _MISSING:
            raise BuildError(
                "Statement has more arguments than placeholders",
                details={"template": self.template},
            )

        return "".join(parts), params

    def to_clause(self, dialect: Dialect) -> tuple[TextClause, dict[str, Any]]:
        """Render into a ``TextClause`` ready for ``Connection.execute``."""
        sql, params = self.render(dialect)
        return text(sql), params
