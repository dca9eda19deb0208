"""
Per-field hook pipeline.

Each data operation can register a hook that sees every field before it is
placed into a statement. A hook is called as ``hook(schema, key, value)`` and
returns one of:

- the value (or a ``RawValue``) to bind, possibly transformed;
- ``None`` to bind SQL NULL;
- a ``WrappedValue`` to surround the placeholder with trusted SQL;
- ``DROP`` to leave the field out of the statement.

Hooks may be plain functions or coroutines. Without a hook, every field passes
through unchanged.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from app.sql.values import DROP, BoundValue, to_bound_value

logger = logging.getLogger(__name__)

FieldHook = Callable[[str, str, Any], Any | Awaitable[Any]]


def identity_hook(schema: str, key: str, value: Any) -> Any:
    return value


@dataclass(frozen=True)
class FieldHooks:
    """Hooks registered for each operation, fixed once the service is built."""

    insert_field: FieldHook | None = None
    update_field: FieldHook | None = None
    update_where_field: FieldHook | None = None
    remove_where_field: FieldHook | None = None
    list_where_field: FieldHook | None = None


async def resolve_fields(
    hook: FieldHook | None,
    schema: str,
    fields: Mapping[str, Any],
) -> list[tuple[str, BoundValue]]:
    """
    Run every field through a hook and collect what survives.

    Args:
        hook: Registered hook, or None for pass-through
        schema: Schema (table) name the fields belong to
        fields: Field name to raw value, in caller order

    Returns:
        Ordered (key, bound value) pairs, without dropped fields
    """
    hook = hook or identity_hook
    resolved: list[tuple[str, BoundValue]] = []

    for key, value in fields.items():
        result = hook(schema, key, value)
        if inspect.isawaitable(result):
            result = await result

        if result is DROP:
            logger.debug("Hook dropped field", extra={"schema": schema, "field": key})
            continue

        resolved.append((key, to_bound_value(result)))

    return resolved
