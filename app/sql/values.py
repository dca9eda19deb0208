"""
Bound value variants produced by the field hook pipeline.

A hook may return a plain value (bound as-is), a ``RawValue``, a
``WrappedValue`` carrying literal SQL around the value placeholder, or the
``DROP`` sentinel to omit the field from the statement entirely.
"""

from dataclasses import dataclass
from typing import Any, Final


class _Drop:
    """Marker type for the drop sentinel. Compare with ``is DROP``."""

    def __repr__(self) -> str:
        return "DROP"


DROP: Final = _Drop()


@dataclass(frozen=True, slots=True)
class RawValue:
    """A value bound through a plain ``?`` placeholder."""

    value: Any


@dataclass(frozen=True, slots=True)
class WrappedValue:
    """
    A value bound through ``before ? after``.

    ``before`` and ``after`` are trusted SQL fragments written by server-side
    hooks, e.g. ``WrappedValue(ts, before="FROM_UNIXTIME(", after=")")``.
    They must never be taken from request input. A ``?`` inside a fragment is
    emitted as a literal question mark, not a value marker.
    """

    value: Any
    before: str = ""
    after: str = ""


BoundValue = RawValue | WrappedValue


def to_bound_value(value: Any) -> BoundValue:
    """Normalize a hook result (other than ``DROP``) into a bound value."""
    if isinstance(value, (RawValue, WrappedValue)):
        return value
    return RawValue(value)
