"""
Tagged bind values: the closed set of storage types a parameter can be bound as.

Values are either constructed explicitly (``BindValue.integer("5")`` coerces)
or inferred once at the boundary with ``infer_bind_value``. Composite values
(lists, tuples, sets, dicts) are never bindable.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, NamedTuple


class ParamTypeError(ValueError):
    """Raised when a parameter value cannot be bound as the requested type."""

    pass


class BindKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    TEXT = "text"


_COMPOSITE_TYPES = (list, tuple, set, frozenset, Mapping)


def is_composite(value: Any) -> bool:
    return isinstance(value, _COMPOSITE_TYPES)


def _coerce_text(value: Any) -> str | bytes:
    if value is None:
        raise ParamTypeError("Value is empty")
    if is_composite(value):
        raise ParamTypeError(f"Expected scalar, got: {type(value).__name__}")
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    return str(value)


def _coerce_integer(value: Any) -> int:
    if value is None:
        raise ParamTypeError("Value is empty")
    if isinstance(value, bool):
        raise ParamTypeError("Boolean not allowed for integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ParamTypeError(f"Expected integer, got float: {value}")
        return int(value)
    s = str(value).strip()
    if not s:
        raise ParamTypeError("Value is empty")
    try:
        x = float(s)
    except ValueError as e:
        raise ParamTypeError(f"Invalid integer: {s!r}") from e
    if not x.is_integer():
        raise ParamTypeError(f"Expected integer, got: {s!r}")
    return int(x)


def _coerce_boolean(value: Any) -> bool:
    if value is None:
        raise ParamTypeError("Value is empty")
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 0:
            return False
        if value == 1:
            return True
        raise ParamTypeError(f"Expected boolean, got integer: {value}")
    s = str(value).strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    raise ParamTypeError(f"Expected boolean (true/false, 1/0, yes/no), got: {value!r}")


class BindValue(NamedTuple):
    kind: BindKind
    value: Any

    @classmethod
    def null(cls) -> BindValue:
        return cls(BindKind.NULL, None)

    @classmethod
    def boolean(cls, value: Any) -> BindValue:
        return cls(BindKind.BOOLEAN, _coerce_boolean(value))

    @classmethod
    def integer(cls, value: Any) -> BindValue:
        return cls(BindKind.INTEGER, _coerce_integer(value))

    @classmethod
    def text(cls, value: Any) -> BindValue:
        return cls(BindKind.TEXT, _coerce_text(value))

    def matches_kind(self) -> bool:
        """True if ``value`` is a legal payload for ``kind``."""
        if self.kind is BindKind.NULL:
            return self.value is None
        if self.kind is BindKind.BOOLEAN:
            return isinstance(self.value, bool)
        if self.kind is BindKind.INTEGER:
            return isinstance(self.value, int) and not isinstance(self.value, bool)
        return isinstance(self.value, (str, bytes))


def infer_bind_value(value: Any) -> BindValue:
    """
    Infer the bind kind of a raw parameter: null, boolean, integer, then text.

    Floats, Decimals, dates and other scalars bind as text. Raises
    ParamTypeError for composite values.
    """
    if isinstance(value, BindValue):
        return value
    if value is None:
        return BindValue.null()
    if isinstance(value, bool):
        return BindValue(BindKind.BOOLEAN, value)
    if isinstance(value, int):
        return BindValue(BindKind.INTEGER, value)
    if is_composite(value):
        raise ParamTypeError(f"value is a {type(value).__name__}, not a scalar")
    return BindValue.text(value)
