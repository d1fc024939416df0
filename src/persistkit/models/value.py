"""Generic value union for bound parameters and result columns."""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import StrEnum

SQLValue = int | float | str | bytes | None

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(StrEnum):
    """Storage classes understood by the engine's bind and column machinery."""

    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    REAL = "real"
    TEXT = "text"
    BLOB = "blob"
    NULL = "null"


def _integer_kind(value: int) -> ValueKind:
    if INT32_MIN <= value <= INT32_MAX:
        return ValueKind.INTEGER
    if INT64_MIN <= value <= INT64_MAX:
        return ValueKind.BIG_INTEGER
    raise ValueError(f"integer {value} does not fit in 64 bits")


@dataclass(frozen=True, slots=True)
class Value:
    """A single tagged value.

    Build one explicitly with the named constructors, or let
    :meth:`coerce` pick the kind for a plain Python object.
    """

    kind: ValueKind
    payload: SQLValue = None

    @classmethod
    def integer(cls, value: int) -> Value:
        """A 32-bit signed integer."""
        if not INT32_MIN <= value <= INT32_MAX:
            raise ValueError(f"integer {value} does not fit in 32 bits")
        return cls(ValueKind.INTEGER, int(value))

    @classmethod
    def big_integer(cls, value: int) -> Value:
        """A 64-bit signed integer."""
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"integer {value} does not fit in 64 bits")
        return cls(ValueKind.BIG_INTEGER, int(value))

    @classmethod
    def real(cls, value: float) -> Value:
        return cls(ValueKind.REAL, float(value))

    @classmethod
    def text(cls, value: str) -> Value:
        """UTF-8 text. Strings with lone surrogates are rejected up front."""
        value.encode("utf-8")
        return cls(ValueKind.TEXT, value)

    @classmethod
    def blob(cls, value: bytes | bytearray | memoryview) -> Value:
        """Binary data, copied so later mutation of the source has no effect."""
        return cls(ValueKind.BLOB, bytes(value))

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def coerce(cls, obj: object) -> Value:
        """Convert a caller-supplied object to a Value.

        Raises TypeError for objects with no storage class and ValueError for
        integers wider than 64 bits or text that cannot be encoded.
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        # bool is an Integral; it binds as 0/1
        if isinstance(obj, numbers.Integral):
            value = int(obj)
            if _integer_kind(value) is ValueKind.INTEGER:
                return cls.integer(value)
            return cls.big_integer(value)
        if isinstance(obj, numbers.Real):
            return cls.real(float(obj))
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, bytes | bytearray | memoryview):
            return cls.blob(obj)
        raise TypeError(f"cannot bind value of type {type(obj).__name__!r}")

    def to_sqlite(self) -> SQLValue:
        """Return the payload in the form the sqlite3 module binds."""
        return self.payload


def kind_of(value: SQLValue) -> ValueKind:
    """Classify a column value read back from the engine."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, int):
        return _integer_kind(value)
    if isinstance(value, float):
        return ValueKind.REAL
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, bytes):
        return ValueKind.BLOB
    raise TypeError(f"unexpected column value of type {type(value).__name__!r}")
