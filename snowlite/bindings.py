"""Bind parameter serialization for the SQL API.

Bindings travel as ``{"1": {"type": "FIXED", "value": "10"}, ...}``. Values
are always strings (or null); the service casts them using the type tag.
Temporal values are sent as text and cast implicitly by the service, the
same way it accepts literal strings for DATE/TIME/TIMESTAMP columns.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Union

from .cells import INT128_MAX, INT128_MIN

BindValue = Union[
    None, bool, int, float, Decimal, str, bytes, bytearray,
    datetime.date, datetime.time, datetime.datetime,
]


@dataclass(frozen=True)
class Binding:
    type: str
    value: str | None

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value}


def to_binding(value: BindValue) -> Binding:
    """Convert a Python value into a typed Binding.

    Args:
        value: The value substituted for one ``?`` placeholder

    Returns:
        Binding carrying the wire type tag and stringified value

    Raises:
        OverflowError: If an integer does not fit in 128 bits
        TypeError: If the value's type cannot be bound
    """
    # bool is a subclass of int, so it has to be checked first
    if value is None:
        return Binding("TEXT", None)
    if isinstance(value, bool):
        return Binding("BOOLEAN", "true" if value else "false")
    if isinstance(value, int):
        if not INT128_MIN <= value <= INT128_MAX:
            raise OverflowError(f"Integer binding {value} exceeds 128-bit range")
        return Binding("FIXED", str(value))
    if isinstance(value, float):
        return Binding("REAL", repr(value))
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return Binding("FIXED", str(int(value)))
        return Binding("REAL", str(value))
    if isinstance(value, str):
        return Binding("TEXT", value)
    if isinstance(value, (bytes, bytearray)):
        return Binding("TEXT", bytes(value).hex())
    # datetime is a subclass of date
    if isinstance(value, datetime.datetime):
        return Binding("TEXT", value.isoformat(sep=" "))
    if isinstance(value, (datetime.date, datetime.time)):
        return Binding("TEXT", value.isoformat())
    raise TypeError(f"Cannot bind value of type {type(value).__name__}")


def bindings_to_wire(bindings: Iterable[Binding]) -> dict[str, dict[str, Any]]:
    """Number bindings from 1 in placeholder order."""
    return {str(position): binding.to_wire() for position, binding in enumerate(bindings, start=1)}
