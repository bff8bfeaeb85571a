"""Typed cell values decoded from SQL API result data.

The SQL API returns every cell as a string (or null). ``decode`` turns one of
those strings into a ``Cell`` using the column's wire type. Numeric decisions
are made per cell: a ``fixed`` column can yield ``INT`` for one row and
``FLOAT`` for another.
"""

from __future__ import annotations

import datetime
import math
import re
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import DecodeError, UnsupportedTypeError
from .rowtype import Column, ColumnType

INT128_MIN = -(2**127)
INT128_MAX = 2**127 - 1

# Largest magnitude a JSON consumer can hold exactly in an IEEE double
JSON_SAFE_INT = 2**53

EPOCH = datetime.datetime(1970, 1, 1)
EPOCH_DATE = datetime.date(1970, 1, 1)

_INTEGRAL = re.compile(r"^[+-]?\d+(\.0*)?$")
_TZ_OFFSET_BIAS = 1440


class CellKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INT = "int"
    FLOAT = "float"
    VARCHAR = "varchar"
    BINARY = "binary"
    DATE = "date"
    TIME = "time"
    TIMESTAMP_NTZ = "timestamp_ntz"
    TIMESTAMP_LTZ = "timestamp_ltz"


@dataclass(frozen=True, slots=True)
class Cell:
    """A single decoded value tagged with its kind.

    ``value`` holds the Python representation: ``None``, ``bool``, ``int``,
    ``float``, ``str``, ``bytes``, ``date``, ``time``, or ``datetime``
    (naive for TIMESTAMP_NTZ, fixed-offset aware for TIMESTAMP_LTZ).
    """

    kind: CellKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL

    def to_json(self) -> Any:
        """Map the cell to its natural JSON-compatible value.

        Integers beyond 2**53 become strings so JavaScript consumers do not
        lose digits; non-finite floats become their textual names.
        """
        kind, value = self.kind, self.value
        if kind is CellKind.NULL:
            return None
        if kind is CellKind.INT:
            return value if abs(value) < JSON_SAFE_INT else str(value)
        if kind is CellKind.FLOAT:
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "inf" if value > 0 else "-inf"
            return value
        if kind is CellKind.BINARY:
            return value.hex()
        if kind in (CellKind.DATE, CellKind.TIME, CellKind.TIMESTAMP_NTZ, CellKind.TIMESTAMP_LTZ):
            return value.isoformat()
        return value


NULL = Cell(CellKind.NULL)


def decode(raw: str | None, column: Column) -> Cell:
    """Decode one wire cell into a Cell.

    Args:
        raw: The cell as sent by the service (``None`` for SQL NULL)
        column: The column the cell belongs to

    Returns:
        The decoded Cell

    Raises:
        UnsupportedTypeError: If the column type has no Cell variant
        DecodeError: If the cell is not text or does not parse as the column type
    """
    if raw is None:
        return NULL
    if not isinstance(raw, str):
        raise DecodeError(column.name, raw, "cell is not a string")

    column_type = column.column_type
    decoder = _DECODERS.get(column_type) if column_type is not None else None
    if decoder is None:
        raise UnsupportedTypeError(column.name, column.type)

    try:
        return decoder(raw, column)
    except (ValueError, ArithmeticError) as e:
        raise DecodeError(column.name, raw, str(e)) from e


def _decode_fixed(raw: str, column: Column) -> Cell:
    if column.scale:
        return Cell(CellKind.FLOAT, float(raw))
    text = raw.strip()
    if _INTEGRAL.match(text):
        value = int(text.split(".", 1)[0])
        if INT128_MIN <= value <= INT128_MAX:
            return Cell(CellKind.INT, value)
    return Cell(CellKind.FLOAT, float(text))


def _decode_real(raw: str, column: Column) -> Cell:
    return Cell(CellKind.FLOAT, float(raw))


def _decode_text(raw: str, column: Column) -> Cell:
    return Cell(CellKind.VARCHAR, raw)


def _decode_binary(raw: str, column: Column) -> Cell:
    return Cell(CellKind.BINARY, bytes.fromhex(raw))


def _decode_boolean(raw: str, column: Column) -> Cell:
    text = raw.strip().lower()
    if text in ("true", "1"):
        return Cell(CellKind.BOOLEAN, True)
    if text in ("false", "0"):
        return Cell(CellKind.BOOLEAN, False)
    raise ValueError("not a boolean")


def _decode_date(raw: str, column: Column) -> Cell:
    text = raw.strip()
    if "-" in text[1:]:
        return Cell(CellKind.DATE, datetime.date.fromisoformat(text))
    return Cell(CellKind.DATE, EPOCH_DATE + datetime.timedelta(days=int(text)))


def _decode_time(raw: str, column: Column) -> Cell:
    text = raw.strip()
    if ":" in text:
        value = datetime.time.fromisoformat(text)
        if value.tzinfo is not None:
            raise ValueError("TIME values carry no offset")
        return Cell(CellKind.TIME, value)
    micros = _epoch_micros(text)
    if not 0 <= micros < 86_400_000_000:
        raise ValueError("time out of range")
    seconds, micro = divmod(micros, 1_000_000)
    hour, rest = divmod(seconds, 3600)
    minute, second = divmod(rest, 60)
    return Cell(CellKind.TIME, datetime.time(hour, minute, second, micro))


def _decode_timestamp_ntz(raw: str, column: Column) -> Cell:
    text = raw.strip()
    if _looks_iso(text):
        value = datetime.datetime.fromisoformat(text)
        if value.tzinfo is not None:
            raise ValueError("TIMESTAMP_NTZ values carry no offset")
        return Cell(CellKind.TIMESTAMP_NTZ, value)
    return Cell(CellKind.TIMESTAMP_NTZ, EPOCH + datetime.timedelta(microseconds=_epoch_micros(text)))


def _decode_timestamp_ltz(raw: str, column: Column) -> Cell:
    # Offset sources, in order: ISO suffix, "<secs> <minutes+1440>", else UTC
    text = raw.strip()
    if _looks_iso(text):
        value = datetime.datetime.fromisoformat(text)
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return Cell(CellKind.TIMESTAMP_LTZ, value)

    epoch_text, _, offset_text = text.partition(" ")
    tz = datetime.timezone.utc
    if offset_text:
        tz = datetime.timezone(datetime.timedelta(minutes=int(offset_text) - _TZ_OFFSET_BIAS))
    utc = EPOCH + datetime.timedelta(microseconds=_epoch_micros(epoch_text))
    return Cell(CellKind.TIMESTAMP_LTZ, utc.replace(tzinfo=datetime.timezone.utc).astimezone(tz))


def _epoch_micros(text: str) -> int:
    """Parse decimal seconds into whole microseconds without float rounding."""
    try:
        seconds = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"not a number: {text!r}") from e
    if not seconds.is_finite():
        raise ValueError("not a finite number")
    return int(seconds.scaleb(6).to_integral_value(rounding=ROUND_FLOOR))


def _looks_iso(text: str) -> bool:
    return "-" in text[1:] and (":" in text or "T" in text or len(text) == 10)


_DECODERS = {
    ColumnType.FIXED: _decode_fixed,
    ColumnType.REAL: _decode_real,
    ColumnType.TEXT: _decode_text,
    ColumnType.VARIANT: _decode_text,
    ColumnType.OBJECT: _decode_text,
    ColumnType.ARRAY: _decode_text,
    ColumnType.BINARY: _decode_binary,
    ColumnType.BOOLEAN: _decode_boolean,
    ColumnType.DATE: _decode_date,
    ColumnType.TIME: _decode_time,
    ColumnType.TIMESTAMP_NTZ: _decode_timestamp_ntz,
    ColumnType.TIMESTAMP_LTZ: _decode_timestamp_ltz,
}
