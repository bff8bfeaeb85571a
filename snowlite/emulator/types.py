"""Type conversion utilities for the emulator.

Maps DuckDB result types onto Snowflake ``rowType`` metadata and formats
Python values in the SQL API ``jsonv2`` string encoding.
"""

from __future__ import annotations

import datetime
import json
import math
import re
from decimal import Decimal
from typing import Any

# Mapping from DuckDB types to Snowflake wire types
DUCKDB_TO_SF_TYPE = {
    "TINYINT": "fixed",
    "SMALLINT": "fixed",
    "INTEGER": "fixed",
    "BIGINT": "fixed",
    "HUGEINT": "fixed",
    "UTINYINT": "fixed",
    "USMALLINT": "fixed",
    "UINTEGER": "fixed",
    "UBIGINT": "fixed",
    "DECIMAL": "fixed",
    "FLOAT": "real",
    "DOUBLE": "real",
    "VARCHAR": "text",
    "UUID": "text",
    "BOOLEAN": "boolean",
    "BLOB": "binary",
    "DATE": "date",
    "TIME": "time",
    "TIMESTAMP": "timestamp_ntz",
    "TIMESTAMP_S": "timestamp_ntz",
    "TIMESTAMP_MS": "timestamp_ntz",
    "TIMESTAMP_NS": "timestamp_ntz",
    # DuckDB stores an instant and renders it in the session zone: LTZ semantics
    "TIMESTAMP WITH TIME ZONE": "timestamp_ltz",
    "JSON": "variant",
    "MAP": "object",
    "STRUCT": "object",
}

EPOCH = datetime.datetime(1970, 1, 1)
EPOCH_DATE = datetime.date(1970, 1, 1)


def type_to_sf(type_name: str) -> str:
    """Convert a DuckDB type name to a Snowflake wire type.

    Args:
        type_name: DuckDB type as rendered by ``str()``, e.g. ``DECIMAL(2,1)``

    Returns:
        Snowflake wire type; unknown types fall back to ``text``
    """
    normalized = type_name.upper()
    if normalized.endswith("[]"):
        return "array"
    if normalized.startswith("DECIMAL"):
        return "fixed"
    if normalized.startswith(("STRUCT", "MAP")):
        return "object"
    return DUCKDB_TO_SF_TYPE.get(normalized, "text")


def build_row_type(description: list, database: str | None = None, schema: str | None = None) -> list[dict[str, Any]]:
    """Build row type metadata from a DuckDB cursor description.

    Args:
        description: Cursor description tuples ``(name, type_code, ...)``
        database: Database name to report for each column
        schema: Schema name to report for each column

    Returns:
        List of column metadata dictionaries
    """
    row_types = []
    for col in description:
        name = str(col[0])
        type_name = str(col[1])
        sf_type = type_to_sf(type_name)

        info: dict[str, Any] = {
            "name": name,
            "database": database or "",
            "schema": schema or "",
            "table": "",
            "type": sf_type,
            "nullable": True,
            "length": None,
            "byteLength": None,
            "precision": None,
            "scale": None,
            "collation": None,
        }

        if sf_type == "fixed":
            match = re.search(r"\((\d+),\s*(\d+)\)", type_name)
            info["precision"] = int(match[1]) if match else 38
            info["scale"] = int(match[2]) if match else 0
        elif sf_type == "text":
            info["length"] = info["byteLength"] = 16_777_216
        elif sf_type == "binary":
            info["length"] = info["byteLength"] = 8_388_608
        elif sf_type.startswith("time"):
            info["precision"] = 0
            info["scale"] = 9

        row_types.append(info)

    return row_types


def _epoch_text(micros: int) -> str:
    sign = "-" if micros < 0 else ""
    seconds, micro = divmod(abs(micros), 1_000_000)
    return f"{sign}{seconds}.{micro:06d}000"


def _micros(delta: datetime.timedelta) -> int:
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def format_value(value: Any, nullable: bool = True) -> str | None:
    """Format a value the way the SQL API encodes cells.

    Args:
        value: The value to format
        nullable: If False, return "null" string instead of None

    Returns:
        Wire string, or None for SQL NULL
    """
    if value is None:
        return None if nullable else "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    # datetime is a subclass of date
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            utc = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
            return _epoch_text(_micros(utc - EPOCH))
        return _epoch_text(_micros(value - EPOCH))
    if isinstance(value, datetime.date):
        return str((value - EPOCH_DATE).days)
    if isinstance(value, datetime.time):
        seconds = value.hour * 3600 + value.minute * 60 + value.second
        return _epoch_text(seconds * 1_000_000 + value.microsecond)
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, default=str)
    return str(value)


def format_row(row: list[Any], nullable: bool = True) -> list[str | None]:
    """Format a row's values for a JSON response."""
    return [format_value(v, nullable) for v in row]
