from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TypedDict


class ColumnType(str, Enum):
    """Wire type tags the SQL API reports in ``rowType[].type``."""

    FIXED = "fixed"
    REAL = "real"
    TEXT = "text"
    BINARY = "binary"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP_LTZ = "timestamp_ltz"
    TIMESTAMP_NTZ = "timestamp_ntz"
    TIMESTAMP_TZ = "timestamp_tz"
    VARIANT = "variant"
    OBJECT = "object"
    ARRAY = "array"
    DECIMAL = "decimal"

    @classmethod
    def parse(cls, tag: str) -> Optional["ColumnType"]:
        try:
            return cls(tag.lower())
        except ValueError:
            return None


class ColumnInfo(TypedDict, total=False):
    """One ``rowType`` entry as it appears in a SQL API response."""

    name: str
    database: str
    schema: str
    table: str
    nullable: bool
    type: str
    byteLength: Optional[int]
    length: Optional[int]
    scale: Optional[int]
    precision: Optional[int]
    collation: Optional[str]


@dataclass(frozen=True)
class Column:
    name: str
    type: str
    scale: int | None = None
    precision: int | None = None
    nullable: bool = True
    length: int | None = None
    byte_length: int | None = None
    database: str = ""
    schema: str = ""
    table: str = ""

    @property
    def column_type(self) -> ColumnType | None:
        """The parsed wire tag, or None when the service sent an unknown tag."""
        return ColumnType.parse(self.type)

    @classmethod
    def from_wire(cls, info: ColumnInfo) -> "Column":
        return cls(
            name=str(info["name"]),
            type=str(info["type"]).lower(),
            scale=info.get("scale"),
            precision=info.get("precision"),
            nullable=bool(info.get("nullable", True)),
            length=info.get("length"),
            byte_length=info.get("byteLength"),
            database=info.get("database") or "",
            schema=info.get("schema") or "",
            table=info.get("table") or "",
        )


Schema = tuple[Column, ...]


def parse_row_type(row_type: list[dict[str, Any]]) -> Schema:
    """
    Convert a ``resultSetMetaData.rowType`` array into a Schema.

    Args:
        row_type (list[dict]): Column descriptors as returned by the API.

    Returns:
        Schema: Columns in result order.

    Raises:
        KeyError: If a descriptor lacks its ``name`` or ``type``.
    """
    return tuple(Column.from_wire(info) for info in row_type)  # type: ignore[arg-type]
