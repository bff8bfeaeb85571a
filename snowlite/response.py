"""Parsing of SQL API response bodies.

Functions here raise ``ValueError`` for bodies that do not have the expected
shape; the statement and result modules turn those into SubmissionError or
PartitionFetchError with the raw body attached.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .rowtype import Schema, parse_row_type

StringTable = list[list[str | None]]


@dataclass(frozen=True)
class QueryPayload:
    schema: Schema
    data: StringTable
    num_rows: int
    num_partitions: int
    statement_handle: str | None
    statement_status_url: str | None


@dataclass(frozen=True)
class Changes:
    """Row counts reported for a DML statement."""

    message: str
    rows_inserted: int = 0
    rows_deleted: int = 0
    rows_updated: int = 0
    duplicates: int = 0


def load_body(text: str) -> dict[str, Any]:
    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Response is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise ValueError("Response body is not a JSON object")
    return body


def error_details(text: str) -> tuple[str, str | None, str | None]:
    """Extract ``(message, code, sqlState)`` from an error body, if it is JSON."""
    try:
        body = load_body(text)
    except ValueError:
        return text or "empty response", None, None
    message = body.get("message") or text
    return str(message), body.get("code"), body.get("sqlState")


def parse_data(body: dict[str, Any], schema: Schema) -> StringTable:
    """Validate ``data`` against the schema width and return it."""
    data = body.get("data")
    if not isinstance(data, list):
        raise ValueError("Response has no data array")
    width = len(schema)
    for position, row in enumerate(data):
        if not isinstance(row, list):
            raise ValueError(f"Row {position} is not an array")
        if len(row) != width:
            raise ValueError(f"Row {position} has {len(row)} cells, schema has {width} columns")
        for cell in row:
            if cell is not None and not isinstance(cell, str):
                raise ValueError(f"Row {position} holds a non-string cell {cell!r}")
    return data


def _count(container: dict[str, Any], key: str, default: int = 0) -> int:
    value = container.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{key} is not a count: {value!r}")
    return int(value)


def parse_query_response(body: dict[str, Any]) -> QueryPayload:
    """Split a statement response into schema, first partition and handle."""
    meta = body.get("resultSetMetaData")
    if not isinstance(meta, dict):
        raise ValueError("Response has no resultSetMetaData")
    try:
        schema = parse_row_type(meta.get("rowType") or [])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed rowType: {e}") from e

    data = parse_data(body, schema)
    partition_info = meta.get("partitionInfo") or []
    if not isinstance(partition_info, list):
        raise ValueError("partitionInfo is not an array")

    return QueryPayload(
        schema=schema,
        data=data,
        num_rows=_count(meta, "numRows", len(data)),
        num_partitions=max(1, len(partition_info)),
        statement_handle=body.get("statementHandle"),
        statement_status_url=body.get("statementStatusUrl"),
    )


def parse_changes(body: dict[str, Any]) -> Changes:
    """Read DML row counts from ``stats``; absent counts are zero."""
    stats = body.get("stats") or {}
    if not isinstance(stats, dict):
        raise ValueError("stats is not an object")
    return Changes(
        message=str(body.get("message", "")),
        rows_inserted=_count(stats, "numRowsInserted"),
        rows_deleted=_count(stats, "numRowsDeleted"),
        rows_updated=_count(stats, "numRowsUpdated"),
        duplicates=_count(stats, "numDmlDuplicates"),
    )
