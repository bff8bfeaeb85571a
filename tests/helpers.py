"""Builders for SQL API response bodies used across the test-suite."""

import json
from typing import Any

import httpx

BASE_URL = "https://test-account.snowflakecomputing.com"


def row_type(*columns: tuple[str, str] | tuple[str, str, int]) -> list[dict[str, Any]]:
    """Build rowType entries from (name, type[, scale]) tuples."""
    entries = []
    for column in columns:
        name, type_name, *rest = column
        entries.append(
            {
                "name": name,
                "type": type_name,
                "scale": rest[0] if rest else (0 if type_name == "fixed" else None),
                "precision": 38 if type_name == "fixed" else None,
                "nullable": True,
                "database": "DB",
                "schema": "PUBLIC",
                "table": "",
            }
        )
    return entries


def query_body(
    columns: list[dict[str, Any]],
    data: list[list[str | None]],
    partitions: int = 1,
    handle: str = "01b2-handle",
    num_rows: int | None = None,
) -> dict[str, Any]:
    return {
        "code": "090001",
        "sqlState": "00000",
        "message": "Statement executed successfully.",
        "statementHandle": handle,
        "statementStatusUrl": f"/api/v2/statements/{handle}",
        "resultSetMetaData": {
            "numRows": len(data) if num_rows is None else num_rows,
            "format": "jsonv2",
            "rowType": columns,
            "partitionInfo": [{"rowCount": 0} for _ in range(partitions)],
        },
        "data": data,
    }


def json_response(body: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})
