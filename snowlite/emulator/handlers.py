"""HTTP request handlers for the emulated SQL REST API.

Handlers:
    submit_statement: POST /api/v2/statements
    get_statement_status: GET /api/v2/statements/{handle}
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse

from .engine import ExecutionError
from .middleware import ServerError
from .statement_manager import StatementResult
from .types import format_row

if TYPE_CHECKING:
    from starlette.requests import Request

    from .server import EmulatorState


def _state(request: "Request") -> "EmulatorState":
    return request.app.state.emulator


async def submit_statement(request: "Request") -> JSONResponse:
    """Execute a SQL statement and return partition 0.

    POST /api/v2/statements

    Request Body:
        statement: SQL text
        database: Database context
        schema: Schema context
        warehouse: Warehouse context (informational)
        role: Role context (informational)
        bindings: Positional bind parameters
        timeout: Statement timeout in seconds (informational)

    Query Parameters:
        nullable: If "false", format nulls as "null" string
        async: Not supported; answered with 422
    """
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise ServerError(status_code=400, code="390142", message="Request body is not valid JSON.")

    sql = body.get("statement", "")
    nullable = request.query_params.get("nullable", "true").lower() != "false"

    if not sql:
        raise ServerError(
            status_code=422, code="422000", message="SQL statement is required", sql_state="42000"
        )
    if request.query_params.get("async", "false").lower() == "true":
        raise ServerError(
            status_code=422,
            code="000002",
            message="Asynchronous execution is not supported by the emulator.",
            sql_state="0A000",
        )

    bind_values = _convert_bindings(body.get("bindings") or {})

    state = _state(request)
    stmt = state.statements.create_statement(
        sql=sql,
        database=body.get("database"),
        schema=body.get("schema"),
        warehouse=body.get("warehouse"),
        role=body.get("role"),
    )

    try:
        execution = await run_in_threadpool(
            state.engine.execute, sql, bind_values, stmt.database, stmt.schema
        )
    except ExecutionError as e:
        stmt.status = "failed"
        return JSONResponse(
            {
                "code": "002003",
                "sqlState": e.sql_state,
                "message": e.message,
                "statementHandle": stmt.handle,
                "createdOn": stmt.created_on,
            },
            status_code=422,
        )

    stmt.status = "success"
    stmt.row_type = execution.row_type
    stmt.result_data = execution.rows
    stmt.stats = execution.stats

    return JSONResponse(
        _result_body(stmt, 0, nullable),
        headers=_build_partition_headers(stmt, 0),
    )


async def get_statement_status(request: "Request") -> JSONResponse:
    """Return one partition of a completed statement.

    GET /api/v2/statements/{statementHandle}

    Query Parameters:
        partition: Partition number to return (0-indexed)
        nullable: If "false", format nulls as "null" string
    """
    handle = request.path_params["statementHandle"]
    nullable = request.query_params.get("nullable", "true").lower() != "false"
    try:
        partition = int(request.query_params.get("partition", 0))
    except ValueError:
        raise ServerError(status_code=422, code="000001", message="Partition must be an integer.")

    stmt = _state(request).statements.get_statement(handle)
    if stmt is None:
        raise ServerError(
            status_code=404,
            code="000404",
            message=f"Statement with handle {handle} not found",
            sql_state="02000",
        )

    if stmt.status != "success":
        raise ServerError(
            status_code=422,
            code="000604",
            message=f"Statement {handle} has no results (status: {stmt.status})",
            sql_state="HY000",
        )

    partition_count = stmt.get_partition_count()
    if not 0 <= partition < partition_count:
        raise ServerError(
            status_code=422,
            code="000001",
            message=f"Invalid partition {partition}. Valid range: 0-{partition_count - 1}",
            sql_state="HY000",
        )

    if partition == 0:
        body = _result_body(stmt, 0, nullable)
    else:
        # Later partitions carry only their rows
        body = {"data": [format_row(row, nullable) for row in stmt.get_partition(partition)]}
    return JSONResponse(body, headers=_build_partition_headers(stmt, partition))


# =============================================================================
# Helper Functions
# =============================================================================


def _convert_bindings(bindings: dict) -> tuple | None:
    """Convert binding parameters to a tuple for SQL execution.

    Format: {"1":{"type":"FIXED","value":"123"}, "2":{"type":"TEXT","value":"hello"}}
    """
    if not bindings:
        return None

    bind_values: list[Any] = []
    try:
        keys = sorted(bindings.keys(), key=int)
    except ValueError:
        raise ServerError(
            status_code=422, code="000001", message="Binding keys must be positions.", sql_state="07001"
        )

    for key in keys:
        binding = bindings[key]
        value = binding.get("value")
        bind_type = binding.get("type", "TEXT").upper()

        try:
            if value is None:
                bind_values.append(None)
            elif bind_type in ("FIXED", "INTEGER", "BIGINT"):
                bind_values.append(int(value))
            elif bind_type in ("REAL", "FLOAT", "DOUBLE"):
                bind_values.append(float(value))
            elif bind_type == "BOOLEAN":
                bind_values.append(str(value).lower() in ("true", "1", "yes"))
            else:
                bind_values.append(str(value))
        except ValueError:
            raise ServerError(
                status_code=422,
                code="002049",
                message=f"Binding {key} value {value!r} is not a valid {bind_type}.",
                sql_state="22018",
            )

    return tuple(bind_values)


def _result_body(stmt: StatementResult, partition: int, nullable: bool) -> dict[str, Any]:
    body: dict[str, Any] = {
        "code": "090001",
        "sqlState": "00000",
        "message": "Statement executed successfully.",
        "statementHandle": stmt.handle,
        "createdOn": stmt.created_on,
        "statementStatusUrl": stmt.status_url,
        "resultSetMetaData": stmt.result_meta(),
        "data": [format_row(row, nullable) for row in stmt.get_partition(partition)],
    }
    if stmt.stats:
        body["stats"] = stmt.stats
    return body


def _build_partition_headers(stmt: StatementResult, partition: int) -> dict:
    """Build Link headers for a specific partition."""
    partition_count = stmt.get_partition_count()
    if partition_count <= 1:
        return {}

    url = stmt.status_url
    links = [
        f'<{url}?partition=0>; rel="first"',
        f'<{url}?partition={partition_count - 1}>; rel="last"',
    ]
    if partition > 0:
        links.append(f'<{url}?partition={partition - 1}>; rel="prev"')
    if partition < partition_count - 1:
        links.append(f'<{url}?partition={partition + 1}>; rel="next"')

    return {"Link": ", ".join(links)}
