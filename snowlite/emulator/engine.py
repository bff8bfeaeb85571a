from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any

import duckdb
import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from .types import build_row_type

# DML statement kinds and the stats key Snowflake reports them under
DML_STATS = {
    exp.Insert: "numRowsInserted",
    exp.Update: "numRowsUpdated",
    exp.Delete: "numRowsDeleted",
    exp.Merge: "numRowsUpdated",
}

# Statements answered with a status row whatever DuckDB reports
DDL_KINDS = (exp.Create, exp.Drop)

DML_COLUMNS = {
    "numRowsInserted": "number of rows inserted",
    "numRowsUpdated": "number of rows updated",
    "numRowsDeleted": "number of rows deleted",
}


class ExecutionError(Exception):
    """Raised when DuckDB or sqlglot rejects a statement."""

    def __init__(self, message: str, sql_state: str = "42000"):
        self.message = message
        self.sql_state = sql_state
        super().__init__(message)


@dataclass
class Execution:
    row_type: list[dict[str, Any]]
    rows: list[list[Any]]
    stats: dict[str, int] | None = None


def translate(sql: str) -> tuple[str, exp.Expression]:
    """Transpile Snowflake SQL into DuckDB SQL.

    Returns:
        The DuckDB SQL and the parsed Snowflake expression
    """
    try:
        expressions = sqlglot.parse(sql, read="snowflake")
    except SqlglotError as e:
        raise ExecutionError(f"SQL compilation error: {e}") from e
    expressions = [e for e in expressions if e is not None]
    if len(expressions) != 1:
        raise ExecutionError(f"Expected one statement, got {len(expressions)}")
    expression = expressions[0]
    return expression.sql(dialect="duckdb"), expression


class Engine:
    """Runs statements on a shared DuckDB database."""

    def __init__(self, db_file: str = ":memory:", timezone: str = "UTC") -> None:
        """
        Args:
            db_file: The DuckDB database file to use. Defaults to ':memory:'.
            timezone: Session time zone, which also renders TIMESTAMP_LTZ values.
        """
        self._duck_conn = duckdb.connect(database=db_file)
        self._duck_conn.execute(f"SET GLOBAL TimeZone = '{timezone}'")
        self._lock = Lock()

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | None = None,
        database: str | None = None,
        schema: str | None = None,
    ) -> Execution:
        duck_sql, expression = translate(sql)
        stats_key = next(
            (key for kind, key in DML_STATS.items() if isinstance(expression, kind)), None
        )

        with self._lock:
            cur = self._duck_conn.cursor()
            try:
                if params:
                    cur.execute(duck_sql, params)
                else:
                    cur.execute(duck_sql)
                description = cur.description or []
                rows = [list(row) for row in cur.fetchall()] if description else []
            except duckdb.Error as e:
                raise ExecutionError(str(e)) from e
            finally:
                cur.close()

        if stats_key is not None:
            count = int(rows[0][0]) if rows else 0
            return Execution(
                row_type=build_row_type([(DML_COLUMNS[stats_key], "BIGINT")], database, schema),
                rows=[[count]],
                stats={stats_key: count},
            )

        if not description or isinstance(expression, DDL_KINDS):
            description = [("status", "VARCHAR")]
            rows = [["Statement executed successfully."]]

        return Execution(row_type=build_row_type(description, database, schema), rows=rows)

    def close(self) -> None:
        if self._duck_conn:
            self._duck_conn.close()
            self._duck_conn = None
