"""Executed statements kept by handle so clients can page through partitions.

The store is bounded: once ``max_statements`` handles are held, registering a
new statement drops the oldest one first.
"""

from __future__ import annotations

import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any


@dataclass
class StatementResult:
    """One statement and the rows it produced.

    ``status`` moves from ``running`` to ``success`` or ``failed``; only a
    successful statement serves partitions. Rows are split into consecutive
    slices of ``partition_size``.
    """

    handle: str
    status: str
    sql: str
    database: str | None = None
    schema: str | None = None
    warehouse: str | None = None
    role: str | None = None
    created_on: int = field(default_factory=lambda: int(time.time() * 1000))

    row_type: list[dict[str, Any]] = field(default_factory=list)
    result_data: list[list[Any]] = field(default_factory=list)
    partition_size: int = 1000
    stats: dict[str, int] | None = None

    @property
    def num_rows(self) -> int:
        return len(self.result_data)

    @property
    def status_url(self) -> str:
        return f"/api/v2/statements/{self.handle}"

    def get_partition_count(self) -> int:
        """An empty result still has one (empty) partition."""
        return max(1, -(-len(self.result_data) // self.partition_size))

    def get_partition(self, partition: int) -> list[list[Any]]:
        start = partition * self.partition_size
        return self.result_data[start:start + self.partition_size]

    def result_meta(self) -> dict[str, Any]:
        """The ``resultSetMetaData`` object sent with partition 0."""
        return {
            "numRows": self.num_rows,
            "format": "jsonv2",
            "rowType": self.row_type,
            "partitionInfo": [
                {"rowCount": len(self.get_partition(i)), "uncompressedSize": 0}
                for i in range(self.get_partition_count())
            ],
        }


class StatementManager:
    """Handle-to-statement map with first-in, first-out eviction."""

    def __init__(self, max_statements: int = 1000, partition_size: int = 1000) -> None:
        self._statements: OrderedDict[str, StatementResult] = OrderedDict()
        self._max_statements = max_statements
        self._partition_size = partition_size
        self._lock = Lock()

    def create_statement(
        self,
        sql: str,
        database: str | None = None,
        schema: str | None = None,
        warehouse: str | None = None,
        role: str | None = None,
    ) -> StatementResult:
        """Register a running statement under a fresh handle."""
        stmt = StatementResult(
            handle=str(uuid.uuid4()),
            status="running",
            sql=sql,
            database=database,
            schema=schema,
            warehouse=warehouse,
            role=role,
            partition_size=self._partition_size,
        )
        with self._lock:
            while self._statements and len(self._statements) >= self._max_statements:
                self._statements.popitem(last=False)
            self._statements[stmt.handle] = stmt
        return stmt

    def get_statement(self, handle: str) -> StatementResult | None:
        with self._lock:
            return self._statements.get(handle)
