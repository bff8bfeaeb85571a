"""Tests for the emulator's statement store."""

from __future__ import annotations

import pytest

pytest.importorskip("duckdb")

from snowlite.emulator.statement_manager import StatementManager, StatementResult  # noqa: E402


class TestStatementManager:
    def test_oldest_statement_is_evicted_first(self) -> None:
        manager = StatementManager(max_statements=2)
        first = manager.create_statement("SELECT 1")
        second = manager.create_statement("SELECT 2")
        third = manager.create_statement("SELECT 3")

        assert manager.get_statement(first.handle) is None
        assert manager.get_statement(second.handle) is second
        assert manager.get_statement(third.handle) is third

    def test_new_statements_are_running_with_configured_partition_size(self) -> None:
        stmt = StatementManager(partition_size=2).create_statement("SELECT 1", database="DB")

        assert stmt.status == "running"
        assert stmt.partition_size == 2
        assert stmt.database == "DB"


class TestStatementResult:
    def test_rows_are_split_into_partitions(self) -> None:
        stmt = StatementResult(handle="h", status="success", sql="", partition_size=2)
        stmt.result_data = [[i] for i in range(5)]

        assert stmt.get_partition_count() == 3
        assert stmt.get_partition(2) == [[4]]
        assert [p["rowCount"] for p in stmt.result_meta()["partitionInfo"]] == [2, 2, 1]

    def test_empty_result_has_one_partition(self) -> None:
        stmt = StatementResult(handle="h", status="success", sql="")

        assert stmt.get_partition_count() == 1
        assert stmt.get_partition(0) == []
        assert stmt.result_meta()["numRows"] == 0
