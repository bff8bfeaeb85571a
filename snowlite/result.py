"""Result sets spanning one or more partitions.

Partition 0 arrives with the statement response; the rest are fetched on
demand. However partitions are fetched, every full view orders rows by
ascending partition index and then by position within the partition.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

from .cells import Cell
from .errors import PartitionCountError
from .fetcher import PartitionFetcher
from .partition import Partition
from .response import QueryPayload
from .rowtype import Schema

logger = logging.getLogger(__name__)


class ResultSet:
    """Schema plus the partitions of one executed statement.

    Fetched partitions are cached; a failed fetch never touches the ones
    already held.
    """

    def __init__(
        self,
        payload: QueryPayload,
        fetcher: PartitionFetcher,
        concurrency: int = 4,
    ) -> None:
        self.schema: Schema = payload.schema
        self.statement_handle = payload.statement_handle
        self._num_rows = payload.num_rows
        self._num_partitions = payload.num_partitions
        self._fetcher = fetcher
        self._concurrency = max(1, concurrency)
        self._partitions: dict[int, Partition] = {
            0: Partition(index=0, schema=payload.schema, data=payload.data)
        }

    @property
    def num_rows(self) -> int:
        """Rows across all partitions, as reported by the service."""
        return self._num_rows

    @property
    def num_columns(self) -> int:
        return len(self.schema)

    @property
    def num_partitions(self) -> int:
        return self._num_partitions

    @property
    def fetched_partitions(self) -> list[int]:
        return sorted(self._partitions)

    def only_partition(self) -> Partition:
        """Return partition 0, asserting it is the only one. Never does I/O.

        Raises:
            PartitionCountError: If the result has more than one partition
        """
        if self._num_partitions != 1:
            raise PartitionCountError(self._num_partitions)
        return self._partitions[0]

    async def partition(self, index: int) -> Partition | None:
        """Return one partition, fetching it if needed.

        Returns None when ``index`` is outside the result.
        """
        if not 0 <= index < self._num_partitions:
            return None
        cached = self._partitions.get(index)
        if cached is not None:
            return cached
        partition = await self._fetcher.fetch(index)
        self._partitions[index] = partition
        return partition

    async def fetch_all(self) -> list[Partition]:
        """Fetch every missing partition concurrently and return all in index order.

        Raises:
            PartitionFetchError: For the first partition that fails; the
                remaining in-flight fetches are cancelled
        """
        missing = [i for i in range(self._num_partitions) if i not in self._partitions]
        if missing:
            semaphore = asyncio.Semaphore(self._concurrency)

            async def fetch_one(index: int) -> Partition:
                async with semaphore:
                    return await self._fetcher.fetch(index)

            tasks = [asyncio.ensure_future(fetch_one(i)) for i in missing]
            try:
                # Completion order is arbitrary; the index slot fixes placement
                for completed in asyncio.as_completed(tasks):
                    partition = await completed
                    logger.debug("Partition %d arrived", partition.index)
                    self._partitions[partition.index] = partition
            finally:
                pending = [task for task in tasks if not task.done()]
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
                # Keep partitions that finished before the failure was seen
                for task in tasks:
                    if not task.cancelled() and task.exception() is None:
                        partition = task.result()
                        self._partitions.setdefault(partition.index, partition)

        return [self._partitions[i] for i in range(self._num_partitions)]

    async def partitions(self) -> AsyncIterator[Partition]:
        """Yield partitions in index order, keeping one fetch in flight ahead."""
        ahead: asyncio.Task[Partition | None] | None = None
        try:
            for index in range(self._num_partitions):
                current = ahead if ahead is not None else asyncio.ensure_future(self.partition(index))
                ahead = None
                if index + 1 < self._num_partitions:
                    ahead = asyncio.ensure_future(self.partition(index + 1))
                partition = await current
                assert partition is not None
                yield partition
        finally:
            if ahead is not None:
                if not ahead.done():
                    ahead.cancel()
                elif not ahead.cancelled():
                    # Retrieve a prefetch failure so asyncio does not report it as unhandled
                    ahead.exception()

    async def concat_partitions(self) -> Partition:
        """Merge every partition into one, indexed 0."""
        data = [row for partition in await self.fetch_all() for row in partition.data]
        return Partition(index=0, schema=self.schema, data=data)

    async def rows(self) -> AsyncIterator[list[Cell]]:
        async for partition in self.partitions():
            for row in partition.iter_cells():
                yield row

    async def cells(self) -> list[list[Cell]]:
        return [row for partition in await self.fetch_all() for row in partition.cells()]

    async def json_table(self) -> list[list[Any]]:
        return [row for partition in await self.fetch_all() for row in partition.json_table()]

    async def json_objects(self) -> list[dict[str, Any]]:
        return [row for partition in await self.fetch_all() for row in partition.json_objects()]
