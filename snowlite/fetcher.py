from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from .errors import AuthError, PartitionFetchError
from .partition import Partition
from .response import error_details, load_body, parse_data
from .rowtype import Schema

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)


class PartitionFetcher:
    """Retrieves partitions 1..N-1 of one executed statement.

    Each call is independent of every other index, so callers may fetch in
    any order and concurrently.
    """

    def __init__(
        self,
        session: "Session",
        schema: Schema,
        statement_handle: str | None,
        statement_status_url: str | None,
        timeout: float | None = None,
    ) -> None:
        self._session = session
        self._schema = schema
        self._timeout = timeout
        if statement_status_url:
            self._path = statement_status_url
        elif statement_handle:
            self._path = f"/api/v2/statements/{statement_handle}"
        else:
            self._path = None

    async def fetch(self, index: int) -> Partition:
        """Fetch one partition.

        Raises:
            PartitionFetchError: On any failure, naming ``index``
        """
        if self._path is None:
            raise PartitionFetchError(index, "response carried no statement handle")

        logger.debug("Fetching partition %d from %s", index, self._path)
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._session.request(
                    "GET", self._path, params={"partition": index}
                )
        except TimeoutError as e:
            raise PartitionFetchError(index, f"timed out after {self._timeout}s") from e
        except (httpx.HTTPError, AuthError) as e:
            raise PartitionFetchError(index, str(e)) from e

        if response.status_code != 200:
            message, _, _ = error_details(response.text)
            raise PartitionFetchError(
                index, message, status_code=response.status_code, body=response.text
            )

        try:
            data = parse_data(load_body(response.text), self._schema)
        except ValueError as e:
            raise PartitionFetchError(
                index, str(e), status_code=response.status_code, body=response.text
            ) from e

        return Partition(index=index, schema=self._schema, data=data)
