"""Prepared statements and their submission to ``/api/v2/statements``."""

from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from .bindings import Binding, BindValue, bindings_to_wire, to_binding
from .errors import SubmissionError
from .fetcher import PartitionFetcher
from .response import Changes, error_details, load_body, parse_changes, parse_query_response
from .result import ResultSet

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

STATEMENTS_PATH = "/api/v2/statements"


@dataclass(frozen=True)
class Statement:
    """A SQL template plus its positional bindings.

    Statements are immutable: ``add_binding`` and the ``with_*`` methods
    return a new statement, so a prepared statement can be reused as a base.
    Placeholder and binding counts are not compared here; the service
    rejects a mismatch and that surfaces as SubmissionError.
    """

    sql: str
    session: "Session" = field(repr=False, compare=False)
    bindings: tuple[Binding, ...] = ()
    timeout: int | None = None
    schema: str | None = None

    def add_binding(self, value: BindValue) -> "Statement":
        return dataclasses.replace(self, bindings=self.bindings + (to_binding(value),))

    def with_timeout(self, seconds: int) -> "Statement":
        """Ask the service to abort the statement after ``seconds``."""
        return dataclasses.replace(self, timeout=seconds)

    def with_schema(self, schema: str) -> "Statement":
        return dataclasses.replace(self, schema=schema)

    def to_wire(self) -> dict[str, Any]:
        """Build the request body sent to the service."""
        identity = self.session.identity
        body: dict[str, Any] = {
            "statement": self.sql,
            "database": identity.database.upper(),
            "warehouse": identity.warehouse.upper(),
            "bindings": bindings_to_wire(self.bindings),
        }
        if identity.role:
            body["role"] = identity.role.upper()
        if self.schema:
            body["schema"] = self.schema.upper()
        if self.timeout is not None:
            body["timeout"] = self.timeout
        return body

    async def _submit(self) -> dict[str, Any]:
        body = self.to_wire()
        request_id = str(uuid.uuid4())
        logger.debug("Submitting statement %s: %s (%d bindings)", request_id, self.sql, len(self.bindings))

        try:
            response = await self.session.request(
                "POST",
                STATEMENTS_PATH,
                json=body,
                params={"nullable": "true", "requestId": request_id},
            )
        except httpx.HTTPError as e:
            raise SubmissionError(str(e)) from e

        if response.status_code != 200:
            message, code, sql_state = error_details(response.text)
            if response.status_code == 202:
                message = f"statement still running: {message}"
            raise SubmissionError(
                message,
                status_code=response.status_code,
                body=response.text,
                code=code,
                sql_state=sql_state,
            )

        try:
            return load_body(response.text)
        except ValueError as e:
            raise SubmissionError(str(e), status_code=response.status_code, body=response.text) from e

    async def query(self) -> ResultSet:
        """Execute the statement and return its result set.

        Only partition 0 is transferred here; others are fetched on demand.

        Raises:
            SigningError: If the token cannot be signed
            AuthError: If the service rejects a freshly signed token
            SubmissionError: On any other failed or malformed response
        """
        body = await self._submit()
        try:
            payload = parse_query_response(body)
        except ValueError as e:
            raise SubmissionError(str(e), status_code=200, body=str(body)) from e

        logger.debug(
            "Statement %s returned %d rows in %d partitions",
            payload.statement_handle,
            payload.num_rows,
            payload.num_partitions,
        )
        config = self.session.config
        fetcher = PartitionFetcher(
            self.session,
            payload.schema,
            payload.statement_handle,
            payload.statement_status_url,
            timeout=config.partition_timeout,
        )
        return ResultSet(payload, fetcher, concurrency=config.partition_concurrency)

    async def manipulate(self) -> Changes:
        """Execute a DML statement and return the affected row counts."""
        body = await self._submit()
        try:
            return parse_changes(body)
        except ValueError as e:
            raise SubmissionError(str(e), status_code=200, body=str(body)) from e
