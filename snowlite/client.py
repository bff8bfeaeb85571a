from __future__ import annotations

from types import TracebackType
from typing import Self

from .config import ClientConfig, Identity
from .session import Session
from .statement import Statement
from .transport import HttpxTransport, Transport


class SnowflakeClient:
    """Entry point: holds the identity, the shared token and the transport.

    Usage:
        async with SnowflakeClient(identity) as client:
            result = await (
                client.prepare("SELECT * FROM T WHERE id = ? AND name = ?")
                .add_binding(10)
                .add_binding("Henry")
                .query()
            )
            rows = result.only_partition().json_objects()
    """

    def __init__(
        self,
        identity: Identity,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(timeout=self.config.timeout)
        self._session = Session(identity, self.config, self._transport)

    @classmethod
    def from_env(cls) -> "SnowflakeClient":
        return cls(Identity.from_env(), ClientConfig.from_env())

    @property
    def identity(self) -> Identity:
        return self._session.identity

    @property
    def session(self) -> Session:
        return self._session

    def prepare(self, sql: str) -> Statement:
        """Prepare a statement. Does no I/O and does not validate the SQL."""
        return Statement(sql=sql, session=self._session)

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()
