"""Authenticated request plumbing shared by statements and partition fetches."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .auth import KeyPairAuthenticator
from .config import ClientConfig, Identity
from .errors import AuthError
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)


def default_base_url(account: str) -> str:
    return f"https://{account.lower()}.snowflakecomputing.com"


class Session:
    """Sends requests with the client's shared token.

    A 401 answer invalidates the token and the request is retried once with a
    newly signed one; a second 401 raises AuthError. Nothing else is retried.
    """

    def __init__(self, identity: Identity, config: ClientConfig, transport: Transport) -> None:
        self.identity = identity
        self.config = config
        self.transport = transport
        self.base_url = (config.base_url or default_base_url(identity.account)).rstrip("/")
        self.authenticator = KeyPairAuthenticator(
            identity,
            lifetime=config.token_lifetime,
            leeway=config.token_leeway,
        )

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        url = self.url(path)
        token = await self.authenticator.token()
        response = await self._send(method, url, token.headers, json, params)
        if response.status_code != 401:
            return response

        logger.debug("Token rejected for %s %s, re-signing", method, url)
        self.authenticator.invalidate(token)
        token = await self.authenticator.token()
        response = await self._send(method, url, token.headers, json, params)
        if response.status_code == 401:
            raise AuthError("Token rejected after refresh", status_code=401, body=response.text)
        return response

    async def _send(
        self,
        method: str,
        url: str,
        auth_headers: Mapping[str, str],
        json: Any,
        params: Mapping[str, Any] | None,
    ) -> TransportResponse:
        headers = {
            **auth_headers,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }
        logger.debug("%s %s", method, url)
        return await self.transport.request(method, url, headers=headers, json=json, params=params)
