"""Key-pair JWT authentication for the SQL API.

This module handles:
- Loading RSA private keys
- Public key fingerprints in the form Snowflake registers them
- Signing short-lived RS256 tokens
- Sharing one token per client, regenerated single-flight on expiry
"""

from __future__ import annotations

import asyncio
import base64
import datetime
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import SigningError

if TYPE_CHECKING:
    from .config import Identity

logger = logging.getLogger(__name__)

TOKEN_TYPE = "KEYPAIR_JWT"


@dataclass(frozen=True)
class AuthToken:
    value: str
    expires_at: float

    def expires_within(self, leeway: datetime.timedelta, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at - now <= leeway.total_seconds()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.value}",
            "X-Snowflake-Authorization-Token-Type": TOKEN_TYPE,
        }


def load_private_key(pem: bytes | str, passphrase: str | None = None) -> rsa.RSAPrivateKey:
    """Load an RSA private key from PEM text.

    Raises:
        SigningError: If the PEM cannot be parsed or is not an RSA key
    """
    if isinstance(pem, str):
        pem = pem.encode()
    password = passphrase.encode() if passphrase else None
    try:
        key = serialization.load_pem_private_key(pem, password=password)
    except (ValueError, TypeError) as e:
        raise SigningError(f"Invalid private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"Expected an RSA private key, got {type(key).__name__}")
    return key


def public_key_fingerprint(private_key: rsa.RSAPrivateKey) -> str:
    """Return ``SHA256:<base64 digest>`` of the DER-encoded public key."""
    der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return "SHA256:" + base64.b64encode(hashlib.sha256(der).digest()).decode()


def qualified_username(account: str, user: str) -> str:
    """``AAA00000.us-east-1`` + ``henry`` -> ``AAA00000.HENRY``."""
    account_identifier = account.split(".", 1)[0]
    return f"{account_identifier}.{user}".upper()


class KeyPairAuthenticator:
    """Signs and caches the bearer token for one identity.

    Concurrent callers that find the token expired share a single pending
    regeneration instead of each signing their own.
    """

    def __init__(
        self,
        identity: "Identity",
        lifetime: datetime.timedelta = datetime.timedelta(minutes=59),
        leeway: datetime.timedelta = datetime.timedelta(seconds=60),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._identity = identity
        self._lifetime = lifetime
        self._leeway = leeway
        self._clock = clock
        self._token: AuthToken | None = None
        self._pending: asyncio.Future[AuthToken] | None = None

    def sign(self) -> AuthToken:
        """Sign a new token. Pure with respect to cached state."""
        identity = self._identity
        subject = qualified_username(identity.account, identity.user)
        try:
            fingerprint = public_key_fingerprint(identity.private_key)
            logger.debug("Public key fingerprint: %s", fingerprint)
            issued_at = int(self._clock())
            expires_at = issued_at + int(self._lifetime.total_seconds())
            claims = {
                "iss": f"{subject}.{fingerprint}",
                "sub": subject,
                "iat": issued_at,
                "exp": expires_at,
            }
            value = jwt.encode(claims, identity.private_key, algorithm="RS256")
        except (AttributeError, TypeError, ValueError, jwt.PyJWTError) as e:
            raise SigningError(f"Failed to sign token for {subject}: {e}") from e
        return AuthToken(value=value, expires_at=float(expires_at))

    def current(self) -> AuthToken | None:
        """The cached token if it is still usable, without refreshing."""
        token = self._token
        if token is None or token.expires_within(self._leeway, self._clock()):
            return None
        return token

    async def token(self) -> AuthToken:
        """Return a usable token, regenerating it at most once at a time."""
        token = self.current()
        if token is not None:
            return token

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._refresh())
        # A cancelled waiter must not cancel the shared refresh
        return await asyncio.shield(self._pending)

    def invalidate(self, token: AuthToken) -> None:
        """Forget ``token`` if it is still the cached one."""
        if self._token is token:
            logger.debug("Discarding rejected token")
            self._token = None

    async def _refresh(self) -> AuthToken:
        try:
            logger.debug("Signing new token for %s", self._identity.user)
            token = await asyncio.to_thread(self.sign)
            self._token = token
            return token
        finally:
            self._pending = None
