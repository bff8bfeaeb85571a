"""Client identity and tuning options.

Both can be built directly or read from ``SNOWLITE_*`` environment variables.
"""

from __future__ import annotations

import datetime
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from . import __version__

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"Environment variable {name} is not set")
    return value


@dataclass(frozen=True, kw_only=True)
class Identity:
    """Who the client signs in as and which session context it runs in.

    Attributes:
        account: Account identifier, optionally with a region suffix
            (``AAA00000.us-east-1``)
        user: Login name the public key is registered for
        database: Database context for every statement (required)
        warehouse: Warehouse context for every statement (required)
        private_key: RSA private key used to sign tokens
        role: Role context; optional when the user has a default role
    """

    account: str
    user: str
    database: str
    warehouse: str
    private_key: "RSAPrivateKey" = field(repr=False)
    role: str | None = None

    @classmethod
    def from_env(cls) -> "Identity":
        """Build an identity from ``SNOWLITE_*`` environment variables."""
        from .auth import load_private_key

        with open(_require("SNOWLITE_PRIVATE_KEY_PATH"), "rb") as f:
            pem = f.read()

        return cls(
            account=_require("SNOWLITE_ACCOUNT"),
            user=_require("SNOWLITE_USER"),
            database=_require("SNOWLITE_DATABASE"),
            warehouse=_require("SNOWLITE_WAREHOUSE"),
            role=os.getenv("SNOWLITE_ROLE") or None,
            private_key=load_private_key(pem, os.getenv("SNOWLITE_PRIVATE_KEY_PASSPHRASE")),
        )


@dataclass(frozen=True, kw_only=True)
class ClientConfig:
    """Tuning options for a SnowflakeClient.

    Attributes:
        base_url: Overrides ``https://<account>.snowflakecomputing.com``
        timeout: HTTP timeout in seconds for the default transport
        partition_concurrency: Maximum partition fetches in flight at once
        partition_timeout: Per-partition fetch deadline in seconds
        token_lifetime: Validity window written into each signed token
        token_leeway: Tokens this close to expiry are regenerated
        user_agent: Sent with every request
    """

    base_url: str | None = None
    timeout: float = 30.0
    partition_concurrency: int = 4
    partition_timeout: float | None = None
    token_lifetime: datetime.timedelta = datetime.timedelta(minutes=59)
    token_leeway: datetime.timedelta = datetime.timedelta(seconds=60)
    user_agent: str = f"snowlite/{__version__}"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        partition_timeout = os.getenv("SNOWLITE_PARTITION_TIMEOUT")
        return cls(
            base_url=os.getenv("SNOWLITE_BASE_URL") or None,
            timeout=float(os.getenv("SNOWLITE_TIMEOUT", "30")),
            partition_concurrency=int(os.getenv("SNOWLITE_PARTITION_CONCURRENCY", "4")),
            partition_timeout=float(partition_timeout) if partition_timeout else None,
        )
