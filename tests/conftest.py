from typing import Any, Callable, Iterator

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from helpers import BASE_URL

from snowlite import ClientConfig, HttpxTransport, Identity, SnowflakeClient

# Conditional imports for emulator tests (optional dependencies)
try:
    from starlette.testclient import TestClient

    from snowlite.emulator import create_app

    HAS_EMULATOR_DEPS = True
except ImportError:
    HAS_EMULATOR_DEPS = False


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    """One RSA key for the whole run; generating keys is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def identity(private_key) -> Identity:
    return Identity(
        account="test-account.us-east-1",
        user="henry",
        database="db",
        warehouse="wh",
        role="analyst",
        private_key=private_key,
    )


@pytest.fixture
def make_client(identity) -> Callable[..., SnowflakeClient]:
    """Build a client whose HTTP traffic goes to ``handler``."""

    def factory(handler, **config: Any) -> SnowflakeClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SnowflakeClient(
            identity,
            ClientConfig(base_url=BASE_URL, **config),
            transport=HttpxTransport(client),
        )

    return factory


@pytest.fixture
def emulator_app(private_key):
    """An emulator that verifies tokens and splits results every 2 rows."""
    if not HAS_EMULATOR_DEPS:
        pytest.skip("Emulator dependencies (starlette, duckdb, sqlglot) not installed")
    return create_app(public_key=private_key.public_key(), partition_size=2)


@pytest.fixture
def test_client(emulator_app) -> Iterator["TestClient"]:
    with TestClient(emulator_app) as client:
        yield client


@pytest.fixture
def emulator_client(identity, emulator_app) -> SnowflakeClient:
    """A client talking to the emulator in-process."""
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=emulator_app))
    return SnowflakeClient(
        identity,
        ClientConfig(base_url="http://emulator"),
        transport=HttpxTransport(client),
    )
