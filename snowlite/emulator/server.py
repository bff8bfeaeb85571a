"""Application factory and CLI entry point for the emulator."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware

from .engine import Engine
from .middleware import ErrorHandlingMiddleware, TokenValidationMiddleware
from .routes import get_sql_api_routes
from .statement_manager import StatementManager

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey


@dataclass
class EmulatorState:
    engine: Engine
    statements: StatementManager


def create_app(
    public_key: "RSAPublicKey | None" = None,
    partition_size: int | None = None,
    db_file: str | None = None,
    debug: bool = False,
) -> Starlette:
    """Create an emulator application.

    Args:
        public_key: When given, every /api/v2/ request must carry a JWT
            signed by the matching private key
        partition_size: Rows per result partition; defaults to
            SNOWLITE_EMULATOR_PARTITION_SIZE or 1000
        db_file: DuckDB database file; defaults to SNOWLITE_EMULATOR_DB_PATH
            or an in-memory database
        debug: Starlette debug mode

    Returns:
        Starlette application
    """
    if partition_size is None:
        partition_size = int(os.getenv("SNOWLITE_EMULATOR_PARTITION_SIZE", "1000"))
    if db_file is None:
        db_file = os.getenv("SNOWLITE_EMULATOR_DB_PATH", ":memory:")

    # First entry is outermost, so errors raised by token validation are converted too
    middleware = [Middleware(ErrorHandlingMiddleware)]
    if public_key is not None:
        middleware.append(Middleware(TokenValidationMiddleware, public_key=public_key))

    app = Starlette(debug=debug, routes=get_sql_api_routes(), middleware=middleware)
    app.state.emulator = EmulatorState(
        engine=Engine(db_file=db_file),
        statements=StatementManager(partition_size=partition_size),
    )
    return app


def main() -> None:
    from cryptography.hazmat.primitives import serialization
    from uvicorn import run

    parser = argparse.ArgumentParser(description="Run the snowlite SQL API emulator.")

    parser.add_argument(
        "--host", type=str, default="127.0.0.1", help="Host to run the server on (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", type=int, default=8000, help="Port to run the server on (default: 8000)"
    )

    parser.add_argument(
        "--partition-size", type=int, default=None, help="Rows per result partition (default: 1000)"
    )

    parser.add_argument(
        "--public-key", type=str, default=None, help="PEM public key; enables JWT verification"
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode (default: False)"
    )

    args = parser.parse_args()

    public_key = None
    if args.public_key:
        with open(args.public_key, "rb") as f:
            public_key = serialization.load_pem_public_key(f.read())

    app = create_app(public_key=public_key, partition_size=args.partition_size, debug=args.debug)

    # Run the server with the provided arguments
    run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
