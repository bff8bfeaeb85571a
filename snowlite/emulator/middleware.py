"""Middleware classes for the emulator.

This module contains HTTP middleware for:
- Error handling: Converts ServerError exceptions to JSON responses
- Token validation: Verifies key-pair JWTs on /api/v2/ routes
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp


@dataclass
class ServerError(Exception):
    """Exception raised for server errors with HTTP status code and Snowflake error code."""

    status_code: int
    code: str
    message: str
    sql_state: str = "08001"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to handle ServerError exceptions globally.

    Catches ServerError exceptions and converts them to JSON responses in
    the SQL API error format.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except ServerError as e:
            return JSONResponse(
                {"code": e.code, "message": e.message, "sqlState": e.sql_state},
                status_code=e.status_code,
            )


class TokenValidationMiddleware(BaseHTTPMiddleware):
    """Middleware to verify the key-pair JWT sent with SQL API requests.

    The bearer token must be an RS256 JWT signed by the registered public
    key, carrying ``iss``, ``sub``, ``iat`` and ``exp`` claims, and the
    request must declare ``X-Snowflake-Authorization-Token-Type: KEYPAIR_JWT``.
    """

    def __init__(self, app: "ASGIApp", public_key: "RSAPublicKey") -> None:
        super().__init__(app)
        self.public_key = public_key

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not request.url.path.startswith("/api/v2/"):
            return await call_next(request)

        auth = request.headers.get("Authorization", "")
        token_type = request.headers.get("X-Snowflake-Authorization-Token-Type", "")
        if not auth.startswith("Bearer ") or token_type.upper() != "KEYPAIR_JWT":
            raise ServerError(
                status_code=401,
                code="390101",
                message="Authorization header not found in the request data.",
            )

        try:
            claims = jwt.decode(
                auth[len("Bearer "):],
                self.public_key,
                algorithms=["RS256"],
                options={"require": ["iss", "sub", "iat", "exp"]},
            )
        except jwt.PyJWTError as e:
            raise ServerError(
                status_code=401,
                code="390144",
                message=f"JWT token is invalid: {e}",
            ) from e

        request.state.user = claims["sub"]
        return await call_next(request)
