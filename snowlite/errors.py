"""Exceptions raised by the snowlite client.

Every failure surfaced to callers derives from SnowliteError, so a single
``except SnowliteError`` catches anything the client raises on purpose.
"""

from __future__ import annotations

from typing import Any


class SnowliteError(Exception):
    """Base exception for all snowlite errors."""

    pass


class SigningError(SnowliteError):
    """Raised when the private key cannot produce a signed token."""

    pass


class AuthError(SnowliteError):
    """Raised when the service rejects a freshly signed token."""

    def __init__(self, message: str, status_code: int = 401, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class SubmissionError(SnowliteError):
    """Raised when a statement submission fails or returns an unusable body.

    Attributes:
        status_code: HTTP status (0 when no response was received)
        body: Raw response body, kept for diagnostics
        code: Snowflake error code from the body, if any
        sql_state: SQL state from the body, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        body: str = "",
        code: str | None = None,
        sql_state: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        self.code = code
        self.sql_state = sql_state
        super().__init__(f"Statement failed ({status_code}): {message}")


class PartitionFetchError(SnowliteError):
    """Raised when one partition of a result set cannot be retrieved."""

    def __init__(self, index: int, message: str, status_code: int = 0, body: str = ""):
        self.index = index
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to fetch partition {index}: {message}")


class DecodeError(SnowliteError):
    """Raised when a wire cell does not parse as its column's declared type."""

    def __init__(self, column: str, value: Any, reason: str = ""):
        self.column = column
        self.value = value
        detail = f": {reason}" if reason else ""
        super().__init__(f"Cannot decode {value!r} in column {column!r}{detail}")


class UnsupportedTypeError(SnowliteError):
    """Raised when a column's wire type has no Cell representation."""

    def __init__(self, column: str, type_name: str):
        self.column = column
        self.type_name = type_name
        super().__init__(f"Column {column!r} has unsupported type {type_name!r}")


class PartitionCountError(SnowliteError):
    """Raised by only_partition() when the result has more than one partition."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(f"Expected exactly one partition, found {count}")
