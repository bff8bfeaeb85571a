__version__ = "0.1.0"

from .auth import AuthToken, KeyPairAuthenticator, load_private_key
from .bindings import Binding, to_binding
from .cells import Cell, CellKind, decode
from .client import SnowflakeClient
from .config import ClientConfig, Identity
from .errors import (
    AuthError,
    DecodeError,
    PartitionCountError,
    PartitionFetchError,
    SigningError,
    SnowliteError,
    SubmissionError,
    UnsupportedTypeError,
)
from .partition import Partition
from .response import Changes
from .result import ResultSet
from .rowtype import Column, ColumnType
from .statement import Statement
from .transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    # Client
    "SnowflakeClient",
    "ClientConfig",
    "Identity",
    "Statement",
    # Results
    "Cell",
    "CellKind",
    "Changes",
    "Column",
    "ColumnType",
    "Partition",
    "ResultSet",
    "decode",
    # Auth
    "AuthToken",
    "KeyPairAuthenticator",
    "load_private_key",
    # Bindings
    "Binding",
    "to_binding",
    # Transport
    "HttpxTransport",
    "Transport",
    "TransportResponse",
    # Errors
    "AuthError",
    "DecodeError",
    "PartitionCountError",
    "PartitionFetchError",
    "SigningError",
    "SnowliteError",
    "SubmissionError",
    "UnsupportedTypeError",
]
