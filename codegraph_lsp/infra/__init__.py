"""Infrastructure layer: exceptions shared across transport and extraction."""

from .exceptions import (
    ErrorCode,
    LSPError,
    ProtocolError,
    RequestError,
    RequestTimeoutError,
    ResolutionError,
    ServerStartError,
    TransportError,
    UnmatchedResponseError,
)

__all__ = [
    "ErrorCode",
    "LSPError",
    "ProtocolError",
    "RequestError",
    "RequestTimeoutError",
    "ResolutionError",
    "ServerStartError",
    "TransportError",
    "UnmatchedResponseError",
]
