"""
Exceptions for the LSP transport and chunk extraction layers.

Hierarchy:
- LSPError (base)
  - TransportError (pipe unavailable, write failure, session stopped)
    - RequestTimeoutError (per-request deadline expired)
  - ProtocolError (malformed JSON body behind a valid header)
  - RequestError (server replied with an error envelope)
  - ResolutionError (reference not attributable to any known method)
  - UnmatchedResponseError (response id with no pending request)
  - ServerStartError (server could not be located or spawned)

Only ServerStartError is fatal to an extraction run. Everything else is
local to the request, file, or method that caused it.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """JSON-RPC / LSP error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_NOT_INITIALIZED = -32002
    UNKNOWN_ERROR_CODE = -32001
    REQUEST_FAILED = -32803
    SERVER_CANCELLED = -32802
    CONTENT_MODIFIED = -32801
    REQUEST_CANCELLED = -32800


class LSPError(Exception):
    """Base exception for all language-server interaction errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{super().__str__()} [{ctx_str}]"
        return super().__str__()


# ============================================================================
# Transport Errors
# ============================================================================


class TransportError(LSPError):
    """The server pipe is unavailable, closed, or a write failed."""

    def __init__(self, message: str, method: str | None = None, cause: BaseException | None = None):
        context: dict[str, Any] = {}
        if method:
            context["method"] = method
        if cause is not None:
            context["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, context)
        self.method = method
        self.cause = cause


class RequestTimeoutError(TransportError):
    """No response arrived before the request deadline."""

    def __init__(self, method: str, request_id: int, timeout: float):
        super().__init__(f"Request timed out after {timeout}s", method=method)
        self.context["request_id"] = request_id
        self.request_id = request_id
        self.timeout = timeout


# ============================================================================
# Protocol Errors
# ============================================================================


class ProtocolError(LSPError):
    """A framed body could not be decoded into a JSON-RPC message."""

    def __init__(self, message: str, raw: bytes | None = None):
        context: dict[str, Any] = {}
        if raw is not None:
            context["raw"] = raw[:200]
            context["length"] = len(raw)
        super().__init__(message, context)
        self.raw = raw


class RequestError(LSPError):
    """The server answered a request with an error envelope."""

    def __init__(self, method: str | None, code: int, message: str, data: Any = None):
        context: dict[str, Any] = {"code": code}
        if method:
            context["method"] = method
        super().__init__(message, context)
        self.method = method
        self.code = code
        self.error_message = message
        self.data = data


class UnmatchedResponseError(LSPError):
    """A response arrived for an id with no pending request."""

    def __init__(self, request_id: int | str | None):
        super().__init__("Response for unknown request id", {"request_id": request_id})
        self.request_id = request_id


# ============================================================================
# Extraction / Lifecycle Errors
# ============================================================================


class ResolutionError(LSPError):
    """A reference location could not be attributed to any known method."""

    def __init__(self, uri: str, line: int):
        super().__init__("Reference outside any known method", {"uri": uri, "line": line})
        self.uri = uri
        self.line = line


class ServerStartError(LSPError):
    """The language server could not be located or spawned."""

    pass
