"""
JSON-RPC 2.0 message envelope

A message is exactly one of:
- request:      id + method (+ params)
- response:     id + (result xor error)
- notification: method (+ params), no id

Wire format:
    Content-Length: <N>\\r\\n
    Content-Type: application/vscode-jsonrpc; charset=utf-8\\r\\n
    \\r\\n
    <N bytes of UTF-8 JSON>
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from codegraph_lsp.infra.exceptions import ProtocolError

JSONRPC_VERSION = "2.0"
CONTENT_TYPE = "application/vscode-jsonrpc; charset=utf-8"

RequestId = int | str


@dataclass(frozen=True)
class ResponseError:
    """Error object carried by a failed response."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> ResponseError:
        if not isinstance(payload, dict):
            raise ProtocolError(f"Error member must be an object, got {type(payload).__name__}")
        try:
            return cls(code=int(payload["code"]), message=str(payload["message"]), data=payload.get("data"))
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed error object: {e}") from e


@dataclass(frozen=True)
class Message:
    """
    JSON-RPC envelope.

    `has_result` distinguishes a response whose result is JSON null
    (e.g. `shutdown`) from a message with no result member at all.
    """

    id: RequestId | None = None
    method: str | None = None
    params: Any = None
    result: Any = None
    error: ResponseError | None = None
    has_result: bool = False

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def request(cls, request_id: RequestId, method: str, params: Any = None) -> Message:
        return cls(id=request_id, method=method, params=params)

    @classmethod
    def response(cls, request_id: RequestId | None, result: Any = None) -> Message:
        return cls(id=request_id, result=result, has_result=True)

    @classmethod
    def error_response(
        cls,
        request_id: RequestId | None,
        code: int,
        message: str,
        data: Any = None,
    ) -> Message:
        return cls(id=request_id, error=ResponseError(code=code, message=message, data=data))

    @classmethod
    def notification(cls, method: str, params: Any = None) -> Message:
        return cls(method=method, params=params)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def is_request(self) -> bool:
        return self.id is not None and self.method is not None

    def is_response(self) -> bool:
        return self.method is None and (self.has_result or self.error is not None)

    def is_notification(self) -> bool:
        return self.method is not None and self.id is None and not self.has_result and self.error is None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION}
        if self.id is not None or self.is_response():
            payload["id"] = self.id
        if self.method is not None:
            payload["method"] = self.method
            if self.params is not None:
                payload["params"] = self.params
        if self.has_result:
            payload["result"] = self.result
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload

    def to_bytes(self) -> bytes:
        """Frame the message for the wire. Content-Length counts UTF-8 bytes."""
        body = json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        header = f"Content-Length: {len(body)}\r\nContent-Type: {CONTENT_TYPE}\r\n\r\n"
        return header.encode("ascii") + body

    @classmethod
    def from_dict(cls, payload: Any) -> Message:
        """
        Build a message from a decoded JSON value.

        Raises:
            ProtocolError: payload is not an object or matches no envelope shape
        """
        if not isinstance(payload, dict):
            raise ProtocolError(f"JSON-RPC payload must be an object, got {type(payload).__name__}")

        request_id = payload.get("id")
        if request_id is not None and (isinstance(request_id, bool) or not isinstance(request_id, int | str)):
            raise ProtocolError(f"Invalid id type: {type(request_id).__name__}")

        method = payload.get("method")
        if method is not None and not isinstance(method, str):
            raise ProtocolError(f"Invalid method type: {type(method).__name__}")

        has_result = "result" in payload
        error = ResponseError.from_dict(payload["error"]) if payload.get("error") is not None else None

        if method is not None and (has_result or error is not None):
            raise ProtocolError("Message is both a request and a response", raw=None)
        if has_result and error is not None:
            raise ProtocolError("Response carries both result and error")
        if method is None and not has_result and error is None:
            raise ProtocolError("Message has neither method nor result/error")

        return cls(
            id=request_id,
            method=method,
            params=payload.get("params"),
            result=payload.get("result"),
            error=error,
            has_result=has_result,
        )

    @classmethod
    def from_bytes(cls, body: bytes) -> Message:
        """Decode one framed body."""
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Malformed JSON body: {e}", raw=body) from e
        return cls.from_dict(payload)
