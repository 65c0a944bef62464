"""
Request/response correlation

Explicit table mapping request id -> pending future. An id is inserted when
the request is sent and removed the moment its response (or a timeout, or
cancellation) is observed. Ids come from a session-scoped counter and are
never reused.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.infra.exceptions import LSPError, RequestError, UnmatchedResponseError
from codegraph_lsp.protocol.message import Message, RequestId

logger = get_logger(__name__)


@dataclass
class PendingRequest:
    """Single-use completion handle for one in-flight request."""

    request_id: int
    method: str
    future: asyncio.Future[Any]
    sent_at: float = field(default_factory=time.monotonic)


class RequestCorrelator:
    """
    Owns the id counter and the pending-request table for one session.

    Not thread-safe: all calls must happen on the event loop that owns
    the session.
    """

    def __init__(self, first_id: int = 1):
        self._next_id = first_id
        self._pending: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    @property
    def pending_ids(self) -> list[int]:
        return list(self._pending)

    def create(self, method: str) -> PendingRequest:
        """Allocate the next id and register a pending future for it."""
        request_id = self._next_id
        self._next_id += 1

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        pending = PendingRequest(request_id=request_id, method=method, future=future)
        self._pending[request_id] = pending
        return pending

    def resolve(self, message: Message) -> bool:
        """
        Complete the pending request a response belongs to.

        Returns:
            True if a pending request was completed, False if the response
            was unmatched (unknown, duplicate, or late) and dropped
        """
        request_id = _normalize_id(message.id)
        pending = self._pending.pop(request_id, None) if request_id is not None else None

        if pending is None:
            unmatched = UnmatchedResponseError(message.id)
            logger.warning("lsp_unmatched_response", error=str(unmatched), request_id=message.id)
            return False

        if pending.future.done():
            # Caller already gave up (cancelled)
            logger.debug("lsp_response_after_cancel", request_id=request_id, method=pending.method)
            return False

        if message.error is not None:
            pending.future.set_exception(
                RequestError(
                    method=pending.method,
                    code=message.error.code,
                    message=message.error.message,
                    data=message.error.data,
                )
            )
        else:
            pending.future.set_result(message.result)

        logger.debug(
            "lsp_response_received",
            request_id=request_id,
            method=pending.method,
            elapsed_ms=round((time.monotonic() - pending.sent_at) * 1000, 2),
            failed=message.error is not None,
        )
        return True

    def discard(self, request_id: int) -> PendingRequest | None:
        """Forget a pending request without completing it."""
        return self._pending.pop(request_id, None)

    def reject_all(self, error: LSPError) -> int:
        """
        Fail every in-flight request and empty the table.

        Returns:
            Number of requests rejected
        """
        pending = list(self._pending.values())
        self._pending.clear()

        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(error)

        if pending:
            logger.warning("lsp_pending_rejected", count=len(pending), error=str(error))
        return len(pending)


def _normalize_id(request_id: RequestId | None) -> int | None:
    """Our ids are ints; tolerate servers that echo them back as strings."""
    if isinstance(request_id, int):
        return request_id
    if isinstance(request_id, str) and request_id.isdigit():
        return int(request_id)
    return None
