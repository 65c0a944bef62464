"""
Content-Length message framing

Turns an arbitrarily fragmented byte stream from the server stdout into
discrete JSON-RPC messages.

Recovery rules:
- bytes before the first `Content-Length:` marker are discarded
- a body that is not valid JSON is skipped up to the next marker
- a buffer that grows past `max_buffer_bytes` without a complete header is cleared
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.infra.exceptions import ProtocolError
from codegraph_lsp.protocol.message import Message

logger = get_logger(__name__)

HEADER_MARKER = b"Content-Length:"
HEADER_PATTERN = re.compile(rb"Content-Length: (\d+)\r\n(?:Content-Type: [^\r\n]+\r\n)?\r\n")
HEADER_TERMINATOR = b"\r\n\r\n"

DEFAULT_MAX_BUFFER_BYTES = 1024 * 1024


class MessageFramer:
    """
    Incremental decoder for length-prefixed JSON-RPC messages.

    Usage:
        framer = MessageFramer()
        for message in framer.feed(chunk):
            dispatch(message)

    `feed` appends eagerly and returns a lazy iterator. Messages left
    unconsumed by the caller stay buffered and are produced by the next call.
    """

    def __init__(self, max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES):
        self._buffer = bytearray()
        self._max_buffer_bytes = max_buffer_bytes

    @property
    def buffered(self) -> int:
        """Number of bytes waiting for a complete message."""
        return len(self._buffer)

    def reset(self) -> None:
        self._buffer.clear()

    def feed(self, data: bytes) -> Iterator[Message]:
        self._buffer.extend(data)
        return self._drain()

    def _drain(self) -> Iterator[Message]:
        while True:
            if not self._resync():
                return

            match = HEADER_PATTERN.match(self._buffer)
            if match is None:
                if self._buffer.find(HEADER_TERMINATOR) != -1:
                    # Complete header block that does not parse: skip past this marker
                    logger.warning("lsp_header_malformed", header=_preview(self._buffer[:80]))
                    del self._buffer[: len(HEADER_MARKER)]
                    continue
                self._check_overflow()
                return

            body_start = match.end()
            body_end = body_start + int(match.group(1))
            if len(self._buffer) < body_end:
                return

            body = bytes(self._buffer[body_start:body_end])
            try:
                message = Message.from_bytes(body)
            except ProtocolError as e:
                logger.error(
                    "lsp_body_malformed",
                    error=str(e),
                    header=_preview(match.group(0)),
                    content_length=body_end - body_start,
                )
                next_marker = self._buffer.find(HEADER_MARKER, body_end)
                if next_marker != -1:
                    del self._buffer[:next_marker]
                else:
                    del self._buffer[:body_end]
                continue

            del self._buffer[:body_end]
            yield message

    def _resync(self) -> bool:
        """
        Drop anything before the first header marker.

        Returns:
            True if the buffer now starts with a marker
        """
        if not self._buffer:
            return False

        marker = self._buffer.find(HEADER_MARKER)
        if marker == 0:
            return True

        if marker > 0:
            logger.warning("lsp_garbage_discarded", size=marker, data=_preview(self._buffer[: min(marker, 200)]))
            del self._buffer[:marker]
            return True

        # No marker yet: keep only a tail that could be the start of one
        keep = len(HEADER_MARKER) - 1
        if len(self._buffer) > keep:
            discard = len(self._buffer) - keep
            tail = bytes(self._buffer[discard:])
            # Only keep the tail if it is a genuine marker prefix
            while tail and not HEADER_MARKER.startswith(tail):
                tail = tail[1:]
            logger.warning(
                "lsp_garbage_discarded",
                size=len(self._buffer) - len(tail),
                data=_preview(self._buffer[:200]),
            )
            self._buffer[:] = tail
        return False

    def _check_overflow(self) -> None:
        if len(self._buffer) > self._max_buffer_bytes:
            logger.warning("lsp_buffer_overflow_cleared", size=len(self._buffer), limit=self._max_buffer_bytes)
            self._buffer.clear()


def _preview(data: bytes | bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")
