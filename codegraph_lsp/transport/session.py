"""
Transport Session

Owns the server's stdin/stdout pipes for the lifetime of one client session
and multiplexes requests, responses, and notifications over them.

Read side: a single asyncio task reads stdout, feeds the framer, and
dispatches each message. Write side: `request` suspends until its own id
is answered; `notify` writes and returns immediately.

Usage:
    session = TransportSession(process.stdout, process.stdin)
    session.start()
    caps = await session.request("initialize", params)
    session.notify("initialized", {})
    ...
    await session.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.infra.exceptions import ErrorCode, RequestTimeoutError, TransportError
from codegraph_lsp.protocol.correlator import RequestCorrelator
from codegraph_lsp.protocol.framer import DEFAULT_MAX_BUFFER_BYTES, MessageFramer
from codegraph_lsp.protocol.message import Message

logger = get_logger(__name__)

NotificationHandler = Callable[[Any], Awaitable[None] | None]

# Chatty server notifications that are intentionally dropped
IGNORED_NOTIFICATIONS = frozenset(
    {
        "window/logMessage",
        "telemetry/event",
        "$/progress",
        "language/status",
        "language/progressReport",
        "textDocument/publishDiagnostics",
    }
)


class StreamReaderLike(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class StreamWriterLike(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def is_closing(self) -> bool: ...

    def close(self) -> None: ...


class TransportSession:
    """
    JSON-RPC session over a pair of pipes.

    Args:
        reader: Server stdout (asyncio.StreamReader or compatible)
        writer: Server stdin (asyncio.StreamWriter or compatible)
        request_timeout: Default per-request deadline in seconds (None = wait forever)
        max_buffer_bytes: Framer safety valve
        read_chunk_size: Bytes requested per read
    """

    def __init__(
        self,
        reader: StreamReaderLike,
        writer: StreamWriterLike,
        *,
        request_timeout: float | None = None,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
        read_chunk_size: int = 64 * 1024,
    ):
        self._reader = reader
        self._writer: StreamWriterLike | None = writer
        self._request_timeout = request_timeout
        self._read_chunk_size = read_chunk_size

        self.framer = MessageFramer(max_buffer_bytes=max_buffer_bytes)
        self.correlator = RequestCorrelator()

        self._handlers: dict[str, NotificationHandler] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._reader_task is not None and not self._reader_task.done() and not self._closed

    @property
    def pending_requests(self) -> int:
        return len(self.correlator)

    def start(self) -> None:
        """Begin reading the server output. Must be called on the event loop."""
        if self._closed:
            raise TransportError("Transport session already stopped")
        if self._reader_task is None:
            self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())

    async def stop(self) -> None:
        """Stop reading, fail every in-flight request, and close stdin."""
        if self._closed:
            return
        self._closed = True

        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None

        self.correlator.reject_all(TransportError("Transport session stopped"))
        self.framer.reset()

        if self._writer is not None:
            with contextlib.suppress(OSError):
                self._writer.close()
            self._writer = None

        logger.debug("lsp_session_stopped")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def request(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        """
        Send a request and wait for its response.

        Args:
            method: LSP method name
            params: Request parameters
            timeout: Deadline in seconds; falls back to the session default

        Returns:
            The response `result`

        Raises:
            TransportError: Pipe not writable, write failed, or session stopped
            RequestTimeoutError: No response before the deadline
            RequestError: Server answered with an error envelope
        """
        self._ensure_writable(method)

        pending = self.correlator.create(method)
        try:
            await self._send(Message.request(pending.request_id, method, params), method)
        except TransportError:
            self.correlator.discard(pending.request_id)
            raise

        logger.debug("lsp_request_sent", method=method, request_id=pending.request_id)

        deadline = timeout if timeout is not None else self._request_timeout
        try:
            if deadline is None:
                return await pending.future
            return await asyncio.wait_for(pending.future, deadline)
        except asyncio.TimeoutError:
            self.correlator.discard(pending.request_id)
            logger.warning("lsp_request_timeout", method=method, request_id=pending.request_id, timeout=deadline)
            raise RequestTimeoutError(method, pending.request_id, deadline) from None
        except asyncio.CancelledError:
            self.correlator.discard(pending.request_id)
            raise

    def notify(self, method: str, params: Any = None) -> None:
        """
        Send a notification. Never waits.

        Raises:
            TransportError: Pipe not writable or write failed
        """
        self._ensure_writable(method)
        self._write(Message.notification(method, params), method)
        logger.debug("lsp_notification_sent", method=method)

    def on_notification(self, method: str, handler: NotificationHandler) -> None:
        """Register a handler for a server notification, replacing any previous one."""
        self._handlers[method] = handler

    def _ensure_writable(self, method: str) -> None:
        if self._closed or self._writer is None or self._writer.is_closing():
            raise TransportError("Server pipe is not writable", method=method)
        if self._reader_task is not None and self._reader_task.done():
            raise TransportError("Server output stream is closed", method=method)

    def _write(self, message: Message, method: str | None = None) -> None:
        if self._writer is None:
            raise TransportError("Server pipe is not writable", method=method)
        try:
            self._writer.write(message.to_bytes())
        except OSError as e:
            raise TransportError("Failed to write to server stdin", method=method, cause=e) from e

    async def _send(self, message: Message, method: str | None = None) -> None:
        self._write(message, method)
        if self._writer is None:
            raise TransportError("Server pipe is not writable", method=method)
        try:
            await self._writer.drain()
        except OSError as e:
            raise TransportError("Failed to flush server stdin", method=method, cause=e) from e

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        reason = "Server closed its output stream"
        try:
            while True:
                try:
                    chunk = await self._reader.read(self._read_chunk_size)
                except Exception as e:
                    logger.error("lsp_read_failed", error=str(e), exc_info=True)
                    break
                if not chunk:
                    break

                for message in self.framer.feed(chunk):
                    try:
                        await self._dispatch(message)
                    except Exception as e:
                        # A failing dispatch drops only that message
                        logger.error(
                            "lsp_dispatch_failed",
                            method=message.method,
                            request_id=message.id,
                            error=str(e),
                            exc_info=True,
                        )
        except asyncio.CancelledError:
            reason = "Transport session stopped"
            raise
        finally:
            logger.info("lsp_stream_closed", pending=len(self.correlator))
            self.correlator.reject_all(TransportError(reason))

    async def _dispatch(self, message: Message) -> None:
        if message.is_response():
            self.correlator.resolve(message)
        elif message.is_request():
            await self._answer_server_request(message)
        elif message.is_notification():
            await self._handle_notification(message)

    async def _handle_notification(self, message: Message) -> None:
        method = message.method
        handler = self._handlers.get(method) if method else None

        if handler is None:
            if method not in IGNORED_NOTIFICATIONS:
                logger.debug("lsp_notification_unhandled", method=method)
            return

        try:
            result = handler(message.params)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("lsp_notification_handler_failed", method=method, error=str(e), exc_info=True)

    async def _answer_server_request(self, message: Message) -> None:
        """Reply to server->client requests so the server never blocks on us."""
        method = message.method
        params = message.params if isinstance(message.params, dict) else {}

        if method == "workspace/configuration":
            items = params.get("items")
            reply = Message.response(message.id, [None] * len(items) if isinstance(items, list) else [])
        elif method in (
            "client/registerCapability",
            "client/unregisterCapability",
            "window/workDoneProgress/create",
            "window/showMessageRequest",
        ):
            reply = Message.response(message.id, None)
        elif method == "workspace/workspaceFolders":
            reply = Message.response(message.id, [])
        else:
            logger.debug("lsp_server_request_unsupported", method=method, request_id=message.id)
            reply = Message.error_response(
                message.id, ErrorCode.METHOD_NOT_FOUND, f"Unhandled method {method}"
            )

        try:
            self._ensure_writable(method or "")
            await self._send(reply, method)
        except TransportError as e:
            logger.warning("lsp_server_request_reply_failed", method=method, error=str(e))
