"""
Structured Logging with structlog

One configuration for the transport and extraction layers. Log lines go to
stderr: stdout belongs to the chunk JSON the CLI emits.

Server traffic can be large (full file texts in didOpen, whole symbol
trees), so string and bytes values are clipped before rendering.
"""

import logging
import sys
import time
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

MAX_VALUE_CHARS = 500


def clip_long_values(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: decode bytes and shorten oversized values."""
    for key, value in event_dict.items():
        if key == "event":
            continue
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, str) and len(value) > MAX_VALUE_CHARS:
            value = f"{value[:MAX_VALUE_CHARS]}... ({len(value)} chars)"
        event_dict[key] = value
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "console",  # "json" or "console"
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog on top of the stdlib root logger.

    Args:
        level: DEBUG shows every request/response and server stderr line
        format: "json" for pipelines, "console" for a terminal
        include_timestamp: Prefix each line with an ISO timestamp
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        clip_long_values,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]

    if format == "json":
        processors += [structlog.processors.EventRenamer("message"), structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Example:
        ```python
        logger = get_logger(__name__)
        logger.warning("lsp_unmatched_response", request_id=7)
        ```
    """
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Bind fields (e.g. the file being processed) to every following log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context(*keys: str) -> None:
    """Unbind the given keys, or everything when called without arguments."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


class LogPerformance:
    """
    Times a block and logs how it ended.

    Success logs `operation_complete`; an exception logs `<operation>_failed`
    and propagates. Fields learned inside the block can be attached with
    `record()`.

    Example:
        ```python
        with LogPerformance(logger, "reference_pass", methods=40) as perf:
            edges = await resolver.resolve(methods)
            perf.record(edges=len(edges))
        ```
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, operation: str, **fields: Any):
        self.logger = logger
        self.operation = operation
        self.fields = fields
        self._started = 0.0

    def record(self, **fields: Any) -> None:
        self.fields.update(fields)

    @property
    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 2)

    def __enter__(self) -> "LogPerformance":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb) -> bool:
        if exc_type is None:
            self.logger.info(
                "operation_complete", operation=self.operation, duration_ms=self.elapsed_ms, **self.fields
            )
        else:
            self.logger.error(
                f"{self.operation}_failed",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                duration_ms=self.elapsed_ms,
                **self.fields,
            )
        return False
