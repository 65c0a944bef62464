"""Cross-cutting utilities (logging)."""

from .observability import LogPerformance, add_context, clear_context, get_logger, setup_logging

__all__ = [
    "LogPerformance",
    "add_context",
    "clear_context",
    "get_logger",
    "setup_logging",
]
