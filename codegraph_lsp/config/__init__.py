"""Configuration (pydantic-settings)."""

from .settings import (
    ExtractionConfig,
    LoggingConfig,
    ServerConfig,
    Settings,
    TransportConfig,
    get_settings,
)

__all__ = [
    "ExtractionConfig",
    "LoggingConfig",
    "ServerConfig",
    "Settings",
    "TransportConfig",
    "get_settings",
]
