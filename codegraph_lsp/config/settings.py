"""
Centralized configuration for codegraph-lsp

All tunable paths, limits, and timeouts live here so they can be overridden
per environment.

Usage:
    from codegraph_lsp.config import get_settings

    settings = get_settings()
    framer = MessageFramer(max_buffer_bytes=settings.transport.max_buffer_bytes)

Environment variables use the CODEGRAPH_LSP_ prefix and ``__`` for nesting:
    CODEGRAPH_LSP_SERVER__JDTLS_HOME=/opt/jdtls
    CODEGRAPH_LSP_TRANSPORT__REQUEST_TIMEOUT=30
    CODEGRAPH_LSP_LOGGING__FORMAT=json
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """How to locate and launch the Java language server."""

    jdtls_home: Path | None = None
    """Root of the JDT LS distribution (contains plugins/ and config_*/)"""

    java_bin: str = "java"
    """Java executable used to run the server"""

    heap_size: str = "1G"
    """Maximum JVM heap (-Xmx)"""

    data_dir_name: str = ".jdtls_workspace_data"
    """Server workspace data directory, created under the analysed workspace"""

    extra_jvm_args: list[str] = Field(default_factory=list)
    """Additional JVM arguments inserted before -jar"""

    startup_delay: float = Field(default=0.0, ge=0.0, le=120.0)
    """Seconds to wait after `initialized` before issuing requests"""


class TransportConfig(BaseModel):
    """Framing and request correlation limits."""

    request_timeout: float | None = Field(default=None, gt=0.0)
    """Per-request deadline in seconds (None = wait indefinitely)"""

    max_buffer_bytes: int = Field(default=1024 * 1024, ge=1024)
    """Framer safety valve: clear the buffer past this size with no header"""

    read_chunk_size: int = Field(default=64 * 1024, ge=1, le=16 * 1024 * 1024)
    """Bytes requested per read from the server stdout"""


class ExtractionConfig(BaseModel):
    """Chunk extraction behaviour."""

    file_glob: str = "**/*.java"
    """Glob (relative to the workspace) selecting files to analyse"""

    language_id: str = "java"
    """languageId sent with textDocument/didOpen"""

    void_type: str = "void"
    """Return type used when a symbol detail carries none"""


class LoggingConfig(BaseModel):
    """structlog output settings."""

    level: str = "INFO"
    format: Literal["console", "json"] = "console"


class Settings(BaseSettings):
    """
    Root configuration for codegraph-lsp.

    Can be configured via:
    - Environment variables (prefixed with CODEGRAPH_LSP_)
    - .env file in the working directory
    - Direct instantiation

    Examples:
        settings = Settings(server=ServerConfig(jdtls_home=Path("/opt/jdtls")))
    """

    model_config = SettingsConfigDict(
        env_prefix="CODEGRAPH_LSP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global settings instance.

    To reload, call get_settings.cache_clear() first.
    """
    return Settings()
