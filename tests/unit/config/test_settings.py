"""Tests for environment-driven configuration"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from codegraph_lsp.config.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "CODEGRAPH_LSP_SERVER__JDTLS_HOME",
        "CODEGRAPH_LSP_TRANSPORT__REQUEST_TIMEOUT",
        "CODEGRAPH_LSP_LOGGING__FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.server.jdtls_home is None
        assert settings.server.java_bin == "java"
        assert settings.transport.request_timeout is None
        assert settings.transport.max_buffer_bytes == 1024 * 1024
        assert settings.extraction.file_glob == "**/*.java"
        assert settings.extraction.void_type == "void"
        assert settings.logging.format == "console"


class TestEnvironment:
    def test_nested_overrides(self, monkeypatch):
        monkeypatch.setenv("CODEGRAPH_LSP_SERVER__JDTLS_HOME", "/opt/jdtls")
        monkeypatch.setenv("CODEGRAPH_LSP_TRANSPORT__REQUEST_TIMEOUT", "30")
        monkeypatch.setenv("CODEGRAPH_LSP_LOGGING__FORMAT", "json")

        settings = Settings(_env_file=None)

        assert settings.server.jdtls_home == Path("/opt/jdtls")
        assert settings.transport.request_timeout == 30.0
        assert settings.logging.format == "json"

    def test_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("CODEGRAPH_LSP_TRANSPORT__REQUEST_TIMEOUT", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
