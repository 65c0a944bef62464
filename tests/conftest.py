"""
Global test configuration and fixtures
"""

import time

import pytest
import structlog

from codegraph_lsp.config.settings import get_settings

# A unit test this slow is usually waiting on a response that never comes
SLOW_TEST_SECONDS = 2.0


@pytest.fixture(autouse=True)
def isolated_state(request):
    """Fresh settings cache and empty log context around every test"""
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()
    started = time.monotonic()

    yield

    elapsed = time.monotonic() - started
    if elapsed > SLOW_TEST_SECONDS:
        print(f"\nSlow ({elapsed:.2f}s): {request.node.nodeid}")
    structlog.contextvars.clear_contextvars()
    get_settings.cache_clear()


@pytest.fixture
def java_workspace(tmp_path):
    """Empty Java project root with a src/ directory"""
    (tmp_path / "src").mkdir()
    return tmp_path


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Fast, in-memory tests")
    config.addinivalue_line("markers", "integration: Needs a real JDT LS installation")


def pytest_collection_modifyitems(config, items):
    for item in items:
        # Path-based markers
        path = str(item.path)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)
