import os
from contextlib import contextmanager

import httpx
import pytest
import pytest_asyncio

# Config is initialized at import time, so pin the environment first.
os.environ.setdefault("LOG_CONFIG_PATH", "/tmp/open-runtimes-missing-logging.yaml")
os.environ.setdefault("OPEN_RUNTIMES_ENTRYPOINT", "index")

from services.runtime.config import RuntimeConfig  # noqa: E402
from services.runtime.core.log_capture import (  # noqa: E402
    install_stream_capture,
    uninstall_stream_capture,
)
from services.runtime.main import create_app  # noqa: E402
from services.runtime.services.handler_registry import HandlerRegistry  # noqa: E402


@pytest.fixture
def logs_dir(tmp_path):
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def make_config(logs_dir):
    def _make(**overrides):
        values = {
            "OPEN_RUNTIMES_SECRET": "",
            "OPEN_RUNTIMES_HEADERS": "{}",
            "OPEN_RUNTIMES_ENTRYPOINT": "index",
            "LOGS_DIR": str(logs_dir),
            "HANDLER_POOL_SIZE": 4,
        }
        values.update(overrides)
        return RuntimeConfig(_env_file=None, **values)

    return _make


@pytest.fixture
def registry():
    return HandlerRegistry()


@pytest.fixture
def make_app(make_config, registry):
    apps = []

    def _make(**overrides):
        app = create_app(make_config(**overrides), registry)
        apps.append(app)
        return app

    yield _make

    for app in apps:
        app.state.execution_engine.shutdown()


@pytest.fixture
def main_app(make_app):
    return make_app()


@pytest_asyncio.fixture
async def async_client(main_app):
    transport = httpx.ASGITransport(app=main_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def client_for():
    """Build an AsyncClient for an app created inside the test."""

    def _client(app):
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")

    return _client


@pytest.fixture
def capture_streams():
    """
    Install the stdout/stderr proxies for a block of a test body.

    pytest swaps sys.stdout between test phases, so the proxies cannot be
    installed from fixture setup.
    """

    @contextmanager
    def _capture():
        install_stream_capture()
        try:
            yield
        finally:
            uninstall_stream_capture()

    return _capture
