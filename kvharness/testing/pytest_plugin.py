"""
Pytest fixtures running each test against a freshly started server.

Usage (one line in conftest.py):
    pytest_plugins = ["kvharness.testing.pytest_plugin"]

    @pytest.mark.asyncio
    async def test_set_get(kv_client):
        await kv_client.set("foo", "bar")
        assert await kv_client.get("foo") == "bar"

The fixtures read their configuration through load_config(), so the
server command, address and timeouts follow $KVHARNESS_CONFIG and the
KVHARNESS_* overrides. Override kv_config in your conftest.py to point the
fixtures elsewhere.
"""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from ..config import HarnessConfig
    from ..log import Logger
    from .orchestrator import ServerHarness


@pytest.fixture(scope="session")
def kv_config() -> "HarnessConfig":
    """
    Provide the harness configuration.

    Override this fixture in your conftest.py to provide custom configuration.
    """
    from ..config import load_config

    return load_config()


@pytest.fixture
def kv_test_logger(kv_config: "HarnessConfig") -> "Logger":
    """Provide the driver-side harness logger."""
    from ..log import LogConfig, LoggerFactory

    root = LoggerFactory.create_root(LogConfig.from_settings(kv_config.logging))
    return LoggerFactory.derive(root, "harness")


@pytest.fixture
def kv_harness(kv_config: "HarnessConfig", kv_test_logger: "Logger") -> "ServerHarness":
    """Provide a harness bound to the test configuration."""
    from .orchestrator import ServerHarness

    return ServerHarness(kv_config, lg=kv_test_logger)


@pytest_asyncio.fixture
async def kv_client(
    kv_harness: "ServerHarness",
) -> AsyncGenerator["aioredis.Redis", None]:
    """
    Yield a client connected to a freshly started server.

    The server is stopped and the worker released after the test, whether
    it passed or failed.
    """
    async with kv_harness.session() as client:
        yield client
