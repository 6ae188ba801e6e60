"""
Integration-test harness for a Redis-protocol key-value server.

Each test runs against a freshly started server owned by an isolated
worker process; the driver talks to the worker over a start/started,
stop/stopped handshake and talks to the server with a real client.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import HarnessConfig, load_config
from .exceptions import (
    ConfigError,
    HandshakeTimeoutError,
    HarnessError,
    ProtocolError,
    StartupError,
    TeardownError,
)
from .testing import ServerHarness, server_test, with_server

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("kvharness")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

__all__ = [
    "__version__",
    "HarnessConfig",
    "load_config",
    "ServerHarness",
    "with_server",
    "server_test",
    "HarnessError",
    "ConfigError",
    "ProtocolError",
    "StartupError",
    "HandshakeTimeoutError",
    "TeardownError",
]
