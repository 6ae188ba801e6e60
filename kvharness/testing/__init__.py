"""
Test orchestration for the key-value server.

The pytest fixtures live in kvharness.testing.pytest_plugin and are not
imported here; load them with pytest_plugins instead.
"""

from .orchestrator import (
    ServerHarness,
    default_client_factory,
    server_test,
    with_server,
)

__all__ = [
    "ServerHarness",
    "default_client_factory",
    "server_test",
    "with_server",
]
