"""
Server selection for the end-to-end scenarios.

By default the scenarios run against the in-repo fake server. Set
KVHARNESS_SERVER_COMMAND (and optionally KVHARNESS_CONFIG or other
KVHARNESS_* overrides) to run them against a real build instead, e.g.:

    KVHARNESS_SERVER_COMMAND="cargo run --release" pytest tests/e2e
"""

import os

import pytest

from kvharness.config import HarnessConfig, load_config
from tests.fixtures.harness import build_config
from tests.fixtures.network import find_free_port


@pytest.fixture(scope="session")
def kv_config() -> HarnessConfig:
    """Configuration shared by every scenario; one server per test."""
    if os.environ.get("KVHARNESS_SERVER_COMMAND") or os.environ.get("KVHARNESS_CONFIG"):
        return load_config()
    return build_config(find_free_port())
