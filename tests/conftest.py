"""Shared pytest setup for the kvharness suite; markers live in pyproject.toml."""

import pytest

pytest_plugins = [
    "kvharness.testing.pytest_plugin",
    "tests.fixtures.logging",
    "tests.fixtures.network",
    "tests.fixtures.harness",
]


def pytest_collection_modifyitems(config, items):
    """Tests that spawn no processes count as unit tests."""
    for item in items:
        if not any(m.name in ("integration", "e2e") for m in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
