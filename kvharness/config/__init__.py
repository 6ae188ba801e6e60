"""
Configuration for the test harness.

Loads YAML configuration with environment variable overrides and schema
validation, producing picklable dataclasses shared with the worker process.
"""

from .config import (
    HarnessConfig,
    LoggingSettings,
    ServerConfig,
    TimeoutsConfig,
    WorkerConfig,
    apply_env_overrides,
    collect_env_overrides,
    load_config,
)
from .constants import CONFIG_PATH_ENV, DEFAULT_ENV_PREFIX

__all__ = [
    "HarnessConfig",
    "ServerConfig",
    "TimeoutsConfig",
    "WorkerConfig",
    "LoggingSettings",
    "load_config",
    "apply_env_overrides",
    "collect_env_overrides",
    "CONFIG_PATH_ENV",
    "DEFAULT_ENV_PREFIX",
]
