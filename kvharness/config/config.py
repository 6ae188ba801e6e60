"""
Configuration loading for the test harness.

Reads a YAML file, applies environment variable overrides, validates the
result with the pydantic schemas and returns plain, picklable dataclasses
that can be handed to the worker process.

Environment Variable Override Format:
    KVHARNESS_<SECTION>_<KEY>=value

Examples:
    KVHARNESS_SERVER_PORT=6380
    KVHARNESS_SERVER_COMMAND="./target/release/server"
    KVHARNESS_TIMEOUTS_SHUTDOWN_GRACE=2.5
    KVHARNESS_LOGGING_LEVEL=debug
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import pydantic
import yaml  # type: ignore[import-untyped]

from ..exceptions import ConfigError
from .constants import (
    CONFIG_PATH_ENV,
    DEFAULT_ENV_PREFIX,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SERVER_COMMAND,
    MAX_CONFIG_SIZE_BYTES,
)
from .schemas import HarnessSchema


@dataclass
class ServerConfig:
    """
    Server under test.

    Attributes:
        command: Argv used to launch the server (default: cargo run --release)
        host: Address the client connects to (default: "127.0.0.1")
        port: Port the client connects to (default: 6379)
        cwd: Working directory for the server (None = inherited)
        env: Extra environment variables layered over the inherited ones
    """

    command: list[str] = field(default_factory=lambda: list(DEFAULT_SERVER_COMMAND))
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class TimeoutsConfig:
    """
    Bounds on every wait, in seconds.

    Attributes:
        handshake: Max wait for a started/stopped response (default: 120.0).
            Generous because the default command may compile the server.
        shutdown_grace: Wait after SIGTERM before SIGKILL (default: 5.0)
        connect: Max wait for the server to answer PING (default: 30.0)
        connect_interval: Delay between readiness probes (default: 0.1)
        worker_join: Wait for the worker process to exit (default: 5.0)
    """

    handshake: float = 120.0
    shutdown_grace: float = 5.0
    connect: float = 30.0
    connect_interval: float = 0.1
    worker_join: float = 5.0


@dataclass
class WorkerConfig:
    """
    Isolated worker process settings.

    Attributes:
        start_method: multiprocessing start method (default: "spawn")
        poll_interval: Response queue polling interval (default: 0.01)
    """

    start_method: str = "spawn"
    poll_interval: float = 0.01


@dataclass
class LoggingSettings:
    """Logging settings shared by the driver and the worker."""

    level: str | bool = "info"
    location: bool | int = 0
    micros: bool = False
    colors: bool = True


@dataclass
class HarnessConfig:
    """Complete harness configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def address(self) -> tuple[str, int]:
        return self.server.host, self.server.port

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HarnessConfig:
        """
        Validate a raw mapping and build the dataclass tree.

        Raises:
            ConfigError: If validation fails
        """
        try:
            schema = HarnessSchema.model_validate(data or {})
        except pydantic.ValidationError as e:
            raise ConfigError("invalid harness configuration", errors=e.errors()) from e

        return cls(
            server=ServerConfig(**schema.server.model_dump()),
            timeouts=TimeoutsConfig(**schema.timeouts.model_dump()),
            worker=WorkerConfig(**schema.worker.model_dump()),
            logging=LoggingSettings(**schema.logging.model_dump()),
        )


def _check_file_size(path: Path) -> None:
    """Check file size limit before parsing."""
    file_size = path.stat().st_size
    if file_size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "configuration file too large",
            path=str(path),
            size=file_size,
            limit=MAX_CONFIG_SIZE_BYTES,
        )


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    if not path.is_file():
        raise ConfigError("configuration file not found", path=str(path))

    _check_file_size(path)
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError("malformed YAML", path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping", path=str(path))
    return data


def _convert_env_value(value: str) -> bool | int | float | str | list[Any] | None:
    """
    Convert environment variable string to appropriate type.

    Args:
        value: Environment variable value as string

    Returns:
        Converted value with appropriate type
    """
    if value.lower() in ("null", "none", ""):
        return None

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    # Comma-separated lists
    if "," in value:
        return [_convert_env_value(v.strip()) for v in value.split(",")]

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


def _env_key_to_path(env_key: str, prefix: str, template: dict[str, Any]) -> list[str]:
    """
    Convert an environment variable key to a configuration path.

    Key segments are matched against the known configuration keys so that
    keys containing underscores resolve correctly:
    KVHARNESS_TIMEOUTS_SHUTDOWN_GRACE -> ['timeouts', 'shutdown_grace'].
    Once a free-form mapping (server.env) is reached, the rest of the key
    is kept verbatim: KVHARNESS_SERVER_ENV_RUST_LOG -> ['server', 'env', 'RUST_LOG'].
    """
    raw_parts = env_key[len(prefix) :].split("_")
    path: list[str] = []
    current: Any = template
    i = 0

    while i < len(raw_parts):
        if isinstance(current, dict) and not current and path:
            path.append("_".join(raw_parts[i:]))
            break

        match = None
        if isinstance(current, dict):
            # Prefer the longest run of segments naming a known key
            for j in range(len(raw_parts), i, -1):
                candidate = "_".join(raw_parts[i:j]).lower()
                if candidate in current:
                    match = (candidate, j)
                    break

        if match is None:
            path.extend(p.lower() for p in raw_parts[i:])
            break

        key, i = match
        path.append(key)
        current = current[key]

    return path


def _set_nested_value(data: dict[str, Any], path: list[str], value: Any) -> None:
    """Set a nested value, creating intermediate mappings as needed."""
    current = data
    for part in path[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[path[-1]] = value


def collect_env_overrides(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Get all environment variable overrides that would be applied.

    Returns:
        Mapping of dotted config path to converted value
    """
    template = HarnessConfig().to_dict()
    overrides = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == CONFIG_PATH_ENV:
            continue
        path = _env_key_to_path(key, prefix, template)
        overrides[".".join(path)] = _convert_env_value(value)
    return overrides


def apply_env_overrides(
    data: dict[str, Any], prefix: str = DEFAULT_ENV_PREFIX
) -> dict[str, Any]:
    """Apply environment variable overrides to raw configuration data."""
    template = HarnessConfig().to_dict()
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == CONFIG_PATH_ENV:
            continue
        path = _env_key_to_path(key, prefix, template)
        _set_nested_value(data, path, _convert_env_value(value))
    return data


def load_config(
    path: str | Path | None = None,
    enable_env_overrides: bool = True,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> HarnessConfig:
    """
    Load harness configuration.

    Args:
        path: YAML file to read. Falls back to $KVHARNESS_CONFIG, then to
            built-in defaults when neither is set.
        enable_env_overrides: Whether to apply KVHARNESS_* overrides
        env_prefix: Prefix for override variables

    Returns:
        Validated HarnessConfig

    Raises:
        ConfigError: If the file is missing, malformed or invalid
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or None

    data = _read_yaml(Path(path).expanduser().resolve()) if path else {}

    if enable_env_overrides:
        data = apply_env_overrides(data, env_prefix)

    return HarnessConfig.from_dict(data)
