"""
Configuration schemas using Pydantic for validation.

Raw YAML (after environment overrides) is validated against these models
before being turned into the plain dataclasses the runtime passes around.
"""

import shlex
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_SERVER_COMMAND

_VALID_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServerSchema(BaseModel):
    """Configuration for the server under test."""

    command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SERVER_COMMAND),
        description="Argv used to launch the server",
    )
    host: str = Field(default=DEFAULT_HOST, description="Address clients connect to")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")
    cwd: str | None = Field(
        default=None, description="Working directory (inherited when unset)"
    )
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment for the server"
    )

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, v: Any) -> Any:
        """Accept a shell-style string as well as a list."""
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Server command must not be empty")
        return v

    @field_validator("env", mode="before")
    @classmethod
    def stringify_env(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    model_config = ConfigDict(extra="forbid")


class TimeoutsSchema(BaseModel):
    """Bounds on every wait the harness performs, in seconds."""

    handshake: float = Field(default=120.0, gt=0)
    shutdown_grace: float = Field(default=5.0, gt=0)
    connect: float = Field(default=30.0, gt=0)
    connect_interval: float = Field(default=0.1, gt=0)
    worker_join: float = Field(default=5.0, gt=0)

    @model_validator(mode="after")
    def validate_interval(self) -> "TimeoutsSchema":
        if self.connect_interval > self.connect:
            raise ValueError("connect_interval must not exceed connect")
        return self

    model_config = ConfigDict(extra="forbid")


class WorkerSchema(BaseModel):
    """Configuration for the isolated worker process."""

    start_method: str = Field(default="spawn")
    poll_interval: float = Field(default=0.01, gt=0)

    @field_validator("start_method")
    @classmethod
    def validate_start_method(cls, v: str) -> str:
        if v not in ("spawn", "fork", "forkserver"):
            raise ValueError(f"Invalid start method '{v}'")
        return v

    model_config = ConfigDict(extra="forbid")


class LoggingSchema(BaseModel):
    """Configuration for logging."""

    level: str | bool = Field(default="info", description="Global log level")
    location: bool | int = Field(default=0, description="Show file locations")
    micros: bool = Field(default=False, description="Show microsecond timestamps")
    colors: bool = Field(default=True, description="Colored console output")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: Any) -> Any:
        """Validate log level is a recognized level."""
        if isinstance(v, str) and v.upper() not in _VALID_LEVELS + ["FALSE"]:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(_VALID_LEVELS)}"
            )
        return v

    model_config = ConfigDict(extra="forbid")


class HarnessSchema(BaseModel):
    """Top-level harness configuration."""

    server: ServerSchema = Field(default_factory=ServerSchema)
    timeouts: TimeoutsSchema = Field(default_factory=TimeoutsSchema)
    worker: WorkerSchema = Field(default_factory=WorkerSchema)
    logging: LoggingSchema = Field(default_factory=LoggingSchema)

    model_config = ConfigDict(extra="forbid")
