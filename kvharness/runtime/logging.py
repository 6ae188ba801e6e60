"""Logging setup for the isolated worker process."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..log import LogConfig, Logger, LoggerFactory

if TYPE_CHECKING:
    from ..config import LoggingSettings


def setup_worker_logging(settings: LoggingSettings) -> Logger:
    """
    Create the worker's logger.

    Must be called first thing in the worker process: with the spawn start
    method the worker starts from a fresh interpreter and inherits nothing
    from the driver's logging setup. Output goes to the inherited stdout.

    Returns:
        Logger named "/worker"
    """
    root = LoggerFactory.create_root(LogConfig.from_settings(settings))
    return LoggerFactory.derive(root, "worker")
