"""
Process runtime for the harness.

The worker process owns the server child; the test driver reaches it only
through the handshake channel.
"""

from .channel import HandshakeChannel
from .controller import CancellationSignal, ProcessLifecycleController
from .logging import setup_worker_logging
from .protocol import (
    REQUEST_COMMANDS,
    RESPONSE_COMMANDS,
    START,
    STOP,
    Command,
    LifecycleRequest,
    LifecycleResponse,
)
from .worker import SHUTDOWN, WorkerManager, worker_main

__all__ = [
    "Command",
    "LifecycleRequest",
    "LifecycleResponse",
    "REQUEST_COMMANDS",
    "RESPONSE_COMMANDS",
    "START",
    "STOP",
    "SHUTDOWN",
    "HandshakeChannel",
    "CancellationSignal",
    "ProcessLifecycleController",
    "WorkerManager",
    "worker_main",
    "setup_worker_logging",
]
