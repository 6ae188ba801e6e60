"""Lifecycle messages exchanged between the test driver and the worker."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..exceptions import ProtocolError


class Command(str, Enum):
    """Command tag carried by every lifecycle message."""

    START = "start"
    STOP = "stop"
    STARTED = "started"
    STOPPED = "stopped"

    @classmethod
    def parse(cls, value: Any) -> Command:
        """Resolve a command tag, raising ProtocolError for unknown values."""
        try:
            return cls(value)
        except ValueError:
            raise ProtocolError("unknown command", command=value) from None


REQUEST_COMMANDS = frozenset({Command.START, Command.STOP})
RESPONSE_COMMANDS = frozenset({Command.STARTED, Command.STOPPED})

_RESPONSE_FOR = {
    Command.START: Command.STARTED,
    Command.STOP: Command.STOPPED,
}


@dataclass(frozen=True)
class LifecycleRequest:
    """
    Request sent from the test driver to the worker.

    Attributes:
        command: Either Command.START or Command.STOP
    """

    command: Command

    def __post_init__(self) -> None:
        command = Command.parse(self.command)
        if command not in REQUEST_COMMANDS:
            raise ProtocolError("not a request command", command=command.value)
        object.__setattr__(self, "command", command)

    @property
    def expected_response(self) -> Command:
        """Response kind that answers this request."""
        return _RESPONSE_FOR[self.command]

    def to_message(self) -> dict[str, str]:
        return {"command": self.command.value}

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> LifecycleRequest:
        if "command" not in message:
            raise ProtocolError("message has no command tag", message=message)
        return cls(Command.parse(message["command"]))


@dataclass(frozen=True)
class LifecycleResponse:
    """
    Response sent from the worker back to the test driver.

    Attributes:
        command: Either Command.STARTED or Command.STOPPED
        error: Failure description when the request could not be honoured
        pid: Child server PID (set on successful STARTED)
    """

    command: Command
    error: str | None = None
    pid: int | None = None

    def __post_init__(self) -> None:
        command = Command.parse(self.command)
        if command not in RESPONSE_COMMANDS:
            raise ProtocolError("not a response command", command=command.value)
        object.__setattr__(self, "command", command)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"command": self.command.value}
        if self.error is not None:
            message["error"] = self.error
        if self.pid is not None:
            message["pid"] = self.pid
        return message

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> LifecycleResponse:
        if "command" not in message:
            raise ProtocolError("message has no command tag", message=message)
        return cls(
            Command.parse(message["command"]),
            error=message.get("error"),
            pid=message.get("pid"),
        )


START = LifecycleRequest(Command.START)
STOP = LifecycleRequest(Command.STOP)
