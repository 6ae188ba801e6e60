"""Tests for lifecycle protocol messages."""

import pickle

import pytest

from kvharness.exceptions import ProtocolError
from kvharness.runtime.protocol import (
    REQUEST_COMMANDS,
    RESPONSE_COMMANDS,
    START,
    STOP,
    Command,
    LifecycleRequest,
    LifecycleResponse,
)


@pytest.mark.unit
class TestCommand:
    def test_wire_values(self):
        assert [c.value for c in Command] == ["start", "stop", "started", "stopped"]

    def test_parse_accepts_strings(self):
        assert Command.parse("started") is Command.STARTED
        assert Command.parse(Command.STOP) is Command.STOP

    @pytest.mark.parametrize("value", ["restart", "", "START", None, 1])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(ProtocolError, match="unknown command"):
            Command.parse(value)

    def test_request_and_response_sets_are_disjoint(self):
        assert REQUEST_COMMANDS.isdisjoint(RESPONSE_COMMANDS)
        assert REQUEST_COMMANDS | RESPONSE_COMMANDS == set(Command)


@pytest.mark.unit
class TestLifecycleRequest:
    def test_to_message(self):
        assert START.to_message() == {"command": "start"}
        assert STOP.to_message() == {"command": "stop"}

    def test_from_message(self):
        assert LifecycleRequest.from_message({"command": "stop"}) == STOP

    def test_string_command_is_normalized(self):
        request = LifecycleRequest("start")  # type: ignore[arg-type]
        assert request.command is Command.START

    def test_expected_response(self):
        assert START.expected_response is Command.STARTED
        assert STOP.expected_response is Command.STOPPED

    def test_response_command_rejected(self):
        with pytest.raises(ProtocolError, match="not a request command"):
            LifecycleRequest(Command.STARTED)

    def test_missing_command_tag(self):
        with pytest.raises(ProtocolError, match="no command tag"):
            LifecycleRequest.from_message({"cmd": "start"})

    def test_frozen(self):
        with pytest.raises(AttributeError):
            START.command = Command.STOP  # type: ignore[misc]


@pytest.mark.unit
class TestLifecycleResponse:
    def test_ok_response_message(self):
        response = LifecycleResponse(Command.STARTED, pid=4242)
        assert response.ok
        assert response.to_message() == {"command": "started", "pid": 4242}

    def test_error_response_message(self):
        response = LifecycleResponse(Command.STARTED, error="failed to launch 'cargo'")
        assert not response.ok
        assert response.to_message() == {
            "command": "started",
            "error": "failed to launch 'cargo'",
        }

    def test_from_message(self):
        response = LifecycleResponse.from_message({"command": "stopped"})
        assert response == LifecycleResponse(Command.STOPPED)
        assert response.error is None
        assert response.pid is None

    def test_request_command_rejected(self):
        with pytest.raises(ProtocolError, match="not a response command"):
            LifecycleResponse.from_message({"command": "start"})

    def test_messages_survive_pickling(self):
        message = LifecycleResponse(Command.STARTED, pid=1).to_message()
        assert LifecycleResponse.from_message(pickle.loads(pickle.dumps(message))).pid == 1
