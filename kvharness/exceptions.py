"""
Unified exception hierarchy for the test harness.

All harness-specific exceptions inherit from HarnessError, allowing callers
to catch every harness failure with a single except clause while still
being able to tell startup, protocol and teardown problems apart.
"""

from typing import Any


class HarnessError(Exception):
    """
    Base exception for all harness errors.

    Example:
        try:
            await harness.with_server(body)
        except HarnessError as e:
            lg.error("harness failure", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(HarnessError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found
        - Invalid YAML syntax
        - Value rejected by schema validation
    """

    pass


class ProtocolError(HarnessError):
    """
    Handshake protocol violations.

    Examples:
        - Unknown command tag in a message
        - stop requested before started was observed
        - start requested while a cycle is still open
        - A second listener registered for the same response kind
    """

    pass


class StartupError(HarnessError):
    """
    Server startup errors.

    Examples:
        - Server command could not be launched
        - Server never accepted client connections
    """

    pass


class HandshakeTimeoutError(HarnessError, TimeoutError):
    """No response arrived for a lifecycle request within the bound."""

    pass


class TeardownError(HarnessError):
    """
    Teardown errors.

    Raised when the stop handshake or the release of the worker fails
    after a test body completed normally.
    """

    pass
