"""Error taxonomy shared by the session manager and the control API."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all whatsgate errors."""


class InvalidInput(GatewayError):
    """Raised for a phone number or message that cannot be used."""


class EmptyMessage(InvalidInput):
    """Raised when an outbound message body is blank."""


class AlreadyConnected(GatewayError):
    """Raised when pairing is requested for a session that is already ready."""


class TransportError(GatewayError):
    """Raised when the underlying session client fails.

    The message of the original failure is passed through verbatim so
    callers can surface it to operators.
    """

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class Unauthorized(GatewayError):
    """Raised when a control request carries the wrong API key."""
