"""Domain models and errors for whatsgate.

This package contains the core data structures, enumerations and the
error taxonomy used throughout the system. All models use Pydantic v2
for validation and serialization.
"""

from whatsgate.domain.errors import (
    AlreadyConnected,
    EmptyMessage,
    GatewayError,
    InvalidInput,
    TransportError,
    Unauthorized,
)
from whatsgate.domain.models import (
    AuthFailed,
    Authenticated,
    ClientEvent,
    CommandMatch,
    CredentialReady,
    Disconnected,
    InboundMessage,
    LifecycleEvent,
    PendingCredential,
    Ready,
    SessionIdentity,
    SessionSnapshot,
    SessionStatus,
)

__all__ = [
    "AlreadyConnected",
    "AuthFailed",
    "Authenticated",
    "ClientEvent",
    "CommandMatch",
    "CredentialReady",
    "Disconnected",
    "EmptyMessage",
    "GatewayError",
    "InboundMessage",
    "InvalidInput",
    "LifecycleEvent",
    "PendingCredential",
    "Ready",
    "SessionIdentity",
    "SessionSnapshot",
    "SessionStatus",
    "TransportError",
    "Unauthorized",
]
