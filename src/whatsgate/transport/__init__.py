"""Session client transports for whatsgate.

The abstract interface keeps the session manager independent of how
the protocol engine is reached.

Public API:
    SessionClient -- Abstract base class
    HttpBridgeClient -- Client for the HTTP bridge sidecar
"""

from whatsgate.transport.base import EventSink, SessionClient

__all__ = ["EventSink", "SessionClient", "HttpBridgeClient"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "HttpBridgeClient":
        from whatsgate.transport.http_bridge import HttpBridgeClient
        return HttpBridgeClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
