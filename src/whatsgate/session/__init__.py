"""Session lifecycle and inbound dispatch.

Public API:
    SessionManager -- Owns the external session and its status
    InboundDispatcher -- Answers inbound messages via the command resolver
"""

from whatsgate.session.dispatcher import InboundDispatcher
from whatsgate.session.manager import ClientFactory, SessionManager

__all__ = ["ClientFactory", "InboundDispatcher", "SessionManager"]
