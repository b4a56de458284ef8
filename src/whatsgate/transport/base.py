"""Abstract base class for the external messaging session client.

The protocol engine (a headless browser driving WhatsApp Web, in
practice) is an opaque collaborator. All concrete clients conform to
this interface, so the session manager never depends on how the engine
is reached.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from whatsgate.domain.models import ClientEvent

logger = logging.getLogger(__name__)

EventSink = Callable[[ClientEvent], None]


class SessionClient(ABC):
    """Abstract interface for one external protocol session.

    A client pushes lifecycle events and inbound messages into the sink
    it is attached to, and exposes async commands. One client instance
    represents one session; the manager creates a fresh client for every
    (re)connect cycle.

    Example usage::

        client = HttpBridgeClient(base_url="http://localhost:3002")
        client.attach(events.append)
        await client.initialize()
        await client.send_message("905321234567@c.us", "Merhaba")
        await client.destroy()
    """

    def __init__(self) -> None:
        self._sink: EventSink | None = None

    @property
    def is_attached(self) -> bool:
        return self._sink is not None

    def attach(self, sink: EventSink) -> None:
        """Route emitted events to ``sink``."""
        self._sink = sink

    def detach(self) -> None:
        """Stop delivering events. Safe to call multiple times."""
        self._sink = None

    def emit(self, event: ClientEvent) -> None:
        """Deliver an event to the attached sink, or drop it if detached."""
        if self._sink is None:
            logger.debug("Dropping %s event from detached client", event.event_type)
            return
        self._sink(event)

    @abstractmethod
    async def initialize(self) -> None:
        """Start the session.

        Returns once the engine has accepted the start request; progress
        is reported through emitted lifecycle events.

        Raises:
            TransportError: If the session cannot be started.
        """
        ...

    @abstractmethod
    async def request_pairing_code(self, phone: str) -> str:
        """Request a numeric pairing code for a canonical phone number.

        Raises:
            TransportError: If the engine rejects the request.
        """
        ...

    @abstractmethod
    async def send_message(self, chat_id: str, body: str) -> None:
        """Send a text message to a canonical chat id.

        Raises:
            TransportError: If the message cannot be sent.
        """
        ...

    @abstractmethod
    async def logout(self) -> None:
        """Log the account out remotely and end the session.

        Raises:
            TransportError: If the remote logout fails.
        """
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Release the session's resources without logging out.

        Should be safe to call multiple times.
        """
        ...

    @abstractmethod
    async def get_display_name(self, chat_id: str) -> str | None:
        """Look up a contact's display name, or None if it has none."""
        ...
