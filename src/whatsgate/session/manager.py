"""Session manager: owns the single external messaging session.

Drives (re)initialization of the session client, applies its lifecycle
events to the session snapshot, and exposes the operator commands
(pair, send, logout). Lifecycle events and inbound messages travel on
two separate queues so ordering is preserved within each channel.

Reconnects follow every disconnect automatically: the previous client is
detached and destroyed, then a fresh one is created and initialized.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Awaitable, Callable, TypeVar

from whatsgate.config.settings import PhoneConfig
from whatsgate.domain.errors import AlreadyConnected, EmptyMessage, TransportError
from whatsgate.domain.models import (
    Authenticated,
    AuthFailed,
    ClientEvent,
    CredentialReady,
    Disconnected,
    InboundMessage,
    LifecycleEvent,
    PendingCredential,
    Ready,
    SessionSnapshot,
    SessionStatus,
)
from whatsgate.phone import normalize_phone, to_chat_id
from whatsgate.transport.base import SessionClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClientFactory = Callable[[], SessionClient]

# States each event may be applied from; None accepts any state
_ALLOWED_SOURCES: dict[str, frozenset[SessionStatus] | None] = {
    "credential_ready": frozenset({
        SessionStatus.INITIALIZING,
        SessionStatus.CREDENTIAL_PENDING,
    }),
    "authenticated": frozenset({
        SessionStatus.INITIALIZING,
        SessionStatus.CREDENTIAL_PENDING,
    }),
    "ready": frozenset({
        SessionStatus.INITIALIZING,
        SessionStatus.CREDENTIAL_PENDING,
        SessionStatus.AUTHENTICATED,
    }),
    "auth_failed": None,
    "disconnected": None,
}


class SessionManager:
    """Owns the session client and the session snapshot.

    All snapshot mutations happen under one lock, and transport calls are
    awaited outside of it. Every client gets a generation number; events
    from a client that has since been replaced are dropped.

    Clients must emit events from the event loop thread.

    Args:
        client_factory: Builds a fresh client for every connect cycle.
        phone_config: Normalization settings for outbound numbers.
        reconnect_delay: Seconds to wait after a disconnect before
            reinitializing.
        operation_timeout: Optional timeout for pair/send/logout/lookup
            calls. None waits as long as the transport does.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        phone_config: PhoneConfig | None = None,
        reconnect_delay: float = 5.0,
        operation_timeout: float | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._phone_config = phone_config or PhoneConfig()
        self._reconnect_delay = reconnect_delay
        self._operation_timeout = operation_timeout

        self._snapshot = SessionSnapshot()
        self._state_lock = asyncio.Lock()
        self._lifecycle: asyncio.Queue[tuple[int, LifecycleEvent]] = asyncio.Queue()
        self._inbound: asyncio.Queue[InboundMessage] = asyncio.Queue()

        self._client: SessionClient | None = None
        self._generation = 0
        self._running = False
        self._lifecycle_task: asyncio.Task[None] | None = None

        # Reconnect token: at most one reconnect task in flight
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_replaces = 0
        self._reconnect_again = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def inbound(self) -> asyncio.Queue[InboundMessage]:
        """Inbound messages from the current client, in arrival order."""
        return self._inbound

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def client(self) -> SessionClient | None:
        return self._client

    def get_status(self) -> SessionSnapshot:
        """Return the current session snapshot."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start applying lifecycle events and initialize the first client."""
        if self._running:
            return
        self._running = True
        self._lifecycle_task = asyncio.create_task(self._lifecycle_loop())
        self._schedule_reconnect(0.0, self._generation)
        logger.info("Session manager started")

    async def stop(self) -> None:
        """Cancel background tasks and destroy the current client."""
        self._running = False
        for task in (self._reconnect_task, self._lifecycle_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None
        self._lifecycle_task = None

        async with self._state_lock:
            client = self._client
            self._client = None
            self._generation += 1
            self._snapshot = SessionSnapshot(status=SessionStatus.DISCONNECTED)
        if client is not None:
            await self._teardown(client)
        logger.info("Session manager stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued lifecycle event has been applied."""
        await self._lifecycle.join()

    async def wait_reconnected(self) -> None:
        """Wait for the in-flight reconnect, if any, to finish."""
        task = self._reconnect_task
        if task is not None:
            await task

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    async def request_pairing_code(self, raw_phone: str) -> str:
        """Request a pairing code for the account at ``raw_phone``.

        Raises:
            InvalidInput: If the phone number has no digits.
            AlreadyConnected: If the session is already ready.
            TransportError: If the client call fails.
        """
        phone = normalize_phone(raw_phone, self._phone_config)
        async with self._state_lock:
            if self._snapshot.status is SessionStatus.READY:
                raise AlreadyConnected("WhatsApp is already connected")
            client, generation = self._require_client("pair")

        logger.info("Requesting pairing code for %s", phone)
        code = await self._call("pair", client.request_pairing_code(phone))

        async with self._state_lock:
            if (
                generation == self._generation
                and self._snapshot.status is SessionStatus.CREDENTIAL_PENDING
            ):
                self._snapshot = SessionSnapshot(
                    status=SessionStatus.CREDENTIAL_PENDING,
                    pending_credential=PendingCredential(kind="pairing_code", value=code),
                )
        return code

    async def send_message(self, raw_phone: str, body: str) -> None:
        """Send ``body`` to a user-entered phone number.

        Raises:
            EmptyMessage: If the body is blank.
            InvalidInput: If the phone number has no digits.
            TransportError: If the client call fails.
        """
        if not body or not body.strip():
            raise EmptyMessage("Message is empty")
        chat_id = to_chat_id(raw_phone, self._phone_config)
        await self.reply(chat_id, body)

    async def reply(self, chat_id: str, body: str) -> None:
        """Send ``body`` to an already-canonical chat id."""
        async with self._state_lock:
            client, _ = self._require_client("send")
        await self._call("send", client.send_message(chat_id, body))

    async def lookup_display_name(self, chat_id: str) -> str | None:
        """Return the contact's display name, or None if it has none.

        Raises:
            TransportError: If the client call fails.
        """
        async with self._state_lock:
            client, _ = self._require_client("contact")
        return await self._call("contact", client.get_display_name(chat_id))

    async def logout(self) -> None:
        """Log out remotely and reset the local session.

        The local session is torn down and a reinitialization scheduled
        whether or not the remote call succeeds. If the client was already
        replaced by a reconnect while the call was in flight, the new
        session is left alone.

        Raises:
            TransportError: If the remote logout failed (after the reset).
        """
        async with self._state_lock:
            client = self._client
            generation = self._generation

        error: TransportError | None = None
        if client is None:
            error = TransportError("Session is not initialized", operation="logout")
        else:
            try:
                await self._call("logout", client.logout())
            except TransportError as e:
                error = e
                logger.warning("Remote logout failed: %s", e)

        stale: SessionClient | None = None
        async with self._state_lock:
            if client is not None and self._client is client:
                stale = client
                self._client = None
                self._generation += 1
                self._snapshot = SessionSnapshot(status=SessionStatus.DISCONNECTED)
        if stale is not None:
            await self._teardown(stale)
        if stale is not None or client is None:
            logger.info("Logged out, reinitializing session")
            self._schedule_reconnect(0.0, generation)
        else:
            logger.info("Client replaced during logout, keeping the new session")

        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _on_client_event(self, generation: int, event: ClientEvent) -> None:
        """Route an emitted event to its channel."""
        if isinstance(event, InboundMessage):
            if generation != self._generation:
                logger.debug("Dropping message from stale client (generation %d)", generation)
                return
            self._inbound.put_nowait(event)
        else:
            self._lifecycle.put_nowait((generation, event))

    async def _lifecycle_loop(self) -> None:
        while True:
            generation, event = await self._lifecycle.get()
            try:
                await self._apply(generation, event)
            except Exception:
                logger.exception("Failed to apply %s event", event.event_type)
            finally:
                self._lifecycle.task_done()

    async def _apply(self, generation: int, event: LifecycleEvent) -> None:
        """Single transition handler for every lifecycle event."""
        reconnect = False
        async with self._state_lock:
            if generation != self._generation:
                logger.debug(
                    "Dropping stale %s event (generation %d, current %d)",
                    event.event_type, generation, self._generation,
                )
                return

            current = self._snapshot.status
            allowed = _ALLOWED_SOURCES[event.event_type]
            if current is SessionStatus.AUTH_FAILED and not isinstance(event, Disconnected):
                logger.warning("Ignoring %s event after auth failure", event.event_type)
                return
            if allowed is not None and current not in allowed:
                logger.warning("Ignoring %s event in %s state", event.event_type, current.value)
                return

            if isinstance(event, CredentialReady):
                new = SessionSnapshot(
                    status=SessionStatus.CREDENTIAL_PENDING,
                    pending_credential=PendingCredential(kind="qr", value=event.qr),
                )
                logger.info("QR code received")
            elif isinstance(event, Authenticated):
                new = SessionSnapshot(status=SessionStatus.AUTHENTICATED)
                logger.info("WhatsApp authenticated")
            elif isinstance(event, Ready):
                new = SessionSnapshot(status=SessionStatus.READY, identity=event.identity)
                logger.info("WhatsApp client is ready")
            elif isinstance(event, AuthFailed):
                new = SessionSnapshot(status=SessionStatus.AUTH_FAILED)
                logger.error("Auth failure: %s", event.message)
            else:
                new = SessionSnapshot(status=SessionStatus.DISCONNECTED)
                logger.warning("WhatsApp disconnected: %s", event.reason)
                reconnect = True

            self._snapshot = new
            logger.debug("Session status %s -> %s", current.value, new.status.value)

        if reconnect:
            self._schedule_reconnect(self._reconnect_delay, generation)

    # ------------------------------------------------------------------
    # Reconnect
    # ------------------------------------------------------------------

    def _schedule_reconnect(self, delay: float, replaces: int) -> asyncio.Task[None] | None:
        """Schedule replacement of client ``replaces``, unless one is in flight."""
        if not self._running:
            return None
        task = self._reconnect_task
        if task is not None and not task.done():
            if replaces > self._reconnect_replaces:
                # Lost the client the in-flight reconnect just created
                self._reconnect_again = True
            logger.debug("Reconnect already in flight")
            return task
        self._reconnect_replaces = replaces
        self._reconnect_again = False
        self._reconnect_task = asyncio.create_task(self._reconnect(delay))
        return self._reconnect_task

    async def _reconnect(self, delay: float) -> None:
        while self._running:
            if delay > 0:
                logger.info("Reinitializing session in %.1fs", delay)
                await asyncio.sleep(delay)
            try:
                generation = await self._initialize_client()
            except Exception as e:
                logger.error("Session initialization failed: %s", e)
                delay = self._reconnect_delay
                continue
            if not self._reconnect_again:
                return
            self._reconnect_again = False
            self._reconnect_replaces = generation
            delay = self._reconnect_delay

    async def _initialize_client(self) -> int:
        """Tear down the current client, then create and start a new one."""
        async with self._state_lock:
            old = self._client
            self._client = None
            self._generation += 1
            generation = self._generation
            self._snapshot = SessionSnapshot(status=SessionStatus.INITIALIZING)
        if old is not None:
            await self._teardown(old)

        client = self._client_factory()
        client.attach(functools.partial(self._on_client_event, generation))
        async with self._state_lock:
            self._client = client
        logger.info("Initializing session (generation %d)", generation)

        try:
            await client.initialize()
        except Exception:
            async with self._state_lock:
                if self._client is client:
                    self._client = None
                    self._generation += 1
                    self._snapshot = SessionSnapshot(status=SessionStatus.DISCONNECTED)
            await self._teardown(client)
            raise
        return generation

    async def _teardown(self, client: SessionClient) -> None:
        client.detach()
        try:
            await client.destroy()
        except Exception as e:
            logger.warning("Failed to destroy session client: %s", e)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_client(self, operation: str) -> tuple[SessionClient, int]:
        if self._client is None:
            raise TransportError("WhatsApp session is not initialized", operation=operation)
        return self._client, self._generation

    async def _call(self, operation: str, coro: Awaitable[T]) -> T:
        """Await a transport call, normalizing failures to TransportError."""
        try:
            if self._operation_timeout is None:
                return await coro
            return await asyncio.wait_for(coro, self._operation_timeout)
        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"{operation} timed out after {self._operation_timeout}s", operation=operation
            ) from e
        except Exception as e:
            raise TransportError(str(e), operation=operation) from e
