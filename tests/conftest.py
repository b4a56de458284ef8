"""Shared test fixtures for the whatsgate test suite.

Provides an in-memory session client, a session manager wired to it,
and the default command resolver and reply catalog.
"""

from __future__ import annotations

import pytest

from whatsgate.commands.catalog import DEFAULT_REPLIES, DEFAULT_VARIANTS, ReplyCatalog
from whatsgate.commands.resolver import CommandResolver
from whatsgate.domain.models import (
    Authenticated,
    CredentialReady,
    InboundMessage,
    Ready,
    SessionIdentity,
)
from whatsgate.session.manager import SessionManager
from whatsgate.transport.base import SessionClient


# ---------------------------------------------------------------------------
# Fake session client
# ---------------------------------------------------------------------------


class FakeSessionClient(SessionClient):
    """In-memory SessionClient that records every call.

    Set ``failures[<method name>]`` to an exception to make that call fail.
    """

    def __init__(self) -> None:
        super().__init__()
        self.initialized = False
        self.destroyed = False
        self.logout_calls = 0
        self.pairing_code = "ABCD-1234"
        self.pairing_requests: list[str] = []
        self.sent: list[tuple[str, str]] = []
        self.display_names: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}

    def _maybe_fail(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    async def initialize(self) -> None:
        self._maybe_fail("initialize")
        self.initialized = True

    async def request_pairing_code(self, phone: str) -> str:
        self.pairing_requests.append(phone)
        self._maybe_fail("request_pairing_code")
        return self.pairing_code

    async def send_message(self, chat_id: str, body: str) -> None:
        self._maybe_fail("send_message")
        self.sent.append((chat_id, body))

    async def logout(self) -> None:
        self.logout_calls += 1
        self._maybe_fail("logout")

    async def destroy(self) -> None:
        self.destroyed = True

    async def get_display_name(self, chat_id: str) -> str | None:
        self._maybe_fail("get_display_name")
        return self.display_names.get(chat_id)


class RecordingClientFactory:
    """Creates FakeSessionClients and keeps every instance it created."""

    def __init__(self) -> None:
        self.clients: list[FakeSessionClient] = []
        self.configure = None

    def __call__(self) -> FakeSessionClient:
        client = FakeSessionClient()
        if self.configure is not None:
            self.configure(client)
        self.clients.append(client)
        return client

    @property
    def latest(self) -> FakeSessionClient:
        return self.clients[-1]


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_factory() -> RecordingClientFactory:
    return RecordingClientFactory()


@pytest.fixture
def session_manager(client_factory: RecordingClientFactory) -> SessionManager:
    """A SessionManager with a short reconnect delay (not started)."""
    return SessionManager(client_factory=client_factory, reconnect_delay=0.01)


async def make_ready(manager: SessionManager, client: FakeSessionClient) -> None:
    """Drive ``client`` through QR, authentication and ready."""
    client.emit(CredentialReady(qr="2@qr-payload"))
    client.emit(Authenticated())
    client.emit(Ready(identity=SessionIdentity(number="905321234567", name="Dükkan")))
    await manager.wait_idle()


# ---------------------------------------------------------------------------
# Command fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def resolver() -> CommandResolver:
    return CommandResolver(variants=DEFAULT_VARIANTS)


@pytest.fixture
def catalog() -> ReplyCatalog:
    return ReplyCatalog.from_mapping(DEFAULT_REPLIES)


@pytest.fixture
def inbound_message() -> InboundMessage:
    """A plain greeting from a counterpart."""
    return InboundMessage(
        sender="905551112233@c.us",
        recipient="905321234567@c.us",
        body="Merhaba",
    )


@pytest.fixture
def drive_ready():
    """The ``make_ready`` helper, for tests that need a ready session."""
    return make_ready
