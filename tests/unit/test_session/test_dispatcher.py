"""Tests for the InboundDispatcher."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from whatsgate.domain.errors import TransportError
from whatsgate.domain.models import InboundMessage
from whatsgate.session.dispatcher import InboundDispatcher
from whatsgate.session.manager import SessionManager


@pytest.fixture
def mock_session() -> AsyncMock:
    session = AsyncMock(spec=SessionManager)
    session.lookup_display_name.return_value = None
    return session


@pytest.fixture
def dispatcher(mock_session, resolver, catalog) -> InboundDispatcher:
    return InboundDispatcher(session=mock_session, resolver=resolver, catalog=catalog)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_self_originated_message_is_ignored(self, dispatcher, mock_session) -> None:
        message = InboundMessage(sender="1@c.us", body="merhaba", is_self_originated=True)
        assert await dispatcher.dispatch(message) is None
        mock_session.reply.assert_not_called()
        mock_session.lookup_display_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_self_originated_ping_is_ignored(self, dispatcher, mock_session) -> None:
        message = InboundMessage(sender="1@c.us", body="ping", is_self_originated=True)
        assert await dispatcher.dispatch(message) is None
        mock_session.reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_ping_replies_pong(self, dispatcher, mock_session) -> None:
        message = InboundMessage(sender="905551112233@c.us", body="  PING ")
        assert await dispatcher.dispatch(message) == "pong"
        mock_session.reply.assert_awaited_once_with("905551112233@c.us", "pong")
        mock_session.lookup_display_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_sender_name_from_event(
        self, dispatcher, mock_session, inbound_message
    ) -> None:
        message = inbound_message.model_copy(update={"sender_name": "Ayşe"})
        reply = await dispatcher.dispatch(message)
        assert reply is not None
        assert reply.startswith("Merhaba Ayşe!")
        mock_session.lookup_display_name.assert_not_called()
        mock_session.reply.assert_awaited_once_with("905551112233@c.us", reply)

    @pytest.mark.asyncio
    async def test_looks_up_missing_name(self, dispatcher, mock_session, inbound_message) -> None:
        mock_session.lookup_display_name.return_value = "Mehmet"
        reply = await dispatcher.dispatch(inbound_message)
        assert reply is not None
        assert reply.startswith("Merhaba Mehmet!")
        mock_session.lookup_display_name.assert_awaited_once_with("905551112233@c.us")

    @pytest.mark.asyncio
    async def test_generic_reply_without_name(
        self, dispatcher, mock_session, inbound_message, catalog
    ) -> None:
        reply = await dispatcher.dispatch(inbound_message)
        assert reply == catalog.render("merhaba")
        mock_session.reply.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unmatched_text_is_silent(self, dispatcher, mock_session) -> None:
        message = InboundMessage(sender="1@c.us", body="xyzxyz")
        assert await dispatcher.dispatch(message) is None
        mock_session.reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_typo_still_answered(self, dispatcher, mock_session, catalog) -> None:
        message = InboundMessage(sender="1@c.us", body="rndvu", sender_name="Ali")
        reply = await dispatcher.dispatch(message)
        assert reply == catalog.render("randevu", name="Ali")

    @pytest.mark.asyncio
    async def test_lookup_failure_falls_back_to_plain_reply(
        self, dispatcher, mock_session, inbound_message, catalog
    ) -> None:
        mock_session.lookup_display_name.side_effect = TransportError("contact not found")
        reply = await dispatcher.dispatch(inbound_message)
        assert reply == catalog.render("merhaba")
        mock_session.reply.assert_awaited_once_with("905551112233@c.us", reply)

    @pytest.mark.asyncio
    async def test_reply_failure_is_contained(self, dispatcher, mock_session) -> None:
        mock_session.reply.side_effect = TransportError("send failed")
        message = InboundMessage(sender="1@c.us", body="ping")
        assert await dispatcher.dispatch(message) is None


class TestRun:
    @pytest.mark.asyncio
    async def test_processes_queue_in_order(self, dispatcher, mock_session) -> None:
        queue: asyncio.Queue[InboundMessage] = asyncio.Queue()
        mock_session.inbound = queue
        for sender in ("1@c.us", "2@c.us", "3@c.us"):
            queue.put_nowait(InboundMessage(sender=sender, body="ping"))

        task = asyncio.create_task(dispatcher.run())
        await asyncio.wait_for(queue.join(), timeout=1.0)
        assert dispatcher.is_running

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not dispatcher.is_running
        senders = [call.args[0] for call in mock_session.reply.await_args_list]
        assert senders == ["1@c.us", "2@c.us", "3@c.us"]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_loop(self, dispatcher, mock_session) -> None:
        queue: asyncio.Queue[InboundMessage] = asyncio.Queue()
        mock_session.inbound = queue
        mock_session.reply.side_effect = [TransportError("boom"), None]
        queue.put_nowait(InboundMessage(sender="1@c.us", body="ping"))
        queue.put_nowait(InboundMessage(sender="2@c.us", body="ping"))

        task = asyncio.create_task(dispatcher.run())
        await asyncio.wait_for(queue.join(), timeout=1.0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert mock_session.reply.await_count == 2
