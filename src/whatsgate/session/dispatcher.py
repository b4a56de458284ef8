"""Inbound message dispatcher.

Consumes the session's inbound channel, resolves each message to a
command and answers it through the session manager.
"""

from __future__ import annotations

import asyncio
import logging

from whatsgate.commands.catalog import ReplyCatalog
from whatsgate.commands.resolver import CommandResolver
from whatsgate.domain.models import InboundMessage
from whatsgate.session.manager import SessionManager

logger = logging.getLogger(__name__)


class InboundDispatcher:
    """Answers inbound messages that match a known command.

    Messages the session sent itself are discarded before anything else,
    otherwise every reply would be dispatched again. Unmatched text is
    ignored silently since most traffic in group chats is not addressed
    to the bot.
    """

    def __init__(
        self,
        session: SessionManager,
        resolver: CommandResolver,
        catalog: ReplyCatalog,
    ) -> None:
        self._session = session
        self._resolver = resolver
        self._catalog = catalog
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Dispatch inbound messages in arrival order until cancelled."""
        self._running = True
        logger.info("Inbound dispatcher started")
        try:
            while True:
                message = await self._session.inbound.get()
                try:
                    await self.dispatch(message)
                finally:
                    self._session.inbound.task_done()
        except asyncio.CancelledError:
            logger.info("Inbound dispatcher stopped")
            raise
        finally:
            self._running = False

    async def dispatch(self, message: InboundMessage) -> str | None:
        """Handle one message and return the reply sent, if any.

        Never raises: any failure while handling the message is logged.
        """
        if message.is_self_originated:
            return None

        try:
            text = message.body.strip().lower()
            match = self._resolver.resolve(text)

            if match.reserved:
                reply = self._catalog.reserved_reply
            elif not match.matched:
                return None
            else:
                name = message.sender_name
                if name is None:
                    name = await self._lookup_name(message.sender)
                reply = self._catalog.render(match.category, name=name)  # type: ignore[arg-type]

            await self._session.reply(message.sender, reply)
            logger.info(
                "Replied to %s with %s (score %.2f)",
                message.sender, match.category, match.score,
            )
            return reply
        except Exception:
            logger.exception("Failed to handle message from %s", message.sender)
            return None

    async def _lookup_name(self, chat_id: str) -> str | None:
        """Contact name for personalization; None falls back to the plain reply."""
        try:
            return await self._session.lookup_display_name(chat_id)
        except Exception as e:
            logger.warning("Display name lookup failed for %s: %s", chat_id, e)
            return None
