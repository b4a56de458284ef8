"""HTTP bridge session client.

Talks to a sidecar process that runs the browser engine and exposes the
session over a small REST API. Commands are plain POST requests; events
are fetched with a long-poll loop and emitted to the attached sink.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from whatsgate.domain.errors import TransportError
from whatsgate.domain.models import ClientEvent, Disconnected
from whatsgate.transport.base import SessionClient

logger = logging.getLogger(__name__)

_EVENT_ADAPTER: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)


class HttpBridgeClient(SessionClient):
    """Session client backed by the HTTP bridge sidecar."""

    def __init__(
        self,
        base_url: str = "http://localhost:3002",
        timeout: float = 30.0,
        poll_timeout: float = 25.0,
        max_poll_failures: int = 5,
        poll_retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._poll_timeout = poll_timeout
        self._max_poll_failures = max_poll_failures
        self._poll_retry_delay = poll_retry_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._cursor = 0

    async def initialize(self) -> None:
        """Open the HTTP client, start the session and the event poll."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        await self._request("POST", "/session/initialize", operation="initialize", json={})
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_events())
        logger.info("Bridge session started at %s", self._base_url)

    async def request_pairing_code(self, phone: str) -> str:
        resp = await self._request(
            "POST", "/session/pairing-code", operation="pair", json={"phone": phone}
        )
        code = _json_or_empty(resp).get("code")
        if not code:
            raise TransportError("Bridge returned no pairing code", operation="pair")
        return str(code)

    async def send_message(self, chat_id: str, body: str) -> None:
        await self._request(
            "POST", "/messages", operation="send", json={"chat_id": chat_id, "body": body}
        )
        logger.debug("Sent message to %s (%d chars)", chat_id, len(body))

    async def logout(self) -> None:
        await self._request("POST", "/session/logout", operation="logout", json={})

    async def destroy(self) -> None:
        """Stop polling and close the HTTP client."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        if self._client is not None:
            try:
                await self._request("POST", "/session/destroy", operation="destroy", json={})
            except TransportError as e:
                logger.debug("Bridge destroy failed: %s", e)
            await self._client.aclose()
            self._client = None
            logger.info("Bridge session closed")

    async def get_display_name(self, chat_id: str) -> str | None:
        resp = await self._request(
            "GET", f"/contacts/{quote(chat_id, safe='')}", operation="contact"
        )
        name = _json_or_empty(resp).get("name")
        return str(name) if name else None

    async def _request(
        self, method: str, path: str, operation: str, **kwargs: object
    ) -> httpx.Response:
        """Send a request to the bridge, wrapping failures in TransportError."""
        if self._client is None:
            raise TransportError("Bridge session not initialized", operation=operation)
        try:
            resp = await self._client.request(method, path, **kwargs)  # type: ignore[arg-type]
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            message = _json_or_empty(e.response).get("error") or str(e)
            raise TransportError(str(message), operation=operation) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Bridge request to {path} failed: {e}", operation=operation) from e

    async def _poll_events(self) -> None:
        """Long-poll the bridge for events until cancelled or unreachable."""
        failures = 0
        while True:
            try:
                resp = await self._request(
                    "GET",
                    "/events",
                    operation="events",
                    params={"after": self._cursor, "timeout": self._poll_timeout},
                    timeout=self._poll_timeout + self._timeout,
                )
                payload = resp.json()
            except asyncio.CancelledError:
                raise
            except (TransportError, ValueError) as e:
                failures += 1
                logger.warning(
                    "Event poll failed (attempt %d/%d): %s",
                    failures, self._max_poll_failures, e,
                )
                if failures >= self._max_poll_failures:
                    self.emit(Disconnected(reason="bridge unreachable"))
                    return
                await asyncio.sleep(self._poll_retry_delay)
                continue

            failures = 0
            if not isinstance(payload, dict):
                logger.warning("Ignoring non-object event payload from bridge")
                await asyncio.sleep(self._poll_retry_delay)
                continue
            self._cursor = payload.get("cursor", self._cursor)
            for raw in payload.get("events", []):
                try:
                    event = _EVENT_ADAPTER.validate_python(raw)
                except ValidationError as e:
                    logger.warning("Skipping malformed bridge event: %s", e)
                    continue
                self.emit(event)


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
