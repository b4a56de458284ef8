"""FastAPI control surface for the WhatsApp session.

Lets a separate application drive the session over HTTP:

    GET  /            -> {"status": "ok", "service": "whatsapp", ...}
    GET  /health      -> {"status": "ok", "whatsapp": "<status>"}
    GET  /status      -> {"status": ..., "qr": ..., "pairing_code": ..., "identity": ...}
    POST /pair        <- {"phone": "0532 123 45 67"}
    POST /send        <- {"phone": "0532 123 45 67", "message": "Merhaba"}
    POST /logout

Everything except the health endpoints requires the ``x-api-key``
header when an API secret is configured.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from whatsgate.commands.catalog import ReplyCatalog
from whatsgate.commands.resolver import CommandResolver
from whatsgate.config.settings import Settings
from whatsgate.domain.errors import (
    AlreadyConnected,
    InvalidInput,
    TransportError,
    Unauthorized,
)
from whatsgate.domain.models import SessionIdentity
from whatsgate.session.dispatcher import InboundDispatcher
from whatsgate.session.manager import SessionManager

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class PairRequest(BaseModel):
    phone: str | None = Field(default=None, description="Phone number of the account to pair")


class SendRequest(BaseModel):
    phone: str | None = Field(default=None, description="Recipient phone number")
    message: str | None = Field(default=None, description="Text to send")


class HealthResponse(BaseModel):
    status: str = "ok"
    whatsapp: str


class StatusResponse(BaseModel):
    status: str
    qr: str | None = None
    pairing_code: str | None = None
    identity: SessionIdentity | None = None


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Settings | None = None,
    session: SessionManager | None = None,
    dispatcher: InboundDispatcher | None = None,
) -> FastAPI:
    """Create the control API application.

    Args:
        settings: Service configuration. Defaults to ``Settings()``.
        session: Optional pre-configured SessionManager (for testing).
            When omitted, one backed by the HTTP bridge is built on startup.
        dispatcher: Optional pre-configured InboundDispatcher (for testing).
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        s = app.state.session
        if s is None:
            s = build_session(settings)
            app.state.session = s
        d = app.state.dispatcher
        if d is None:
            d = build_dispatcher(settings, s)
            app.state.dispatcher = d

        await s.start()
        dispatch_task = asyncio.create_task(d.run())
        logger.info("WhatsApp service started")
        yield

        dispatch_task.cancel()
        try:
            await dispatch_task
        except asyncio.CancelledError:
            pass
        await s.stop()
        logger.info("WhatsApp service stopped")

    app = FastAPI(
        title="whatsgate",
        description="HTTP control API for a WhatsApp session",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session = session
    app.state.dispatcher = dispatcher
    app.state.api_key = settings.api_secret_key.get_secret_value()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        expected = app.state.api_key
        if expected and x_api_key != expected:
            logger.warning("Rejected request with invalid API key")
            raise Unauthorized()

    def _session() -> SessionManager:
        return app.state.session

    # -------------------------------------------------------------------
    # Health (never gated, used by uptime probes)
    # -------------------------------------------------------------------

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "status": "ok",
            "service": "whatsapp",
            "whatsapp": _session().get_status().status.value,
        }

    @app.get("/health")
    async def health_check() -> HealthResponse:
        return HealthResponse(whatsapp=_session().get_status().status.value)

    # -------------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------------

    @app.get("/status", dependencies=[Depends(require_api_key)])
    async def get_status() -> StatusResponse:
        snapshot = _session().get_status()
        return StatusResponse(
            status=snapshot.status.value,
            qr=snapshot.qr,
            pairing_code=snapshot.pairing_code,
            identity=snapshot.identity,
        )

    @app.post("/pair", dependencies=[Depends(require_api_key)], response_model=None)
    async def pair(request: PairRequest) -> dict | JSONResponse:
        if not request.phone:
            return _bad_request("Phone number required")
        try:
            code = await _session().request_pairing_code(request.phone)
        except InvalidInput as e:
            return _bad_request(str(e))
        except (AlreadyConnected, TransportError) as e:
            logger.error("Pairing error: %s", e)
            return {"success": False, "error": str(e)}
        return {"success": True, "code": code}

    @app.post("/send", dependencies=[Depends(require_api_key)], response_model=None)
    async def send(request: SendRequest) -> dict | JSONResponse:
        if not request.phone or not request.message:
            return _bad_request("Phone and message required")
        try:
            await _session().send_message(request.phone, request.message)
        except InvalidInput as e:
            return _bad_request(str(e))
        except TransportError as e:
            logger.error("Send message error: %s", e)
            return {"success": False, "error": str(e)}
        return {"success": True}

    @app.post("/logout", dependencies=[Depends(require_api_key)])
    async def logout() -> dict:
        try:
            await _session().logout()
        except TransportError as e:
            return {"success": False, "error": str(e)}
        return {"success": True}

    return app


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": message})


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_session(settings: Settings) -> SessionManager:
    """Build a SessionManager that talks to the HTTP bridge."""
    from whatsgate.transport.http_bridge import HttpBridgeClient

    cfg = settings.session
    factory = functools.partial(
        HttpBridgeClient,
        base_url=cfg.bridge_url,
        timeout=cfg.http_timeout,
        poll_timeout=cfg.poll_timeout,
        max_poll_failures=cfg.max_poll_failures,
    )
    return SessionManager(
        client_factory=factory,
        phone_config=settings.phone,
        reconnect_delay=cfg.reconnect_delay,
        operation_timeout=cfg.operation_timeout,
    )


def build_resolver(settings: Settings) -> CommandResolver:
    cfg = settings.commands
    return CommandResolver(
        variants=cfg.variants,
        threshold=cfg.threshold,
        reserved_keyword=cfg.reserved_keyword,
    )


def build_catalog(settings: Settings) -> ReplyCatalog:
    cfg = settings.commands
    return ReplyCatalog.from_mapping(cfg.replies, reserved_reply=cfg.reserved_reply)


def build_dispatcher(settings: Settings, session: SessionManager) -> InboundDispatcher:
    return InboundDispatcher(
        session=session,
        resolver=build_resolver(settings),
        catalog=build_catalog(settings),
    )


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def main(settings: Settings | None = None) -> None:
    """Run the control API server."""
    if settings is None:
        settings = Settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
