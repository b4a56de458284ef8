"""Core domain models for the whatsgate system.

These models represent the data flowing through the service: the
session snapshot reported to operators, the lifecycle events emitted by
the session client, inbound messages, and command resolution results.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SessionStatus(str, enum.Enum):
    """Connectivity state of the external messaging session."""

    INITIALIZING = "initializing"
    CREDENTIAL_PENDING = "credential_pending"  # QR or pairing code awaiting scan
    AUTHENTICATED = "authenticated"  # Handshake done, still syncing
    READY = "ready"
    AUTH_FAILED = "auth_failed"  # Terminal for the current client
    DISCONNECTED = "disconnected"


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class PendingCredential(BaseModel):
    """A credential the operator must use to authenticate a new session."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["qr", "pairing_code"] = Field(description="QR payload or numeric pairing code")
    value: str = Field(description="Raw credential value")


class SessionIdentity(BaseModel):
    """The account the session is logged in as, known once ready."""

    model_config = ConfigDict(frozen=True)

    number: str = Field(description="Canonical phone number of the account")
    name: str | None = Field(default=None, description="Display name (push name)")


class SessionSnapshot(BaseModel):
    """Immutable view of the session at a point in time.

    The session manager replaces the whole snapshot on every change, so a
    reader never observes a status paired with a stale credential.
    """

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = Field(default=SessionStatus.INITIALIZING)
    pending_credential: PendingCredential | None = Field(default=None)
    identity: SessionIdentity | None = Field(default=None)

    @property
    def qr(self) -> str | None:
        cred = self.pending_credential
        return cred.value if cred is not None and cred.kind == "qr" else None

    @property
    def pairing_code(self) -> str | None:
        cred = self.pending_credential
        return cred.value if cred is not None and cred.kind == "pairing_code" else None


# ---------------------------------------------------------------------------
# Client events (discriminated union)
# ---------------------------------------------------------------------------


class CredentialReady(BaseModel):
    """The client needs the operator to authenticate (QR available)."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["credential_ready"] = "credential_ready"
    qr: str = Field(description="Raw QR payload")


class Authenticated(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["authenticated"] = "authenticated"


class Ready(BaseModel):
    """The client finished syncing and can send and receive."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["ready"] = "ready"
    identity: SessionIdentity | None = Field(default=None)


class AuthFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["auth_failed"] = "auth_failed"
    message: str = Field(default="")


class Disconnected(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["disconnected"] = "disconnected"
    reason: str = Field(default="")


class InboundMessage(BaseModel):
    """A message observed on the session, possibly sent by ourselves."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: Literal["message"] = "message"
    sender: str = Field(description="Chat id the message came from")
    recipient: str = Field(default="", description="Chat id the message was sent to")
    is_self_originated: bool = Field(
        default=False, description="True when the session itself sent the message"
    )
    body: str = Field(default="")
    sender_name: str | None = Field(default=None, description="Sender display name, if known")
    message_id: str | None = Field(default=None)


LifecycleEvent = Annotated[
    Union[CredentialReady, Authenticated, Ready, AuthFailed, Disconnected],
    Field(discriminator="event_type"),
]

# Everything a session client can emit
ClientEvent = Annotated[
    Union[CredentialReady, Authenticated, Ready, AuthFailed, Disconnected, InboundMessage],
    Field(discriminator="event_type"),
]


# ---------------------------------------------------------------------------
# Command resolution
# ---------------------------------------------------------------------------


class CommandMatch(BaseModel):
    """Outcome of resolving inbound text to a command category."""

    model_config = ConfigDict(frozen=True)

    category: str | None = Field(default=None, description="Matched category, None for no match")
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    reserved: bool = Field(default=False, description="Matched the reserved keyword literally")

    @property
    def matched(self) -> bool:
        return self.category is not None
