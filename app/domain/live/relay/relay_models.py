"""Relay domain models."""

from datetime import datetime

from pydantic import BaseModel

from app.schemas import RelaySourceType, RelayState


class RelayStartParams(BaseModel):
    owner: str
    owner_email: str | None = None
    source_url: str | None = None
    # Inferred from the URL when omitted
    source_type: RelaySourceType | None = None
    server_id: str | None = None


class SourceValidation(BaseModel):
    valid: bool
    message: str
    status: int | None = None
    source_type: RelaySourceType | None = None


class RelayResponse(BaseModel):
    owner: str
    status: RelayState = RelayState.INATIVO
    source_url: str | None = None
    source_type: RelaySourceType | None = None
    server_id: str | None = None
    server_host: str | None = None
    error_details: str | None = None
    session_name: str | None = None
    application: str | None = None
    started_at: datetime | None = None
    stopped_at: datetime | None = None


class RelayStopResponse(BaseModel):
    relay: RelayResponse
    already_stopped: bool = False
    remote_stopped: bool = False
    # Remote failure recorded while stopping; local state is inativo regardless
    remote_error: str | None = None
