"""Relay session ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from .schema_utils import parse_mongo_datetime
from .states import RelaySourceType, RelayState


class RelaySession(Document):
    """One row per owner, reused across start/stop cycles."""

    owner: Indexed(str, unique=True)  # type: ignore[valid-type]

    source_url: str | None = None
    source_type: RelaySourceType | None = None
    server_id: str | None = None
    server_host: str | None = None

    status: RelayState = RelayState.INATIVO
    error_details: str | None = None

    # Detached session on the relay host, and the media server application fed by it
    session_name: str | None = None
    application: str | None = None

    started_at: datetime | None = None
    stopped_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("started_at", "stopped_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "relay_sessions"
