"""Transmission ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from .schema_utils import parse_mongo_datetime
from .states import TransmissionState, TransmissionType


class TransmissionSettings(BaseModel):
    """Settings captured at start time."""

    platforms: list[str] = Field(default_factory=list)
    auto_start: bool = True


class Transmission(Document):
    """One row per broadcast attempt."""

    transmission_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner: str

    title: str
    description: str | None = None

    status: TransmissionState = TransmissionState.PREPARANDO
    type: TransmissionType = TransmissionType.MANUAL
    playlist_id: str | None = None
    server_id: str | None = None
    settings: TransmissionSettings = Field(default_factory=TransmissionSettings)
    # Playlist/overlay settings as submitted by the caller
    playlist_config: dict[str, Any] | None = None

    # Media server naming
    application: str | None = None
    stream_name: str | None = None

    error_details: str | None = None

    # Timestamps
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator("created_at", "updated_at", "started_at", "ended_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "transmissions"
        indexes = [
            # At most one in-flight transmission per owner
            IndexModel(
                [("owner", ASCENDING)],
                name="uniq_owner_in_flight",
                unique=True,
                partialFilterExpression={
                    "status": {"$in": [str(s) for s in TransmissionState.in_flight_states()]}
                },
            ),
            IndexModel([("owner", ASCENDING), ("created_at", DESCENDING)], name="owner_created_at"),
        ]
