"""Stream ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from .schema_utils import parse_mongo_datetime


class StreamQuality(BaseModel):
    resolution: str = "1920x1080"
    fps: int = 30
    bitrate: int = 2500


class Stream(Document):
    """Live view of an ativa transmission, 1:1 with Transmission."""

    stream_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    transmission_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner: Indexed(str)  # type: ignore[valid-type]

    is_live: bool = True
    viewers: int = 0
    bitrate: int = 0
    uptime: str = "00:00:00"
    quality: StreamQuality = Field(default_factory=StreamQuality)

    # Media server naming
    stream_name: str
    application: str

    last_stats_update: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("last_stats_update", "created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "streams"
