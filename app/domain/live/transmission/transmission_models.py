"""Transmission domain models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.schemas import (
    PlatformBindingState,
    StreamQuality,
    TransmissionSettings,
    TransmissionState,
    TransmissionType,
)
from app.services.integrations.media_server import PlaylistSettings, PushTarget, StreamStats


class TransmissionStartSettings(BaseModel):
    """Quality and playlist settings submitted with a start request."""

    resolution: str | None = None
    fps: int | None = None
    bitrate: int | None = None
    auto_start: bool = True
    playlist: PlaylistSettings = Field(default_factory=PlaylistSettings)


class TransmissionStartParams(BaseModel):
    owner: str
    title: str
    description: str | None = None
    platform_ids: list[str] = Field(default_factory=list)
    playlist_id: str | None = None
    server_id: str | None = None
    settings: TransmissionStartSettings = Field(default_factory=TransmissionStartSettings)


class TransmissionResponse(BaseModel):
    transmission_id: str
    owner: str
    title: str
    description: str | None = None
    status: TransmissionState
    type: TransmissionType
    playlist_id: str | None = None
    server_id: str | None = None
    settings: TransmissionSettings
    playlist_config: dict[str, Any] | None = None
    application: str | None = None
    stream_name: str | None = None
    error_details: str | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None


class StreamResponse(BaseModel):
    stream_id: str
    transmission_id: str
    is_live: bool
    viewers: int
    bitrate: int
    uptime: str
    quality: StreamQuality
    stream_name: str
    application: str
    last_stats_update: datetime | None = None


class PlatformBindingResponse(BaseModel):
    binding_id: str
    user_platform_id: str
    platform_code: str | None = None
    status: PlatformBindingState
    publisher_name: str


class IngestEndpoints(BaseModel):
    rtmp_url: str | None = None
    stream_key: str | None = None
    hls_url: str | None = None
    dash_url: str | None = None


class TransmissionStartResponse(BaseModel):
    transmission: TransmissionResponse
    stream: StreamResponse
    platforms: list[PlatformBindingResponse]
    ingest: IngestEndpoints


class TransmissionStopResponse(BaseModel):
    transmission: TransmissionResponse
    # True when the transmission was already finalized before this call
    already_stopped: bool = False
    media_server_stopped: bool = False


class TransmissionStatusResponse(BaseModel):
    is_live: bool
    transmission: TransmissionResponse | None = None
    stream: StreamResponse | None = None
    platforms: list[PushTarget] = Field(default_factory=list)
    stats: StreamStats | None = None


class TransmissionHistoryResponse(BaseModel):
    transmissions: list[TransmissionResponse]
    page: int
    limit: int
    total: int
