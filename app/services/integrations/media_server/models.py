"""Media server value objects."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.schemas import PlaylistVideo


class PushTarget(BaseModel):
    """One external RTMP destination of a push-publish mapping."""

    code: str | None = None
    rtmp_url: str | None = None
    stream_key: str | None = None
    name: str | None = None
    user_platform_id: str | None = None


class LogoOverlay(BaseModel):
    url: str
    position: str = "top-right"
    # 0-100 scale, normalized to 0-1 in the playlist config
    opacity: float = Field(default=100, ge=0, le=100)
    size: int | str | None = None
    margin_x: int = 0
    margin_y: int = 0


class PlaylistSettings(BaseModel):
    repeat: bool = True
    shuffle: bool = False
    logo: LogoOverlay | None = None


class StreamDescriptor(BaseModel):
    transmission_id: str
    owner: str
    stream_name: str
    platforms: list[PushTarget] = Field(default_factory=list)
    playlist_id: str | None = None
    videos: list[PlaylistVideo] = Field(default_factory=list)
    settings: PlaylistSettings = Field(default_factory=PlaylistSettings)


class ApplicationStatus(BaseModel):
    existed: bool
    created: bool = False


class ControlApiResponse(BaseModel):
    status_code: int
    success: bool
    # Parsed JSON, or the raw text when the body is not JSON
    data: Any = None


class StreamStartResult(BaseModel):
    success: bool
    error: str | None = None

    stream_name: str | None = None
    application: str | None = None
    rtmp_url: str | None = None
    stream_key: str | None = None
    hls_url: str | None = None
    dash_url: str | None = None
    bitrate: int | None = None
    playlist_config: dict[str, Any] = Field(default_factory=dict)


class StreamStats(BaseModel):
    is_active: bool
    viewers: int = 0
    bitrate: int = 0
    uptime: str = "00:00:00"
    # True when viewers/bitrate come from a placeholder, not real telemetry
    is_estimated: bool = False
    current_video: int | None = None
    total_videos: int | None = None
    platforms: list[PushTarget] = Field(default_factory=list)
    playlist_config: dict[str, Any] = Field(default_factory=dict)


class ActiveStreamSession(BaseModel):
    """In-memory state of a running stream, keyed by transmission id."""

    transmission_id: str
    stream_name: str
    application: str
    started_at: datetime
    video_cursor: int = 0
    videos: list[PlaylistVideo] = Field(default_factory=list)
    platforms: list[PushTarget] = Field(default_factory=list)
    settings: PlaylistSettings = Field(default_factory=PlaylistSettings)
    playlist_config: dict[str, Any] = Field(default_factory=dict)
    bitrate: int = 0
