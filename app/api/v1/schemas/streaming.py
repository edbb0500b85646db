from pydantic import BaseModel, Field

from app.services.integrations.media_server import LogoOverlay


class StreamQualityIn(BaseModel):
    resolution: str | None = Field(None, examples=["1920x1080"])
    fps: int | None = Field(None, ge=1, le=120)
    bitrate: int | None = Field(None, ge=100, description="kbps")


class PlaylistOptionsIn(BaseModel):
    repeat: bool = True
    shuffle: bool = False
    logo: LogoOverlay | None = None


class StartTransmissionIn(BaseModel):
    title: str = Field(..., description="Transmission title")
    description: str | None = None
    platform_ids: list[str] = Field(default_factory=list, description="User platform ids to fan out to")
    playlist_id: str | None = None
    server_id: str | None = None
    auto_start: bool = True
    quality: StreamQualityIn = Field(default_factory=StreamQualityIn)
    playlist: PlaylistOptionsIn = Field(default_factory=PlaylistOptionsIn)


class StopTransmissionIn(BaseModel):
    transmission_id: str | None = None
