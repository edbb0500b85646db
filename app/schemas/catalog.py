"""Collaborator records owned by other services, read here as plain data."""

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class PlatformDescriptor(BaseModel):
    platform_id: str
    name: str
    code: str | None = None
    # Default ingest base URL, e.g. rtmp://a.rtmp.youtube.com/live2
    rtmp_url: str | None = None


class UserPlatform(Document):
    """An owner's configured streaming destination."""

    user_platform_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner: Indexed(str)  # type: ignore[valid-type]
    platform: PlatformDescriptor
    stream_key: str | None = None
    # Overrides platform.rtmp_url when set
    rtmp_url: str | None = None
    active: bool = True

    class Settings:
        name = "user_platforms"


class PlaylistVideo(BaseModel):
    name: str
    url: str
    duration: float | None = None


class Playlist(Document):
    playlist_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner: Indexed(str)  # type: ignore[valid-type]
    name: str
    videos: list[PlaylistVideo] = Field(default_factory=list)

    class Settings:
        name = "playlists"


class MediaServer(Document):
    """SSH credentials of a host able to run detached relay processes."""

    server_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    name: str | None = None
    host: str
    ssh_port: int = 22
    ssh_user: str = "root"
    ssh_password: str | None = None

    class Settings:
        name = "media_servers"
