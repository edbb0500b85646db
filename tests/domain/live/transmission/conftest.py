"""Shared fixtures for transmission domain tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from app.domain.live.transmission.transmission_domain import StreamOrchestrator
from app.schemas import (
    PlatformDescriptor,
    Playlist,
    PlaylistVideo,
    Transmission,
    TransmissionState,
    UserPlatform,
)
from app.services.integrations.media_server import (
    MediaServerController,
    StreamDescriptor,
    StreamStartResult,
    StreamStats,
)

OWNER = "user_1"


@pytest.fixture
def media() -> AsyncMock:
    """Media server double that accepts every stream."""
    media = AsyncMock(spec=MediaServerController)
    media.application = "live"

    async def start_stream(descriptor: StreamDescriptor) -> StreamStartResult:
        return StreamStartResult(
            success=True,
            stream_name=descriptor.stream_name,
            application="live",
            rtmp_url="rtmp://media.example.com:1935/live",
            stream_key=descriptor.stream_name,
            hls_url=f"http://media.example.com:1935/live/{descriptor.stream_name}/playlist.m3u8",
            dash_url=f"http://media.example.com:1935/live/{descriptor.stream_name}/manifest.mpd",
            bitrate=2500,
        )

    media.start_stream.side_effect = start_stream
    media.stop_stream.return_value = True
    media.get_stream_stats.return_value = StreamStats(is_active=False)
    return media


@pytest.fixture
def orchestrator(media: AsyncMock) -> StreamOrchestrator:
    return StreamOrchestrator(media=media)


@pytest.fixture
def seed_platforms():
    """Insert user platforms; returns their ids in insertion order."""

    async def _seed(owner: str = OWNER, codes: tuple[str, ...] = ("youtube", "twitch"), active: bool = True):
        ids = []
        for code in codes:
            platform = UserPlatform(
                user_platform_id=f"up_{owner}_{code}",
                owner=owner,
                platform=PlatformDescriptor(
                    platform_id=f"pf_{code}",
                    name=code.title(),
                    code=code,
                    rtmp_url=f"rtmp://ingest.{code}.example.com/live",
                ),
                stream_key=f"{code}-key",
                active=active,
            )
            await platform.insert()
            ids.append(platform.user_platform_id)
        return ids

    return _seed


@pytest.fixture
def seed_playlist():
    async def _seed(owner: str = OWNER, playlist_id: str = "pl_1") -> Playlist:
        playlist = Playlist(
            playlist_id=playlist_id,
            owner=owner,
            name="Morning",
            videos=[
                PlaylistVideo(name="intro", url="https://cdn.example.com/intro.mp4", duration=30),
                PlaylistVideo(name="main", url="https://cdn.example.com/main.mp4", duration=600),
            ],
        )
        await playlist.insert()
        return playlist

    return _seed


@pytest.fixture
def seed_transmission():
    async def _seed(
        owner: str = OWNER,
        status: TransmissionState = TransmissionState.ATIVA,
        transmission_id: str = "tx_seed",
        created_at: datetime | None = None,
    ) -> Transmission:
        now = created_at or datetime.now(timezone.utc)
        transmission = Transmission(
            transmission_id=transmission_id,
            owner=owner,
            title="Seeded",
            status=status,
            application="live",
            stream_name=f"stream_{owner}_1",
            created_at=now,
            updated_at=now,
            started_at=now if status == TransmissionState.ATIVA else None,
        )
        await transmission.insert()
        return transmission

    return _seed
