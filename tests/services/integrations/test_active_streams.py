"""Tests for rebuilding stream sessions from persisted records."""

import random
from datetime import datetime, timezone

import pytest

from app.app_config import AppEnvironConfig
from app.schemas import (
    PlatformBindingState,
    PlatformDescriptor,
    Playlist,
    PlaylistVideo,
    Stream,
    StreamQuality,
    Transmission,
    TransmissionPlatform,
    TransmissionState,
    TransmissionType,
    UserPlatform,
)
from app.services.integrations.media_server import MediaServerController
from app.services.integrations.media_server.active_streams import ActiveStreamCache, restore_session
from app.services.integrations.media_server.telemetry import PlaceholderTelemetry


async def persist_live_transmission(status: TransmissionState = TransmissionState.ATIVA) -> None:
    now = datetime.now(timezone.utc)
    await Transmission(
        transmission_id="tx_live",
        owner="user_1",
        title="Live",
        status=status,
        type=TransmissionType.PLAYLIST,
        playlist_id="pl_1",
        playlist_config={"repeat": False, "shuffle": True},
        application="live",
        stream_name="stream_user_1_1",
        created_at=now,
        updated_at=now,
        started_at=now,
    ).insert()
    await Stream(
        stream_id="st_live",
        transmission_id="tx_live",
        owner="user_1",
        quality=StreamQuality(bitrate=3000),
        stream_name="stream_user_1_1",
        application="live",
        created_at=now,
        updated_at=now,
    ).insert()
    await UserPlatform(
        user_platform_id="up_yt",
        owner="user_1",
        platform=PlatformDescriptor(platform_id="pf_yt", name="YouTube", code="youtube", rtmp_url="rtmp://yt/live2"),
        stream_key="yt-key",
    ).insert()
    await TransmissionPlatform(
        binding_id="tp_1",
        transmission_id="tx_live",
        user_platform_id="up_yt",
        platform_code="youtube",
        publisher_name="stream_user_1_1_youtube",
        created_at=now,
        updated_at=now,
    ).insert()
    await TransmissionPlatform(
        binding_id="tp_2",
        transmission_id="tx_live",
        user_platform_id="up_old",
        platform_code="twitch",
        status=PlatformBindingState.FINALIZADA,
        publisher_name="stream_user_1_1_twitch",
        created_at=now,
        updated_at=now,
    ).insert()
    await Playlist(
        playlist_id="pl_1",
        owner="user_1",
        name="Morning",
        videos=[PlaylistVideo(name="a", url="https://cdn/a.mp4")],
    ).insert()


@pytest.mark.usefixtures("clear_collections")
class TestRestoreSession:
    async def test_restore_from_persisted_rows(self, beanie_db):
        await persist_live_transmission()

        session = await restore_session("tx_live")

        assert session is not None
        assert session.stream_name == "stream_user_1_1"
        assert session.application == "live"
        assert session.bitrate == 3000
        assert session.settings.repeat is False
        assert session.settings.shuffle is True
        assert [v.name for v in session.videos] == ["a"]
        assert len(session.platforms) == 1
        assert session.platforms[0].code == "youtube"
        assert session.platforms[0].rtmp_url == "rtmp://yt/live2"
        assert session.platforms[0].stream_key == "yt-key"

    async def test_finished_transmission_is_not_restored(self, beanie_db):
        await persist_live_transmission(status=TransmissionState.FINALIZADA)

        assert await restore_session("tx_live") is None

    async def test_cache_miss_is_filled(self, beanie_db):
        await persist_live_transmission()
        cache = ActiveStreamCache()

        first = await cache.get_or_restore("tx_live")

        assert first is not None
        assert "tx_live" in cache
        assert await cache.get_or_restore("tx_live") is first


@pytest.mark.usefixtures("clear_collections")
class TestStatsAfterRestart:
    async def test_stats_survive_empty_cache(self, beanie_db):
        """A fresh controller still reports a stream started by another process."""
        await persist_live_transmission()
        controller = MediaServerController(
            cfg=AppEnvironConfig(),
            telemetry=PlaceholderTelemetry(base_bitrate=2500, rng=random.Random(1)),
            cache=ActiveStreamCache(),
        )

        stats = await controller.get_stream_stats("tx_live")

        assert stats.is_active is True
        assert stats.total_videos == 1
        assert [p.code for p in stats.platforms] == ["youtube"]

    async def test_unknown_transmission_is_inactive(self, beanie_db):
        controller = MediaServerController(cfg=AppEnvironConfig(), cache=ActiveStreamCache())

        stats = await controller.get_stream_stats("tx_missing")

        assert stats.is_active is False
        assert stats.viewers == 0
