"""Tests for starting transmissions."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from pymongo.errors import PyMongoError

from app.domain.live.transmission.transmission_domain import StreamOrchestrator
from app.domain.live.transmission.transmission_models import (
    TransmissionStartParams,
    TransmissionStartSettings,
)
from app.schemas import (
    PlatformBindingState,
    Stream,
    Transmission,
    TransmissionPlatform,
    TransmissionState,
    TransmissionType,
)
from app.services.integrations.media_server import StreamStartResult
from app.utils.app_errors import (
    AppErrorCode,
    ConflictError,
    MediaServerError,
    PersistenceError,
    ValidationError,
)

OWNER = "user_1"


def params(platform_ids: list[str], **overrides) -> TransmissionStartParams:
    data = {"owner": OWNER, "title": "Sunday Service", "platform_ids": platform_ids}
    data.update(overrides)
    return TransmissionStartParams(**data)


@pytest.mark.usefixtures("clear_collections")
class TestStartTransmission:
    """Tests for StreamOrchestrator.start."""

    async def test_start_success(self, beanie_db, orchestrator: StreamOrchestrator, media, seed_platforms):
        """Transmission goes ativa with one stream and one binding per platform."""
        # Arrange
        platform_ids = await seed_platforms()

        # Act
        result = await orchestrator.start(params(platform_ids, description="weekly"))

        # Assert
        tx = result.transmission
        assert tx.transmission_id.startswith("tx_")
        assert tx.status == TransmissionState.ATIVA
        assert tx.type == TransmissionType.MANUAL
        assert tx.started_at is not None
        assert tx.application == "live"
        assert tx.stream_name.startswith(f"stream_{OWNER}_")
        assert tx.settings.platforms == platform_ids

        assert result.stream.stream_name == tx.stream_name
        assert result.stream.is_live is True
        assert result.stream.bitrate == 2500
        assert result.ingest.stream_key == tx.stream_name
        assert result.ingest.rtmp_url == "rtmp://media.example.com:1935/live"

        assert [b.platform_code for b in result.platforms] == ["youtube", "twitch"]
        assert [b.publisher_name for b in result.platforms] == [
            f"{tx.stream_name}_youtube",
            f"{tx.stream_name}_twitch",
        ]

        descriptor = media.start_stream.await_args.args[0]
        assert descriptor.transmission_id == tx.transmission_id
        assert [p.code for p in descriptor.platforms] == ["youtube", "twitch"]
        assert descriptor.platforms[0].rtmp_url == "rtmp://ingest.youtube.example.com/live"
        assert descriptor.platforms[0].stream_key == "youtube-key"

        saved = await Transmission.find_one(Transmission.transmission_id == tx.transmission_id)
        assert saved.status == TransmissionState.ATIVA
        assert await Stream.find(Stream.transmission_id == tx.transmission_id).count() == 1
        bindings = await TransmissionPlatform.find(
            TransmissionPlatform.transmission_id == tx.transmission_id
        ).to_list()
        assert {b.status for b in bindings} == {PlatformBindingState.ATIVA}

    async def test_platforms_keep_request_order(self, beanie_db, orchestrator, media, seed_platforms):
        youtube, twitch = await seed_platforms()

        result = await orchestrator.start(params([twitch, youtube, twitch]))

        assert [b.platform_code for b in result.platforms] == ["twitch", "youtube"]

    async def test_quality_settings_are_recorded(self, beanie_db, orchestrator, seed_platforms):
        platform_ids = await seed_platforms()

        result = await orchestrator.start(
            params(
                platform_ids,
                settings=TransmissionStartSettings(resolution="1280x720", fps=60, bitrate=4000),
            )
        )

        assert result.stream.quality.resolution == "1280x720"
        assert result.stream.quality.fps == 60
        assert result.stream.quality.bitrate == 4000

    async def test_playlist_videos_are_passed_to_media_server(
        self, beanie_db, orchestrator, media, seed_platforms, seed_playlist
    ):
        platform_ids = await seed_platforms()
        await seed_playlist()

        result = await orchestrator.start(params(platform_ids, playlist_id="pl_1"))

        assert result.transmission.type == TransmissionType.PLAYLIST
        descriptor = media.start_stream.await_args.args[0]
        assert descriptor.playlist_id == "pl_1"
        assert [v.name for v in descriptor.videos] == ["intro", "main"]

    async def test_missing_playlist_starts_without_videos(self, beanie_db, orchestrator, media, seed_platforms):
        platform_ids = await seed_platforms()

        result = await orchestrator.start(params(platform_ids, playlist_id="pl_missing"))

        assert result.transmission.status == TransmissionState.ATIVA
        assert media.start_stream.await_args.args[0].videos == []

    @pytest.mark.parametrize("title", ["", "   "])
    async def test_blank_title_raises(self, beanie_db, orchestrator, media, seed_platforms, title):
        platform_ids = await seed_platforms()

        with pytest.raises(ValidationError, match="Title is required"):
            await orchestrator.start(params(platform_ids, title=title))

        media.start_stream.assert_not_awaited()
        assert await Transmission.count() == 0

    async def test_no_platforms_raises(self, beanie_db, orchestrator, media):
        with pytest.raises(ValidationError, match="At least one platform"):
            await orchestrator.start(params([]))

        media.start_stream.assert_not_awaited()

    async def test_unresolved_platforms_raise(self, beanie_db, orchestrator, media, seed_platforms):
        """Inactive platforms and platforms of other owners do not resolve."""
        inactive = await seed_platforms(codes=("youtube",), active=False)
        foreign = await seed_platforms(owner="user_2", codes=("twitch",))

        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.start(params(inactive + foreign + ["up_unknown"]))

        assert exc_info.value.errcode == AppErrorCode.E_PLATFORM_NOT_FOUND.value
        media.start_stream.assert_not_awaited()
        assert await Transmission.count() == 0

    @pytest.mark.parametrize("status", [TransmissionState.PREPARANDO, TransmissionState.ATIVA])
    async def test_in_flight_transmission_conflicts(
        self, beanie_db, orchestrator, media, seed_platforms, seed_transmission, status
    ):
        platform_ids = await seed_platforms()
        await seed_transmission(status=status)

        with pytest.raises(ConflictError) as exc_info:
            await orchestrator.start(params(platform_ids))

        assert exc_info.value.errcode == AppErrorCode.E_TRANSMISSION_EXISTS.value
        media.start_stream.assert_not_awaited()
        assert await Transmission.count() == 1

    async def test_finished_transmissions_do_not_conflict(
        self, beanie_db, orchestrator, seed_platforms, seed_transmission
    ):
        platform_ids = await seed_platforms()
        await seed_transmission(status=TransmissionState.FINALIZADA, transmission_id="tx_old_1")
        await seed_transmission(status=TransmissionState.ERRO, transmission_id="tx_old_2")

        result = await orchestrator.start(params(platform_ids))

        assert result.transmission.status == TransmissionState.ATIVA

    async def test_unique_index_rejects_race(
        self, beanie_db, orchestrator, media, seed_platforms, seed_transmission, monkeypatch
    ):
        """A start that slipped past the pre-check still cannot create a second in-flight row."""
        platform_ids = await seed_platforms()
        await seed_transmission(status=TransmissionState.ATIVA)
        monkeypatch.setattr(
            orchestrator._start, "_get_in_flight_transmission", AsyncMock(return_value=None)
        )

        with pytest.raises(ConflictError) as exc_info:
            await orchestrator.start(params(platform_ids))

        assert exc_info.value.errcode == AppErrorCode.E_TRANSMISSION_EXISTS.value
        media.start_stream.assert_not_awaited()
        assert await Transmission.count() == 1

    async def test_media_server_failure_leaves_row_in_erro(
        self, beanie_db, orchestrator, media, seed_platforms
    ):
        platform_ids = await seed_platforms()
        media.start_stream.side_effect = None
        media.start_stream.return_value = StreamStartResult(success=False, error="application missing")

        with pytest.raises(MediaServerError, match="application missing"):
            await orchestrator.start(params(platform_ids))

        saved = await Transmission.find_one(Transmission.owner == OWNER)
        assert saved.status == TransmissionState.ERRO
        assert saved.error_details == "application missing"
        assert saved.ended_at is not None
        assert await Stream.count() == 0
        assert await TransmissionPlatform.count() == 0

    async def test_owner_can_start_again_after_failure(
        self, beanie_db, orchestrator, media, seed_platforms
    ):
        platform_ids = await seed_platforms()
        media.start_stream.side_effect = [StreamStartResult(success=False, error="down")]

        with pytest.raises(MediaServerError):
            await orchestrator.start(params(platform_ids))

        media.start_stream.side_effect = None
        media.start_stream.return_value = StreamStartResult(
            success=True, stream_name="stream_user_1_x", application="live", bitrate=2500
        )
        result = await orchestrator.start(params(platform_ids))

        assert result.transmission.status == TransmissionState.ATIVA
        assert await Transmission.count() == 2

    async def test_unexpected_media_error_leaves_row_in_erro(
        self, beanie_db, orchestrator, media, seed_platforms
    ):
        """An exception escaping the media layer still closes out the attempt."""
        platform_ids = await seed_platforms()
        media.start_stream.side_effect = ValueError("Invalid private key")

        with pytest.raises(MediaServerError, match="Invalid private key"):
            await orchestrator.start(params(platform_ids))

        saved = await Transmission.find_one(Transmission.owner == OWNER)
        assert saved.status == TransmissionState.ERRO
        assert saved.error_details == "Invalid private key"

        media.start_stream.side_effect = None
        media.start_stream.return_value = StreamStartResult(
            success=True, stream_name="stream_user_1_x", application="live", bitrate=2500
        )
        result = await orchestrator.start(params(platform_ids))
        assert result.transmission.status == TransmissionState.ATIVA

    async def test_persist_failure_after_start_rolls_back(
        self, beanie_db, orchestrator, media, seed_platforms, monkeypatch
    ):
        """The stream is stopped and partial rows removed when bindings cannot be written."""
        platform_ids = await seed_platforms()
        monkeypatch.setattr(
            TransmissionPlatform, "insert_many", AsyncMock(side_effect=PyMongoError("write failed"))
        )

        with pytest.raises(PersistenceError):
            await orchestrator.start(params(platform_ids))

        saved = await Transmission.find_one(Transmission.owner == OWNER)
        assert saved.status == TransmissionState.ERRO
        assert "write failed" in saved.error_details
        media.stop_stream.assert_awaited_once_with(saved.transmission_id)
        assert await Stream.count() == 0
        assert await TransmissionPlatform.count() == 0

    async def test_stale_preparing_row_is_expired(
        self, beanie_db, orchestrator, seed_platforms, seed_transmission
    ):
        """A start that died while preparing no longer blocks the owner."""
        platform_ids = await seed_platforms()
        await seed_transmission(
            status=TransmissionState.PREPARANDO,
            transmission_id="tx_stuck",
            created_at=datetime.now(timezone.utc) - timedelta(hours=1),
        )

        result = await orchestrator.start(params(platform_ids))

        assert result.transmission.status == TransmissionState.ATIVA
        stuck = await Transmission.find_one(Transmission.transmission_id == "tx_stuck")
        assert stuck.status == TransmissionState.ERRO
        assert stuck.ended_at is not None

    async def test_failed_erro_write_is_recovered_later(
        self, beanie_db, orchestrator, media, seed_platforms, monkeypatch
    ):
        platform_ids = await seed_platforms()
        media.start_stream.side_effect = RuntimeError("connection reset")
        monkeypatch.setattr(
            orchestrator._start,
            "update_transmission_state",
            AsyncMock(side_effect=PersistenceError("store unavailable")),
        )

        with pytest.raises(MediaServerError):
            await orchestrator.start(params(platform_ids))

        saved = await Transmission.find_one(Transmission.owner == OWNER)
        assert saved.status == TransmissionState.PREPARANDO

        # Age the row past the preparing timeout
        await saved.set({Transmission.updated_at: datetime.now(timezone.utc) - timedelta(hours=1)})
        monkeypatch.undo()
        media.start_stream.side_effect = None
        media.start_stream.return_value = StreamStartResult(
            success=True, stream_name="stream_user_1_x", application="live", bitrate=2500
        )

        result = await orchestrator.start(params(platform_ids))

        assert result.transmission.status == TransmissionState.ATIVA
        await saved.sync()
        assert saved.status == TransmissionState.ERRO
