"""Tests for stopping transmissions."""

import pytest
from beanie.operators import Set

from app.domain.live.transmission.transmission_models import TransmissionStartParams
from app.schemas import (
    PlatformBindingState,
    Stream,
    Transmission,
    TransmissionPlatform,
    TransmissionState,
)
from app.utils.app_errors import AppErrorCode, MediaServerError, NotFoundError, PersistenceError

OWNER = "user_1"


@pytest.mark.usefixtures("clear_collections")
class TestStopTransmission:
    """Tests for StreamOrchestrator.stop."""

    @pytest.fixture
    async def started(self, beanie_db, orchestrator, seed_platforms):
        platform_ids = await seed_platforms()
        return await orchestrator.start(
            TransmissionStartParams(owner=OWNER, title="Live", platform_ids=platform_ids)
        )

    async def test_stop_finalizes_transmission_and_children(self, beanie_db, orchestrator, media, started):
        # Act
        result = await orchestrator.stop(OWNER)

        # Assert
        tid = started.transmission.transmission_id
        assert result.transmission.status == TransmissionState.FINALIZADA
        assert result.transmission.ended_at is not None
        assert result.already_stopped is False
        assert result.media_server_stopped is True
        media.stop_stream.assert_awaited_once_with(tid)

        stream = await Stream.find_one(Stream.transmission_id == tid)
        assert stream.is_live is False
        bindings = await TransmissionPlatform.find(TransmissionPlatform.transmission_id == tid).to_list()
        assert {b.status for b in bindings} == {PlatformBindingState.FINALIZADA}

    async def test_stop_by_id(self, beanie_db, orchestrator, started):
        tid = started.transmission.transmission_id

        result = await orchestrator.stop(OWNER, tid)

        assert result.transmission.transmission_id == tid
        assert result.transmission.status == TransmissionState.FINALIZADA

    async def test_media_server_failure_does_not_block_stop(self, beanie_db, orchestrator, media, started):
        media.stop_stream.side_effect = MediaServerError("unreachable")

        result = await orchestrator.stop(OWNER)

        assert result.media_server_stopped is False
        saved = await Transmission.find_one(
            Transmission.transmission_id == started.transmission.transmission_id
        )
        assert saved.status == TransmissionState.FINALIZADA

    async def test_repeat_stop_with_id_is_noop(self, beanie_db, orchestrator, media, started):
        tid = started.transmission.transmission_id
        await orchestrator.stop(OWNER, tid)
        media.stop_stream.reset_mock()

        result = await orchestrator.stop(OWNER, tid)

        assert result.already_stopped is True
        assert result.transmission.status == TransmissionState.FINALIZADA
        media.stop_stream.assert_not_awaited()

    async def test_stop_without_active_transmission_raises(self, beanie_db, orchestrator):
        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.stop(OWNER)

        assert exc_info.value.errcode == AppErrorCode.E_TRANSMISSION_NOT_FOUND.value
        assert exc_info.value.status_code == 404

    async def test_stop_of_other_owner_raises(self, beanie_db, orchestrator, started):
        with pytest.raises(NotFoundError):
            await orchestrator.stop("user_2", started.transmission.transmission_id)

        saved = await Transmission.find_one(
            Transmission.transmission_id == started.transmission.transmission_id
        )
        assert saved.status == TransmissionState.ATIVA

    async def test_stop_of_errored_transmission_raises(self, beanie_db, orchestrator, seed_transmission):
        await seed_transmission(status=TransmissionState.ERRO, transmission_id="tx_failed")

        with pytest.raises(NotFoundError):
            await orchestrator.stop(OWNER, "tx_failed")

    async def test_owner_can_start_after_stop(self, beanie_db, orchestrator, seed_platforms, started):
        await orchestrator.stop(OWNER)

        result = await orchestrator.start(
            TransmissionStartParams(
                owner=OWNER, title="Again", platform_ids=started.transmission.settings.platforms
            )
        )

        assert result.transmission.status == TransmissionState.ATIVA

    async def test_failed_child_write_keeps_transmission_stoppable(
        self, beanie_db, orchestrator, started, monkeypatch
    ):
        """A stop that fails on the stream rows can be repeated until everything is finalized."""
        tid = started.transmission.transmission_id
        finalize = orchestrator._stop._finalize_children
        calls = []

        async def flaky_finalize(transmission_id: str) -> None:
            calls.append(transmission_id)
            if len(calls) == 1:
                raise PersistenceError("binding update failed")
            await finalize(transmission_id)

        monkeypatch.setattr(orchestrator._stop, "_finalize_children", flaky_finalize)

        with pytest.raises(PersistenceError):
            await orchestrator.stop(OWNER)

        saved = await Transmission.find_one(Transmission.transmission_id == tid)
        assert saved.status == TransmissionState.ATIVA

        result = await orchestrator.stop(OWNER)

        assert result.transmission.status == TransmissionState.FINALIZADA
        stream = await Stream.find_one(Stream.transmission_id == tid)
        assert stream.is_live is False
        bindings = await TransmissionPlatform.find(TransmissionPlatform.transmission_id == tid).to_list()
        assert {b.status for b in bindings} == {PlatformBindingState.FINALIZADA}

    async def test_repeat_stop_with_id_finalizes_leftover_children(self, beanie_db, orchestrator, started):
        tid = started.transmission.transmission_id
        await orchestrator.stop(OWNER, tid)
        # Leave the children live, as an interrupted stop would
        await Stream.find(Stream.transmission_id == tid).update(Set({Stream.is_live: True}))
        await TransmissionPlatform.find(TransmissionPlatform.transmission_id == tid).update(
            Set({TransmissionPlatform.status: PlatformBindingState.ATIVA})
        )

        result = await orchestrator.stop(OWNER, tid)

        assert result.already_stopped is True
        stream = await Stream.find_one(Stream.transmission_id == tid)
        assert stream.is_live is False
        bindings = await TransmissionPlatform.find(TransmissionPlatform.transmission_id == tid).to_list()
        assert {b.status for b in bindings} == {PlatformBindingState.FINALIZADA}
