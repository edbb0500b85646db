"""Base service for transmission operations."""

from datetime import timedelta

from beanie.operators import In, Set
from loguru import logger

from app.app_config import get_app_environ_config
from app.domain.utils.persistence import persistence_guard
from app.schemas import (
    PlatformBindingState,
    Stream,
    Transmission,
    TransmissionPlatform,
    TransmissionState,
)
from app.services.integrations.media_server import MediaServerController, media_server_controller
from app.shared.utils import utc_now
from app.utils.app_errors import AppError, AppErrorCode, ValidationError

from .transmission_models import PlatformBindingResponse, StreamResponse, TransmissionResponse
from .transmission_state_machine import TransmissionStateMachine


class BaseService:
    """Base service with shared transmission operation methods."""

    def __init__(self, media: MediaServerController | None = None):
        self.media = media or media_server_controller

    async def _get_transmission(self, owner: str, transmission_id: str) -> Transmission | None:
        with persistence_guard("Load transmission"):
            return await Transmission.find_one(
                Transmission.transmission_id == transmission_id,
                Transmission.owner == owner,
            )

    async def _get_active_transmission(
        self,
        owner: str,
        transmission_id: str | None = None,
    ) -> Transmission | None:
        """Return the owner's ativa transmission, optionally pinned to an id."""
        criteria = [Transmission.owner == owner, Transmission.status == TransmissionState.ATIVA]
        if transmission_id:
            criteria.append(Transmission.transmission_id == transmission_id)
        with persistence_guard("Load active transmission"):
            return await Transmission.find_one(*criteria)

    async def _get_in_flight_transmission(self, owner: str) -> Transmission | None:
        """Return the owner's preparando or ativa transmission, if any."""
        with persistence_guard("Load in-flight transmission"):
            return await Transmission.find_one(
                Transmission.owner == owner,
                In(Transmission.status, TransmissionState.in_flight_states()),
            )

    async def _expire_stale_preparing(self, owner: str) -> int:
        """Move the owner's abandoned preparando rows to erro.

        A start interrupted before it could record its outcome leaves a
        preparando row that would otherwise block the owner forever.
        """
        now = utc_now()
        cutoff = now - timedelta(seconds=get_app_environ_config().TRANSMISSION_PREPARING_TIMEOUT_SECONDS)
        with persistence_guard("Expire stale preparing transmissions"):
            result = await Transmission.find(
                Transmission.owner == owner,
                Transmission.status == TransmissionState.PREPARANDO,
                Transmission.updated_at < cutoff,
            ).update(
                Set(
                    {
                        Transmission.status: TransmissionState.ERRO,
                        Transmission.error_details: "Start abandoned while preparing",
                        Transmission.ended_at: now,
                        Transmission.updated_at: now,
                    }
                )
            )
        expired = getattr(result, "modified_count", 0) or 0
        if expired:
            logger.warning(f"Expired {expired} stale preparing transmission(s) for owner {owner}")
        return expired

    async def _get_stream(self, transmission_id: str) -> Stream | None:
        with persistence_guard("Load stream"):
            return await Stream.find_one(Stream.transmission_id == transmission_id)

    async def _get_bindings(self, transmission_id: str) -> list[TransmissionPlatform]:
        with persistence_guard("Load platform bindings"):
            return await TransmissionPlatform.find(
                TransmissionPlatform.transmission_id == transmission_id
            ).to_list()

    async def update_transmission_state(
        self,
        transmission: Transmission,
        new_state: TransmissionState,
        *,
        error_details: str | None = None,
    ) -> Transmission:
        """
        Move a transmission to a new state and stamp the lifecycle timestamps.

        Raises:
            ValidationError: If the transition is not allowed
            PersistenceError: If the store write fails
        """
        if transmission.status == new_state:
            logger.info(f"Transmission {transmission.transmission_id} already {new_state}, skipping")
            return transmission

        if not TransmissionStateMachine.can_transition(transmission.status, new_state):
            raise ValidationError(
                f"Invalid state transition: {transmission.status} -> {new_state}",
                errcode=AppErrorCode.E_INVALID_REQUEST,
            )

        now = utc_now()
        updates = {
            Transmission.status: new_state,
            Transmission.updated_at: now,
        }
        if new_state == TransmissionState.ATIVA:
            updates[Transmission.started_at] = now
        elif new_state == TransmissionState.FINALIZADA:
            updates[Transmission.ended_at] = now
        elif new_state == TransmissionState.ERRO:
            updates[Transmission.ended_at] = now
            updates[Transmission.error_details] = error_details

        with persistence_guard(f"Update transmission {transmission.transmission_id} to {new_state}"):
            await transmission.set(updates)

        logger.info(f"Transmission {transmission.transmission_id} -> {new_state}")
        return transmission

    async def _finalize_children(self, transmission_id: str) -> None:
        """Mark the stream not live and every platform binding finalizada."""
        now = utc_now()
        with persistence_guard(f"Finalize stream rows of {transmission_id}"):
            await Stream.find(Stream.transmission_id == transmission_id).update(
                Set({Stream.is_live: False, Stream.updated_at: now})
            )
            await TransmissionPlatform.find(
                TransmissionPlatform.transmission_id == transmission_id
            ).update(
                Set(
                    {
                        TransmissionPlatform.status: PlatformBindingState.FINALIZADA,
                        TransmissionPlatform.updated_at: now,
                    }
                )
            )

    async def _discard_children(self, transmission_id: str) -> None:
        """Delete stream and binding rows of a transmission that never went ativa."""
        with persistence_guard(f"Discard stream rows of {transmission_id}"):
            await Stream.find(Stream.transmission_id == transmission_id).delete()
            await TransmissionPlatform.find(TransmissionPlatform.transmission_id == transmission_id).delete()

    async def _mark_failed(self, transmission: Transmission, reason: str) -> None:
        """Best-effort move to erro; a failed write is left to stale-preparing expiry."""
        try:
            await self.update_transmission_state(transmission, TransmissionState.ERRO, error_details=reason)
        except AppError as e:
            logger.error(f"Could not mark transmission {transmission.transmission_id} as erro: {e.errmesg}")

    @staticmethod
    def _to_transmission_response(transmission: Transmission) -> TransmissionResponse:
        return TransmissionResponse(**transmission.model_dump(exclude={"id", "revision_id"}))

    @staticmethod
    def _to_stream_response(stream: Stream) -> StreamResponse:
        return StreamResponse(**stream.model_dump(exclude={"id", "revision_id"}))

    @staticmethod
    def _to_binding_response(binding: TransmissionPlatform) -> PlatformBindingResponse:
        return PlatformBindingResponse(**binding.model_dump(exclude={"id", "revision_id"}))
