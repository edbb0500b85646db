"""Transmission stop operations."""

from loguru import logger

from app.schemas import TransmissionState
from app.utils.app_errors import AppErrorCode, NotFoundError

from ._base import BaseService
from .transmission_models import TransmissionStopResponse


class StopTransmissionOperations(BaseService):
    """Operations for stopping transmissions."""

    async def stop(self, owner: str, transmission_id: str | None = None) -> TransmissionStopResponse:
        """Stop the owner's active transmission.

        Repeating a stop with the id of a transmission that is already
        finalizada is a no-op success that only re-finalizes its stream rows.

        Raises:
            NotFoundError: If the owner has no matching active transmission
        """
        transmission = await self._get_active_transmission(owner, transmission_id)

        if transmission is None:
            if transmission_id:
                previous = await self._get_transmission(owner, transmission_id)
                if previous and previous.status == TransmissionState.FINALIZADA:
                    logger.info(f"Transmission {transmission_id} already finalizada, nothing to stop")
                    await self._finalize_children(previous.transmission_id)
                    return TransmissionStopResponse(
                        transmission=self._to_transmission_response(previous),
                        already_stopped=True,
                    )
            raise NotFoundError(
                f"No active transmission found for owner {owner}"
                + (f" with id {transmission_id}" if transmission_id else ""),
                errcode=AppErrorCode.E_TRANSMISSION_NOT_FOUND,
            )

        logger.info(f"Stopping transmission {transmission.transmission_id} for owner {owner}")

        # Media server failures never block finalizing local state
        media_stopped = False
        try:
            media_stopped = await self.media.stop_stream(transmission.transmission_id)
        except Exception as e:
            logger.warning(f"Media server stop failed for {transmission.transmission_id}: {e!s}")

        # A failed child write must leave the transmission ativa
        await self._finalize_children(transmission.transmission_id)
        transmission = await self.update_transmission_state(transmission, TransmissionState.FINALIZADA)

        return TransmissionStopResponse(
            transmission=self._to_transmission_response(transmission),
            media_server_stopped=media_stopped,
        )
