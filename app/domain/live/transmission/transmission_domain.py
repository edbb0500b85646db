"""Transmission domain service: lifecycle of per-owner live broadcasts."""

from app.services.integrations.media_server import MediaServerController, media_server_controller

from ._start import StartTransmissionOperations
from ._status import StatusOperations
from ._stop import StopTransmissionOperations
from .transmission_models import (
    TransmissionHistoryResponse,
    TransmissionStartParams,
    TransmissionStartResponse,
    TransmissionStatusResponse,
    TransmissionStopResponse,
)


class StreamOrchestrator:
    """Entry point for starting, stopping and observing transmissions."""

    def __init__(self, media: MediaServerController | None = None):
        media = media or media_server_controller
        self._start = StartTransmissionOperations(media)
        self._stop = StopTransmissionOperations(media)
        self._status = StatusOperations(media)

    async def start(self, params: TransmissionStartParams) -> TransmissionStartResponse:
        """Start a transmission.

        Raises ValidationError, ConflictError, or MediaServerError (row left in erro).
        """
        return await self._start.start(params)

    async def stop(self, owner: str, transmission_id: str | None = None) -> TransmissionStopResponse:
        """Stop the owner's active transmission.

        Raises NotFoundError if there is nothing to stop.
        """
        return await self._stop.stop(owner, transmission_id)

    async def status(self, owner: str) -> TransmissionStatusResponse:
        return await self._status.status(owner)

    async def history(self, owner: str, page: int = 1, limit: int = 10) -> TransmissionHistoryResponse:
        return await self._status.history(owner, page=page, limit=limit)
