"""Transmission status and history queries."""

from beanie.operators import Set
from loguru import logger

from app.domain.utils.persistence import persistence_guard
from app.schemas import Stream, Transmission
from app.shared.utils import utc_now
from app.utils.app_errors import ValidationError

from ._base import BaseService
from .transmission_models import TransmissionHistoryResponse, TransmissionStatusResponse

MAX_HISTORY_LIMIT = 100


class StatusOperations(BaseService):
    """Read-side operations: live status and past transmissions."""

    async def status(self, owner: str) -> TransmissionStatusResponse:
        """Live status of the owner's active transmission.

        Refreshed viewers/bitrate/uptime are written onto the Stream row.
        """
        transmission = await self._get_active_transmission(owner)
        if transmission is None:
            return TransmissionStatusResponse(is_live=False)

        stats = await self.media.get_stream_stats(transmission.transmission_id)
        stream = await self._get_stream(transmission.transmission_id)

        if stream is not None and stats.is_active:
            now = utc_now()
            with persistence_guard(f"Refresh stream stats of {transmission.transmission_id}"):
                await stream.update(
                    Set(
                        {
                            Stream.viewers: stats.viewers,
                            Stream.bitrate: stats.bitrate,
                            Stream.uptime: stats.uptime,
                            Stream.last_stats_update: now,
                            Stream.updated_at: now,
                        }
                    )
                )
            stream.viewers = stats.viewers
            stream.bitrate = stats.bitrate
            stream.uptime = stats.uptime
            stream.last_stats_update = now
        elif not stats.is_active:
            logger.warning(
                f"Transmission {transmission.transmission_id} is ativa but the media server has no session"
            )

        return TransmissionStatusResponse(
            is_live=stats.is_active,
            transmission=self._to_transmission_response(transmission),
            stream=self._to_stream_response(stream) if stream else None,
            platforms=stats.platforms,
            stats=stats,
        )

    async def history(self, owner: str, page: int = 1, limit: int = 10) -> TransmissionHistoryResponse:
        """Owner's transmissions, newest first."""
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1 or limit > MAX_HISTORY_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")

        query = Transmission.find(Transmission.owner == owner)
        with persistence_guard("Load transmission history"):
            total = await query.count()
            transmissions = (
                await Transmission.find(Transmission.owner == owner)
                .sort(-Transmission.created_at)
                .skip((page - 1) * limit)
                .limit(limit)
                .to_list()
            )

        return TransmissionHistoryResponse(
            transmissions=[self._to_transmission_response(t) for t in transmissions],
            page=page,
            limit=limit,
            total=total,
        )
