from fastapi import APIRouter, Depends, Query

from app.api.v1.dependency import CurrentUser
from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.streaming import StartTransmissionIn, StopTransmissionIn
from app.domain.live.transmission.transmission_domain import StreamOrchestrator
from app.domain.live.transmission.transmission_models import (
    TransmissionHistoryResponse,
    TransmissionStartParams,
    TransmissionStartResponse,
    TransmissionStartSettings,
    TransmissionStatusResponse,
    TransmissionStopResponse,
)
from app.services.integrations.media_server import PlaylistSettings

router = APIRouter(prefix="/streaming", tags=["Streaming"])

# Singleton instance
_stream_orchestrator = StreamOrchestrator()


def get_stream_orchestrator() -> StreamOrchestrator:
    """Get the singleton StreamOrchestrator instance."""
    return _stream_orchestrator


@router.post("/start")
async def start_transmission(
    body: StartTransmissionIn,
    user: CurrentUser,
    service: StreamOrchestrator = Depends(get_stream_orchestrator),
) -> ApiOut[TransmissionStartResponse]:
    """Start a transmission fanned out to the selected platforms."""
    params = TransmissionStartParams(
        owner=user.user_id,
        title=body.title,
        description=body.description,
        platform_ids=body.platform_ids,
        playlist_id=body.playlist_id,
        server_id=body.server_id,
        settings=TransmissionStartSettings(
            resolution=body.quality.resolution,
            fps=body.quality.fps,
            bitrate=body.quality.bitrate,
            auto_start=body.auto_start,
            playlist=PlaylistSettings(**body.playlist.model_dump()),
        ),
    )

    result = await service.start(params)

    return ApiOut[TransmissionStartResponse](results=result)


@router.post("/stop")
async def stop_transmission(
    body: StopTransmissionIn,
    user: CurrentUser,
    service: StreamOrchestrator = Depends(get_stream_orchestrator),
) -> ApiOut[TransmissionStopResponse]:
    """Stop the caller's active transmission."""
    result = await service.stop(user.user_id, body.transmission_id)

    return ApiOut[TransmissionStopResponse](results=result)


@router.get("/status")
async def transmission_status(
    user: CurrentUser,
    service: StreamOrchestrator = Depends(get_stream_orchestrator),
) -> ApiOut[TransmissionStatusResponse]:
    """Live status of the caller's active transmission."""
    result = await service.status(user.user_id)

    return ApiOut[TransmissionStatusResponse](results=result)


@router.get("/history")
async def transmission_history(
    user: CurrentUser,
    service: StreamOrchestrator = Depends(get_stream_orchestrator),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(10, ge=1, le=100, description="Number of items per page"),
) -> ApiOut[TransmissionHistoryResponse]:
    """List the caller's transmissions, newest first."""
    result = await service.history(user.user_id, page=page, limit=limit)

    return ApiOut[TransmissionHistoryResponse](results=result)
