from fastapi import APIRouter, Depends

from app.api.v1.dependency import CurrentUser
from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.relay import StartRelayIn, ValidateUrlIn
from app.domain.live.relay.relay_domain import RelayManager
from app.domain.live.relay.relay_models import (
    RelayResponse,
    RelayStartParams,
    RelayStopResponse,
    SourceValidation,
)

router = APIRouter(prefix="/relay", tags=["Relay"])

# Singleton instance
_relay_manager = RelayManager()


def get_relay_manager() -> RelayManager:
    """Get the singleton RelayManager instance."""
    return _relay_manager


@router.get("/status")
async def relay_status(
    user: CurrentUser,
    service: RelayManager = Depends(get_relay_manager),
) -> ApiOut[RelayResponse]:
    result = await service.status(user.user_id)

    return ApiOut[RelayResponse](results=result)


@router.post("/validate_url")
async def validate_url(
    body: ValidateUrlIn,
    user: CurrentUser,
    service: RelayManager = Depends(get_relay_manager),
) -> ApiOut[SourceValidation]:
    """Check that a relay source is a reachable m3u8 or a well-formed rtmp URL."""
    result = await service.validate_source(body.url)

    return ApiOut[SourceValidation](results=result)


@router.post("/start")
async def start_relay(
    body: StartRelayIn,
    user: CurrentUser,
    service: RelayManager = Depends(get_relay_manager),
) -> ApiOut[RelayResponse]:
    """Start relaying an external source. Blocks while the remote process settles."""
    params = RelayStartParams(
        owner=user.user_id,
        owner_email=user.email,
        source_url=body.relay_url,
        source_type=body.relay_type,
        server_id=body.server_id,
    )

    result = await service.start(params)

    return ApiOut[RelayResponse](results=result)


@router.post("/stop")
async def stop_relay(
    user: CurrentUser,
    service: RelayManager = Depends(get_relay_manager),
) -> ApiOut[RelayStopResponse]:
    result = await service.stop(user.user_id, owner_email=user.email)

    return ApiOut[RelayStopResponse](results=result)
