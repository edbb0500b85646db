"""Transmission start operations."""

from beanie.operators import In
from loguru import logger

from app.app_config import get_app_environ_config
from app.domain.utils.idgen import new_binding_id, new_stream_id, new_stream_name, new_transmission_id
from app.domain.utils.persistence import persistence_guard
from app.schemas import (
    Playlist,
    PlaylistVideo,
    Stream,
    StreamQuality,
    Transmission,
    TransmissionPlatform,
    TransmissionSettings,
    TransmissionState,
    TransmissionType,
    UserPlatform,
)
from app.services.integrations.media_server import PushTarget, StreamDescriptor, StreamStartResult
from app.shared.utils import utc_now
from app.utils.app_errors import (
    AppError,
    AppErrorCode,
    ConflictError,
    MediaServerError,
    ValidationError,
)

from ._base import BaseService
from .transmission_models import (
    IngestEndpoints,
    TransmissionStartParams,
    TransmissionStartResponse,
)


class StartTransmissionOperations(BaseService):
    """Operations for starting transmissions."""

    async def start(self, params: TransmissionStartParams) -> TransmissionStartResponse:
        """Start a transmission fanned out to the owner's selected platforms.

        Args:
            params: Owner, title, platform ids and optional playlist/settings

        Returns:
            TransmissionStartResponse with the ativa transmission, its stream and bindings

        Raises:
            ValidationError: Empty title, no platform ids, or none of them resolve
            ConflictError: The owner already has a transmission in flight
            MediaServerError: The media server refused the stream; the row is left in erro
        """
        title = (params.title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not params.platform_ids:
            raise ValidationError("At least one platform must be selected")

        await self._expire_stale_preparing(params.owner)
        active = await self._get_in_flight_transmission(params.owner)
        if active:
            raise ConflictError(
                f"Owner already has an active transmission: {active.transmission_id}",
                errcode=AppErrorCode.E_TRANSMISSION_EXISTS,
            )

        targets = await self._resolve_platforms(params.owner, params.platform_ids)
        if not targets:
            raise ValidationError(
                "None of the selected platforms is configured and active",
                errcode=AppErrorCode.E_PLATFORM_NOT_FOUND,
            )

        videos = await self._resolve_playlist_videos(params.owner, params.playlist_id)

        now = utc_now()
        transmission = Transmission(
            transmission_id=new_transmission_id(),
            owner=params.owner,
            title=title,
            description=params.description,
            status=TransmissionState.PREPARANDO,
            type=TransmissionType.PLAYLIST if params.playlist_id else TransmissionType.MANUAL,
            playlist_id=params.playlist_id,
            server_id=params.server_id,
            settings=TransmissionSettings(
                platforms=[t.user_platform_id for t in targets if t.user_platform_id],
                auto_start=params.settings.auto_start,
            ),
            playlist_config=params.settings.playlist.model_dump(),
            application=self.media.application,
            stream_name=new_stream_name(params.owner),
            created_at=now,
            updated_at=now,
        )
        # The partial unique index rejects a concurrent start that passed the check above
        with persistence_guard(
            "Create transmission",
            conflict_message="Owner already has an active transmission",
            conflict_errcode=AppErrorCode.E_TRANSMISSION_EXISTS,
        ):
            await transmission.insert()

        logger.info(
            f"Transmission {transmission.transmission_id} created for owner {params.owner} "
            f"with {len(targets)} platform(s)"
        )

        descriptor = StreamDescriptor(
            transmission_id=transmission.transmission_id,
            owner=params.owner,
            stream_name=transmission.stream_name,
            platforms=targets,
            playlist_id=params.playlist_id,
            videos=videos,
            settings=params.settings.playlist,
        )
        try:
            result = await self.media.start_stream(descriptor)
        except Exception as e:
            reason = e.errmesg if isinstance(e, AppError) else (str(e) or type(e).__name__)
            logger.exception(f"Media server start raised for transmission {transmission.transmission_id}")
            await self._mark_failed(transmission, reason)
            raise MediaServerError(f"Failed to start stream: {reason}") from e

        if not result.success:
            await self._mark_failed(transmission, result.error or "unknown media server error")
            raise MediaServerError(f"Failed to start stream: {result.error}")

        try:
            return await self._activate(transmission, targets, result, params)
        except Exception as e:
            reason = e.errmesg if isinstance(e, AppError) else str(e)
            logger.error(f"Failed to persist started transmission {transmission.transmission_id}: {reason}")
            try:
                await self.media.stop_stream(transmission.transmission_id)
            except Exception as stop_error:
                logger.warning(f"Media server stop after failed start raised: {stop_error!s}")
            try:
                await self._discard_children(transmission.transmission_id)
            except AppError as cleanup_error:
                logger.warning(f"Cleanup of partial stream rows failed: {cleanup_error.errmesg}")
            await self._mark_failed(transmission, reason)
            raise

    async def _activate(
        self,
        transmission: Transmission,
        targets: list[PushTarget],
        result: StreamStartResult,
        params: TransmissionStartParams,
    ) -> TransmissionStartResponse:
        cfg = get_app_environ_config()
        settings = params.settings
        now = utc_now()

        stream = Stream(
            stream_id=new_stream_id(),
            transmission_id=transmission.transmission_id,
            owner=transmission.owner,
            is_live=True,
            bitrate=result.bitrate or settings.bitrate or cfg.MEDIA_SERVER_DEFAULT_BITRATE,
            quality=StreamQuality(
                resolution=settings.resolution or cfg.DEFAULT_RESOLUTION,
                fps=settings.fps or cfg.DEFAULT_FPS,
                bitrate=settings.bitrate or result.bitrate or cfg.MEDIA_SERVER_DEFAULT_BITRATE,
            ),
            stream_name=result.stream_name or transmission.stream_name,
            application=result.application or self.media.application,
            created_at=now,
            updated_at=now,
        )

        bindings = [
            TransmissionPlatform(
                binding_id=new_binding_id(),
                transmission_id=transmission.transmission_id,
                user_platform_id=target.user_platform_id or "",
                platform_code=target.code,
                publisher_name=f"{stream.stream_name}_{target.code}",
                created_at=now,
                updated_at=now,
            )
            for target in targets
        ]

        with persistence_guard(f"Persist stream of {transmission.transmission_id}"):
            await stream.insert()
            await TransmissionPlatform.insert_many(bindings)

        transmission = await self.update_transmission_state(transmission, TransmissionState.ATIVA)

        return TransmissionStartResponse(
            transmission=self._to_transmission_response(transmission),
            stream=self._to_stream_response(stream),
            platforms=[self._to_binding_response(b) for b in bindings],
            ingest=IngestEndpoints(
                rtmp_url=result.rtmp_url,
                stream_key=result.stream_key,
                hls_url=result.hls_url,
                dash_url=result.dash_url,
            ),
        )

    async def _resolve_platforms(self, owner: str, platform_ids: list[str]) -> list[PushTarget]:
        """Owner's active platforms among ``platform_ids``, in request order."""
        wanted = list(dict.fromkeys(platform_ids))
        with persistence_guard("Load user platforms"):
            user_platforms = await UserPlatform.find(
                UserPlatform.owner == owner,
                In(UserPlatform.user_platform_id, wanted),
                UserPlatform.active == True,  # noqa: E712
            ).to_list()

        by_id = {up.user_platform_id: up for up in user_platforms}
        targets = []
        for platform_id in wanted:
            up = by_id.get(platform_id)
            if up is None:
                logger.warning(f"Platform {platform_id} not configured or inactive for owner {owner}")
                continue
            targets.append(
                PushTarget(
                    user_platform_id=up.user_platform_id,
                    code=up.platform.code,
                    name=up.platform.name,
                    rtmp_url=up.rtmp_url or up.platform.rtmp_url,
                    stream_key=up.stream_key,
                )
            )
        return targets

    async def _resolve_playlist_videos(self, owner: str, playlist_id: str | None) -> list[PlaylistVideo]:
        if not playlist_id:
            return []
        with persistence_guard("Load playlist"):
            playlist = await Playlist.find_one(
                Playlist.playlist_id == playlist_id,
                Playlist.owner == owner,
            )
        if playlist is None:
            logger.warning(f"Playlist {playlist_id} not found for owner {owner}, starting without videos")
            return []
        return playlist.videos
