"""Media server control API client.

Talks to the media server's REST control API (digest auth, JSON bodies) and
deploys push-publish mapping files to the media host over SSH.

Usage:
    from app.services.integrations.media_server import media_server_controller

    result = await media_server_controller.start_stream(descriptor)
    if result.success:
        print(result.rtmp_url, result.stream_key)

    stats = await media_server_controller.get_stream_stats(transmission_id)
"""

import os
import tempfile
from datetime import timezone
from typing import Any

import httpx
import orjson
from loguru import logger

from app.app_config import AppEnvironConfig, get_app_environ_config
from app.schemas import PlaylistVideo
from app.services.integrations.remote_process import RemoteProcessController, SSHCredentials
from app.shared.utils import format_uptime, utc_now
from app.utils.app_errors import AppError, MediaServerError

from .active_streams import ActiveStreamCache
from .models import (
    ActiveStreamSession,
    ApplicationStatus,
    ControlApiResponse,
    PlaylistSettings,
    PushTarget,
    StreamDescriptor,
    StreamStartResult,
    StreamStats,
)
from .playlist import build_playlist_config
from .push_publish import build_push_publish_mapping, mapping_file_name
from .telemetry import PlaceholderTelemetry, TelemetrySource

VHOST_PATH = "/v2/servers/_defaultServer_/vhosts/_defaultVHost_"


class MediaServerController:
    """Wrapper around the media server control API and the push-publish deployment."""

    def __init__(
        self,
        cfg: AppEnvironConfig | None = None,
        remote: RemoteProcessController | None = None,
        telemetry: TelemetrySource | None = None,
        cache: ActiveStreamCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg or get_app_environ_config()
        self._remote = remote or RemoteProcessController(connect_timeout=self._cfg.SSH_CONNECT_TIMEOUT)
        self._telemetry = telemetry or PlaceholderTelemetry(base_bitrate=self._cfg.MEDIA_SERVER_DEFAULT_BITRATE)
        self._transport = transport
        self.active_streams = cache or ActiveStreamCache()

    @property
    def base_url(self) -> str:
        return f"http://{self._cfg.MEDIA_SERVER_HOST}:{self._cfg.MEDIA_SERVER_API_PORT}{VHOST_PATH}"

    @property
    def application(self) -> str:
        return self._cfg.MEDIA_SERVER_APPLICATION

    def _ssh_credentials(self) -> SSHCredentials:
        return SSHCredentials(
            host=self._cfg.MEDIA_SERVER_HOST,
            port=self._cfg.MEDIA_SERVER_SSH_PORT,
            username=self._cfg.MEDIA_SERVER_SSH_USER,
            password=self._cfg.MEDIA_SERVER_SSH_PASSWORD,
            key_path=self._cfg.MEDIA_SERVER_SSH_KEY_PATH,
        )

    async def _request(self, endpoint: str, method: str = "GET", data: Any = None) -> ControlApiResponse:
        """Call the control API.

        Non-2xx statuses come back as ``success=False``. Transport failures
        raise MediaServerError.
        """
        url = f"{self.base_url}{endpoint}"
        auth = httpx.DigestAuth(self._cfg.MEDIA_SERVER_USER, self._cfg.MEDIA_SERVER_PASSWORD)
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(
                auth=auth,
                timeout=self._cfg.MEDIA_SERVER_API_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, json=data, headers=headers)
        except httpx.HTTPError as e:
            raise MediaServerError(f"Media server unreachable at {url}: {e}") from e

        text = response.text
        try:
            parsed: Any = orjson.loads(text) if text else {}
        except orjson.JSONDecodeError:
            parsed = text

        logger.debug(f"{method} {endpoint} -> {response.status_code}")
        return ControlApiResponse(
            status_code=response.status_code,
            success=response.is_success,
            data=parsed,
        )

    # ==================== APPLICATIONS ====================

    async def ensure_application(self, name: str | None = None) -> ApplicationStatus:
        """Create the live application if it does not exist yet.

        Raises:
            MediaServerError: If the application is missing and cannot be created
        """
        app_name = name or self.application
        check = await self._request(f"/applications/{app_name}")
        if check.success:
            return ApplicationStatus(existed=True)

        logger.info(f"Application {app_name} not found (status {check.status_code}), creating it")
        created = await self._request(
            "/applications",
            "POST",
            {
                "id": app_name,
                "appType": "Live",
                "name": app_name,
                "description": "Live streaming app created via API",
            },
        )
        if not created.success:
            raise MediaServerError(
                f"Failed to create application {app_name}: status={created.status_code} body={created.data}"
            )
        return ApplicationStatus(existed=False, created=True)

    # ==================== PUSH PUBLISH ====================

    def build_push_publish_mapping(self, stream_name: str, platforms: list[PushTarget]) -> str:
        return build_push_publish_mapping(platforms)

    async def deploy_mapping(self, stream_name: str, content: str) -> str:
        """Write the mapping to a temp file and upload it to the media host.

        Returns:
            Remote path of the deployed file
        """
        file_name = mapping_file_name(stream_name)
        local_path = os.path.join(tempfile.gettempdir(), file_name)
        remote_path = f"{self._cfg.MEDIA_SERVER_PUSHPUBLISH_DIR.rstrip('/')}/{file_name}"

        try:
            with open(local_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise MediaServerError(f"Failed to write mapping file {local_path}: {e}") from e

        try:
            async with self._remote.connect(self._ssh_credentials()) as channel:
                await self._remote.put_file(channel, local_path, remote_path)
        finally:
            try:
                os.remove(local_path)
            except OSError:
                logger.warning(f"Could not remove temp mapping file {local_path}")

        logger.info(f"Deployed push-publish mapping for {stream_name} to {remote_path}")
        return remote_path

    def configure_playlist(
        self,
        stream_name: str,
        videos: list[PlaylistVideo],
        settings: PlaylistSettings,
    ) -> dict[str, Any]:
        return build_playlist_config(stream_name, videos, settings)

    # ==================== STREAMS ====================

    async def start_stream(self, descriptor: StreamDescriptor) -> StreamStartResult:
        """Provision, deploy the mapping and register the session.

        Never raises for media server or remote failures; they come back as
        ``success=False`` with the reason in ``error``.
        """
        stream_name = descriptor.stream_name
        app_name = self.application

        try:
            await self.ensure_application(app_name)
            content = self.build_push_publish_mapping(stream_name, descriptor.platforms)
            await self.deploy_mapping(stream_name, content)

            playlist_config: dict[str, Any] = {}
            if descriptor.playlist_id and descriptor.videos:
                playlist_config = self.configure_playlist(stream_name, descriptor.videos, descriptor.settings)
        except AppError as e:
            logger.warning(f"Stream start failed for transmission {descriptor.transmission_id}: {e.errmesg}")
            return StreamStartResult(success=False, error=e.errmesg)
        except Exception as e:
            logger.exception(f"Unexpected error starting stream for transmission {descriptor.transmission_id}")
            return StreamStartResult(success=False, error=f"{type(e).__name__}: {e}")

        bitrate = self._cfg.MEDIA_SERVER_DEFAULT_BITRATE
        self.active_streams.put(
            ActiveStreamSession(
                transmission_id=descriptor.transmission_id,
                stream_name=stream_name,
                application=app_name,
                started_at=utc_now(),
                videos=descriptor.videos,
                platforms=descriptor.platforms,
                settings=descriptor.settings,
                playlist_config=playlist_config,
                bitrate=bitrate,
            )
        )

        host = self._cfg.MEDIA_SERVER_HOST
        port = self._cfg.MEDIA_SERVER_STREAMING_PORT
        playback_base = f"http://{host}:{port}/{app_name}/{stream_name}"

        logger.info(f"Stream {stream_name} registered for transmission {descriptor.transmission_id}")
        return StreamStartResult(
            success=True,
            stream_name=stream_name,
            application=app_name,
            rtmp_url=f"rtmp://{host}:{port}/{app_name}",
            stream_key=stream_name,
            hls_url=f"{playback_base}/playlist.m3u8",
            dash_url=f"{playback_base}/manifest.mpd",
            bitrate=bitrate,
            playlist_config=playlist_config,
        )

    async def stop_stream(self, transmission_id: str) -> bool:
        """Drop the session. Returns False when it was not registered."""
        session = self.active_streams.pop(transmission_id)
        if session is None:
            logger.info(f"Stream for transmission {transmission_id} was not active")
            return False
        logger.info(f"Stream {session.stream_name} stopped for transmission {transmission_id}")
        return True

    async def get_stream_stats(self, transmission_id: str) -> StreamStats:
        session = await self.active_streams.get_or_restore(transmission_id)
        if session is None:
            return StreamStats(is_active=False)

        sample = await self._telemetry.sample(session)
        session.bitrate = sample.bitrate

        started_at = session.started_at
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)

        return StreamStats(
            is_active=True,
            viewers=sample.viewers,
            bitrate=sample.bitrate,
            uptime=format_uptime((utc_now() - started_at).total_seconds()),
            is_estimated=sample.is_estimated,
            current_video=session.video_cursor + 1,
            total_videos=len(session.videos),
            platforms=session.platforms,
            playlist_config=session.playlist_config,
        )

    # ==================== DIAGNOSTICS ====================

    async def test_connection(self) -> dict[str, Any]:
        try:
            result = await self._request("/applications")
        except MediaServerError as e:
            return {"connected": False, "error": e.errmesg}
        return {"connected": result.success, "status_code": result.status_code, "data": result.data}

    async def list_applications(self) -> ControlApiResponse:
        return await self._request("/applications")

    async def get_server_info(self) -> ControlApiResponse:
        return await self._request("/server")


media_server_controller = MediaServerController()
