"""Process-local table of running streams.

The table is a cache. Persisted Transmission/Stream/TransmissionPlatform rows
are the system of record, so a lookup miss (process restart, another
instance started the stream) rebuilds the entry from them.
"""

from beanie.operators import In
from loguru import logger

from app.schemas import (
    PlatformBindingState,
    Playlist,
    Stream,
    Transmission,
    TransmissionPlatform,
    TransmissionState,
    UserPlatform,
)

from .models import ActiveStreamSession, PlaylistSettings, PushTarget


async def restore_session(transmission_id: str) -> ActiveStreamSession | None:
    """Rebuild a session from persisted records, or None if the transmission is not ativa."""
    transmission = await Transmission.find_one(
        Transmission.transmission_id == transmission_id,
        Transmission.status == TransmissionState.ATIVA,
    )
    if not transmission or not transmission.stream_name:
        return None

    stream = await Stream.find_one(Stream.transmission_id == transmission_id)
    bindings = await TransmissionPlatform.find(
        TransmissionPlatform.transmission_id == transmission_id,
        TransmissionPlatform.status == PlatformBindingState.ATIVA,
    ).to_list()

    platforms: list[PushTarget] = []
    if bindings:
        user_platforms = await UserPlatform.find(
            In(UserPlatform.user_platform_id, [b.user_platform_id for b in bindings])
        ).to_list()
        by_id = {up.user_platform_id: up for up in user_platforms}
        for binding in bindings:
            up = by_id.get(binding.user_platform_id)
            platforms.append(
                PushTarget(
                    user_platform_id=binding.user_platform_id,
                    code=binding.platform_code or (up.platform.code if up else None),
                    name=up.platform.name if up else None,
                    rtmp_url=(up.rtmp_url or up.platform.rtmp_url) if up else None,
                    stream_key=up.stream_key if up else None,
                )
            )

    videos = []
    if transmission.playlist_id:
        playlist = await Playlist.find_one(Playlist.playlist_id == transmission.playlist_id)
        if playlist:
            videos = playlist.videos

    logger.info(f"Restored stream session for transmission {transmission_id} from persisted records")

    return ActiveStreamSession(
        transmission_id=transmission_id,
        stream_name=transmission.stream_name,
        application=transmission.application or (stream.application if stream else ""),
        started_at=transmission.started_at or transmission.created_at,
        videos=videos,
        platforms=platforms,
        settings=PlaylistSettings.model_validate(transmission.playlist_config or {}),
        bitrate=stream.quality.bitrate if stream else 0,
    )


class ActiveStreamCache:
    def __init__(self) -> None:
        self._sessions: dict[str, ActiveStreamSession] = {}

    def __contains__(self, transmission_id: str) -> bool:
        return transmission_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, transmission_id: str) -> ActiveStreamSession | None:
        return self._sessions.get(transmission_id)

    def put(self, session: ActiveStreamSession) -> None:
        self._sessions[session.transmission_id] = session

    def pop(self, transmission_id: str) -> ActiveStreamSession | None:
        return self._sessions.pop(transmission_id, None)

    async def get_or_restore(self, transmission_id: str) -> ActiveStreamSession | None:
        session = self._sessions.get(transmission_id)
        if session is None:
            session = await restore_session(transmission_id)
            if session is not None:
                self._sessions[transmission_id] = session
        return session
