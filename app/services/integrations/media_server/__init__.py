"""Media server control: application provisioning, push-publish mapping, stream sessions."""

from .client import MediaServerController, media_server_controller
from .models import (
    ApplicationStatus,
    LogoOverlay,
    PlaylistSettings,
    PushTarget,
    StreamDescriptor,
    StreamStartResult,
    StreamStats,
)

__all__ = [
    "ApplicationStatus",
    "LogoOverlay",
    "MediaServerController",
    "PlaylistSettings",
    "PushTarget",
    "StreamDescriptor",
    "StreamStartResult",
    "StreamStats",
    "media_server_controller",
]
