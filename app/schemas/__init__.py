"""Beanie ODM schemas for MongoDB collections."""

from .catalog import MediaServer, PlatformDescriptor, Playlist, PlaylistVideo, UserPlatform
from .init import DOCUMENT_MODELS, init_beanie_odm
from .relay_session import RelaySession
from .states import (
    PlatformBindingState,
    RelaySourceType,
    RelayState,
    TransmissionState,
    TransmissionType,
)
from .stream import Stream, StreamQuality
from .transmission import Transmission, TransmissionSettings
from .transmission_platform import TransmissionPlatform

__all__ = [
    "DOCUMENT_MODELS",
    "MediaServer",
    "PlatformBindingState",
    "PlatformDescriptor",
    "Playlist",
    "PlaylistVideo",
    "RelaySession",
    "RelaySourceType",
    "RelayState",
    "Stream",
    "StreamQuality",
    "Transmission",
    "TransmissionPlatform",
    "TransmissionSettings",
    "TransmissionState",
    "TransmissionType",
    "UserPlatform",
    "init_beanie_odm",
]
