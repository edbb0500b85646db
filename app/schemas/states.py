"""Common enums used across schemas."""

from enum import Enum


class TransmissionState(str, Enum):
    """Transmission lifecycle states.

    State Transition Flow:

    PREPARANDO → ATIVA → FINALIZADA
         ↓
        ERRO

    State Descriptions:
    - PREPARANDO: Row created by a start request, media server not yet confirmed.
    - ATIVA: Media server accepted the stream. Stream and platform rows exist.
    - FINALIZADA: Stopped by the owner.
    - ERRO: Media server start failed, error_details holds the reason.

    Terminal states (no further transitions): FINALIZADA, ERRO
    """

    PREPARANDO = "preparando"
    ATIVA = "ativa"
    FINALIZADA = "finalizada"
    ERRO = "erro"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def in_flight_states(cls) -> list["TransmissionState"]:
        """States covered by the one-per-owner unique index."""
        return [TransmissionState.PREPARANDO, TransmissionState.ATIVA]


class TransmissionType(str, Enum):
    MANUAL = "manual"
    PLAYLIST = "playlist"

    def __str__(self) -> str:
        return self.value


class PlatformBindingState(str, Enum):
    ATIVA = "ativa"
    FINALIZADA = "finalizada"

    def __str__(self) -> str:
        return self.value


class RelayState(str, Enum):
    """Relay session states. A row is reused per owner across start/stop cycles."""

    INATIVO = "inativo"
    ATIVO = "ativo"
    ERRO = "erro"

    def __str__(self) -> str:
        return self.value


class RelaySourceType(str, Enum):
    RTMP = "rtmp"
    M3U8 = "m3u8"

    def __str__(self) -> str:
        return self.value


__all__ = [
    "PlatformBindingState",
    "RelaySourceType",
    "RelayState",
    "TransmissionState",
    "TransmissionType",
]
