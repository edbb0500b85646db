"""Viewer/bitrate telemetry sources.

Only a placeholder exists today: it samples plausible numbers and flags them
as estimated. A real source (media server monitoring API, CDN analytics)
implements the same `TelemetrySource` protocol.
"""

import random
from typing import Protocol

from pydantic import BaseModel

from .models import ActiveStreamSession


class TelemetrySample(BaseModel):
    viewers: int
    bitrate: int
    is_estimated: bool


class TelemetrySource(Protocol):
    async def sample(self, session: ActiveStreamSession) -> TelemetrySample: ...


class PlaceholderTelemetry:
    """Random viewers in [5, 54] and bitrate in [base, base + 499] kbps."""

    def __init__(self, base_bitrate: int = 2500, rng: random.Random | None = None) -> None:
        self.base_bitrate = base_bitrate
        self._rng = rng or random.Random()

    async def sample(self, session: ActiveStreamSession) -> TelemetrySample:
        return TelemetrySample(
            viewers=self._rng.randint(5, 54),
            bitrate=self.base_bitrate + self._rng.randint(0, 499),
            is_estimated=True,
        )
