import random
from collections.abc import Sequence
from typing import Any, TypeVar

from app.schemas import PlaylistVideo

from .models import PlaylistSettings

T = TypeVar("T")


def fisher_yates_shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``items``."""
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_playlist_config(
    stream_name: str,
    videos: Sequence[PlaylistVideo],
    settings: PlaylistSettings,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    entries = [{"name": v.name, "uri": v.url, "duration": v.duration or 0} for v in videos]
    if settings.shuffle:
        entries = fisher_yates_shuffle(entries, rng)

    config: dict[str, Any] = {
        "name": f"{stream_name}_playlist",
        "repeat": settings.repeat,
        "shuffle": settings.shuffle,
        "videos": entries,
    }

    if settings.logo:
        logo = settings.logo
        config["overlay"] = {
            "logo": {
                "url": logo.url,
                "position": logo.position,
                "opacity": logo.opacity / 100,
                "size": logo.size,
                "marginX": logo.margin_x,
                "marginY": logo.margin_y,
            }
        }

    return config
