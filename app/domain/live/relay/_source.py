"""Relay source validation, owner login derivation and the relay command line."""

import re
import shlex

import httpx
from loguru import logger

from app.schemas import RelaySourceType

from .relay_models import SourceValidation

RTMP_PATTERN = re.compile(r"^rtmp://[^/]+/[^/]+/?.*")
LOGIN_FALLBACK = "usuario"
PROBE_USER_AGENT = "Mozilla/5.0 (compatible; StreamRelay/1.0)"


def infer_source_type(url: str) -> RelaySourceType | None:
    if ".m3u8" in url:
        return RelaySourceType.M3U8
    if url.startswith("rtmp://"):
        return RelaySourceType.RTMP
    return None


async def validate_source(
    url: str | None,
    timeout: float = 10,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SourceValidation:
    """Classify and check a relay source. Never raises.

    m3u8 sources get a HEAD probe and are valid only on a 200. rtmp sources
    are checked syntactically, without touching the network.
    """
    if not url:
        return SourceValidation(valid=False, message="URL is required")

    source_type = infer_source_type(url)

    if source_type == RelaySourceType.M3U8:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                response = await client.head(url, headers={"User-Agent": PROBE_USER_AGENT})
        except httpx.HTTPError as e:
            logger.info(f"m3u8 probe failed for {url}: {e!s}")
            return SourceValidation(
                valid=False,
                message=f"M3U8 URL unreachable: {e!s}",
                source_type=source_type,
            )
        valid = response.status_code == 200
        return SourceValidation(
            valid=valid,
            message="M3U8 URL reachable" if valid else f"URL returned status {response.status_code}",
            status=response.status_code,
            source_type=source_type,
        )

    if source_type == RelaySourceType.RTMP:
        valid = bool(RTMP_PATTERN.match(url))
        return SourceValidation(
            valid=valid,
            message="Valid RTMP format" if valid else "Invalid RTMP format",
            source_type=source_type,
        )

    return SourceValidation(valid=False, message="URL must be RTMP (rtmp://) or M3U8 (https://...m3u8)")


def derive_login(email: str | None) -> str:
    """Local part of the e-mail restricted to [A-Za-z0-9_.-], or ``usuario``."""
    local_part = (email or "").split("@", 1)[0]
    login = re.sub(r"[^A-Za-z0-9_.-]", "", local_part)
    return login or LOGIN_FALLBACK


def relay_session_name(login: str) -> str:
    return f"{login}_relay"


def build_relay_command(
    ffmpeg_path: str,
    source_url: str,
    source_type: RelaySourceType,
    output_url: str,
) -> str:
    """ffmpeg command that re-publishes ``source_url`` to ``output_url`` without transcoding.

    Reconnect flags only apply to HTTP inputs, so rtmp sources go without them.
    """
    args = [ffmpeg_path, "-re"]
    if source_type == RelaySourceType.M3U8:
        args += ["-reconnect", "1", "-reconnect_streamed", "1", "-reconnect_delay_max", "2"]
    args += [
        "-i", source_url,
        "-c:v", "copy",
        "-c:a", "copy",
        "-bsf:a", "aac_adtstoasc",
        "-preset", "medium",
        "-threads", "1",
        "-f", "flv",
        output_url,
    ]
    return shlex.join(args)
