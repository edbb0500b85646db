import re

from ulid import ULID

from app.shared.utils import utc_now_ms


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_transmission_id() -> str:
    return new_ulid("tx_")


def new_stream_id() -> str:
    return new_ulid("st_")


def new_binding_id() -> str:
    return new_ulid("tp_")


def new_stream_name(owner: str) -> str:
    """Media server stream name, e.g. ``stream_u42_1718000000000``."""
    safe_owner = re.sub(r"[^A-Za-z0-9_-]", "", owner) or "owner"
    return f"stream_{safe_owner}_{utc_now_ms()}"
