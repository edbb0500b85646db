"""Shared utilities for schema validation."""

from datetime import datetime, timezone
from typing import Any


def parse_mongo_datetime(v: Any) -> Any:
    """Parse MongoDB Extended JSON dates, or return the value as-is.

    Accepts both the relaxed form ``{'$date': '2024-11-01T08:00:00Z'}`` and the
    canonical form ``{'$date': {'$numberLong': '1730448000000'}}``, as written
    by mongoimport/mongoexport when collaborator records are seeded by hand.
    """
    if isinstance(v, datetime):
        return v
    if isinstance(v, dict) and "$date" in v:
        raw = v["$date"]
        if isinstance(raw, dict) and "$numberLong" in raw:
            return datetime.fromtimestamp(int(raw["$numberLong"]) / 1000, tz=timezone.utc)
        if isinstance(raw, (int, float)):
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    # Let Pydantic validate anything else
    return v
