import time
from datetime import datetime, timezone

utc_now = lambda: datetime.now(timezone.utc)
utc_now_ms = lambda: int(time.time() * 1000)


def format_uptime(elapsed_seconds: float) -> str:
    """Format an elapsed duration as HH:MM:SS.

    Hours are unbounded (a 30 hour stream reads ``30:00:00``); negative
    durations clamp to zero.
    """
    total = max(int(elapsed_seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
