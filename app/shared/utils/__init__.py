"""
Utility helpers for shared packages.
"""

from .clock import format_uptime, utc_now, utc_now_ms

__all__ = [
    "format_uptime",
    "utc_now",
    "utc_now_ms",
]
