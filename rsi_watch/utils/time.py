"""
Time helpers for cooldown windows and position durations.

Every component that needs "now" accepts a ``Clock`` so that time can be
advanced deterministically; ``utc_now`` is the production clock.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def time_elapsed_seconds(start_time: datetime, end_time: Optional[datetime] = None) -> float:
    """
    Calculate elapsed time in seconds between two timestamps.

    Args:
        start_time: Start timestamp
        end_time: End timestamp, defaults to current wall-clock time

    Returns:
        Elapsed time in seconds
    """
    if end_time is None:
        end_time = utc_now()

    return (end_time - start_time).total_seconds()


def split_duration(seconds: float) -> tuple[int, int, int]:
    """
    Split a duration into whole hours, minutes and seconds.

    Components are truncated, never rounded: 59.9 seconds is (0, 0, 59).
    Negative durations are clamped to zero.
    """
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return hours, minutes, secs


def format_duration(seconds: float) -> str:
    """Format a duration as ``"{h}h {m}m {s}s"``."""
    hours, minutes, secs = split_duration(seconds)
    return f"{hours}h {minutes}m {secs}s"


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp for human-readable alerts."""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
