"""
Time utilities for exchange timestamps.

The exchange speaks integer epoch milliseconds everywhere: signed request
timestamps, server time and stream event times. Wall-clock reads are
centralized here so that clock drift correction has a single source.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def current_time_ms() -> int:
    """
    Get the local wall-clock time in epoch milliseconds.

    Returns:
        Current local time as integer milliseconds
    """
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: Optional[int]) -> Optional[datetime]:
    """
    Convert an exchange millisecond timestamp into a UTC datetime.

    Args:
        timestamp_ms: Epoch milliseconds, or None

    Returns:
        Timezone-aware UTC datetime, or None when no timestamp was given
    """
    if timestamp_ms is None:
        return None
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)


def is_within_window(timestamp_ms: int, reference_ms: int, window_ms: int) -> bool:
    """
    Check whether a timestamp lies within a window around a reference time.

    Args:
        timestamp_ms: Timestamp to check
        reference_ms: Reference time, usually the drift-corrected now
        window_ms: Allowed distance in either direction

    Returns:
        True if |timestamp - reference| <= window
    """
    return abs(reference_ms - timestamp_ms) <= window_ms
