"""
Utility functions for the appcheck package.

These helpers are internal and may change without notice.
"""

from __future__ import annotations

import time
from datetime import datetime


def now_millis() -> int:
    """
    Return the current wall-clock time in milliseconds since the epoch.

    Every time-dependent decision in the package (throttle windows,
    token issuance and expiration) goes through this function, so tests
    can control time by patching ``appcheck._utils.time.time_ns``.
    """
    return time.time_ns() // 1_000_000


def format_millis(timestamp_millis: int) -> str:
    """
    Format an epoch-milliseconds timestamp as a local, human-readable string.

    Example:
        >>> format_millis(0)  # depends on local timezone
        '1970-01-01 00:00:00'
    """
    return datetime.fromtimestamp(timestamp_millis / 1000).strftime("%Y-%m-%d %H:%M:%S")
