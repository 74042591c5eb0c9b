"""
Exponential backoff with random jitter.

Spreads retries of many clients over time so that a failing endpoint is not
hit by synchronized retry storms.

Example:
    >>> from appcheck._backoff import calculate_backoff_millis
    >>> calculate_backoff_millis(0)  # between 500 and 1500
    1137
    >>> calculate_backoff_millis(3)  # between 4000 and 12000
    9210
"""

from __future__ import annotations

import random

DEFAULT_INTERVAL_MILLIS = 1000
DEFAULT_BACKOFF_FACTOR = 2
MAX_VALUE_MILLIS = 4 * 60 * 60 * 1000  # 4 hours
RANDOM_FACTOR = 0.5


def calculate_backoff_millis(
    backoff_count: int,
    interval_millis: int = DEFAULT_INTERVAL_MILLIS,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    *,
    max_millis: int = MAX_VALUE_MILLIS,
    random_factor: float = RANDOM_FACTOR,
) -> int:
    """
    Calculate how long to wait before the next attempt.

    The base delay grows exponentially with the number of previous failures:
    ``interval_millis * backoff_factor ** backoff_count``. A random jitter of
    up to ``+/- random_factor`` of the base delay is added, and the result is
    capped at ``max_millis``.

    Args:
        backoff_count: Number of consecutive failures so far (0 = first failure).
        interval_millis: Base delay for the first failure.
        backoff_factor: Multiplier applied per consecutive failure.
        max_millis: Upper bound for the returned delay.
        random_factor: Maximum jitter as a fraction of the base delay.
            For example, 0.5 means the delay varies by +/- 50%.

    Returns:
        The delay in milliseconds (never negative).
    """
    assert backoff_count >= 0, f"backoff_count must be >= 0, got {backoff_count}"
    assert interval_millis > 0, f"interval_millis must be > 0, got {interval_millis}"
    assert backoff_factor >= 1, f"backoff_factor must be >= 1, got {backoff_factor}"
    assert 0 <= random_factor < 1, f"random_factor must be in [0, 1), got {random_factor}"

    base_value = interval_millis * (backoff_factor ** backoff_count)
    jitter = round(random_factor * base_value * random.uniform(-1, 1))
    return int(max(0, min(max_millis, base_value + jitter)))
