"""
Retry backoff policy.

delay = ceil(base ** attempts) seconds, where attempts already counts the
failure just observed: with base 2 the first retry waits 2s, the second 4s,
the third 8s. There is no jitter and no cap.
"""

import math
from datetime import datetime, timedelta


def backoff_delay(attempts: int, base: float) -> int:
    """Seconds to wait before the next attempt."""
    return math.ceil(base ** attempts)


def next_run_at(attempts: int, base: float, now: datetime) -> datetime:
    """
    Time at which a failed job becomes eligible again.

    A delay that lands past the last representable datetime schedules the
    job at datetime.max instead of raising.

    Args:
        attempts: Attempt counter after incrementing for the failure.
        base: Backoff base.
        now: Current time from the clock.
    """
    try:
        return now + timedelta(seconds=backoff_delay(attempts, base))
    except OverflowError:
        return datetime.max
