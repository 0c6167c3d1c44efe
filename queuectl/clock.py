"""
Clock used for eligibility checks and every stored timestamp.

Timestamps are naive UTC so they compare the same way on SQLite and
PostgreSQL.
"""

from datetime import UTC, datetime
from typing import Protocol


def utc_now() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(UTC).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """Get the process-wide clock."""
    return _clock
