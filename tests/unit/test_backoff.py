"""
Unit tests for the retry backoff policy.
"""

from datetime import datetime, timedelta

import pytest

from queuectl.worker.backoff import backoff_delay, next_run_at


class TestBackoff:
    """Tests for backoff_delay and next_run_at."""

    @pytest.mark.parametrize(
        "attempts,base,expected",
        [
            (1, 2, 2),
            (2, 2, 4),
            (3, 2, 8),
            (0, 2, 1),
            (2, 1.5, 3),
            (5, 1, 1),
        ],
    )
    def test_backoff_delay(self, attempts: int, base: float, expected: int):
        """Test delay = ceil(base ** attempts)."""
        assert backoff_delay(attempts, base) == expected

    def test_next_run_at(self):
        """Test the eligibility time is now plus the delay."""
        now = datetime(2025, 1, 1, 12, 0, 0)

        assert next_run_at(1, 2, now) == now + timedelta(seconds=2)
        assert next_run_at(3, 2, now) == now + timedelta(seconds=8)

    def test_next_run_at_largest_in_range(self):
        now = datetime(2025, 1, 1, 12, 0, 0)

        assert next_run_at(10, 10, now) == now + timedelta(seconds=10**10)

    @pytest.mark.parametrize(
        "attempts,base",
        [
            (6, 100),
            (10, 100),
            (500, 10.5),
        ],
    )
    def test_next_run_at_past_datetime_range(self, attempts: int, base: float):
        """Test that delays beyond year 9999 schedule at datetime.max."""
        now = datetime(2025, 1, 1, 12, 0, 0)

        assert next_run_at(attempts, base, now) == datetime.max
