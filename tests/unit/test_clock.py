"""Tests for duration calculation."""
import pytest
from datetime import datetime, timedelta, timezone


T0 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


class TestCalculateDuration:
    """Duration is the span rounded to the nearest minute."""

    @pytest.mark.parametrize(
        "span, expected",
        [
            (timedelta(minutes=90), 90),
            (timedelta(seconds=29), 0),
            (timedelta(seconds=30), 1),
            (timedelta(minutes=59, seconds=29), 59),
            (timedelta(minutes=59, seconds=30), 60),
            (timedelta(hours=8, seconds=1), 480),
        ],
    )
    def test_rounds_to_nearest_minute(self, span, expected):
        from app.utils.clock import calculate_duration

        assert calculate_duration(T0, T0 + span) == expected

    def test_never_negative(self):
        from app.utils.clock import calculate_duration

        assert calculate_duration(T0, T0 - timedelta(minutes=5)) == 0

    def test_utc_now_is_aware(self):
        from app.utils.clock import utc_now

        assert utc_now().tzinfo is not None


class TestRoundHalfUp:

    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0.0, 0)])
    def test_halves_round_up(self, value, expected):
        from app.utils.clock import round_half_up

        assert round_half_up(value) == expected
