"""Clock and duration helpers."""
import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def calculate_duration(start_time: datetime, end_time: datetime) -> int:
    """
    Calculate duration in whole minutes between start and end time.

    Half a minute rounds up, so 89m30s is 90 minutes.

    Args:
        start_time: Start time
        end_time: End time

    Returns:
        Duration in minutes, never negative

    Examples:
        >>> from datetime import timedelta
        >>> t0 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
        >>> calculate_duration(t0, t0 + timedelta(minutes=90))
        90
        >>> calculate_duration(t0, t0 + timedelta(seconds=89))
        1
    """
    seconds = (end_time - start_time).total_seconds()
    return max(0, round_half_up(seconds / 60))
