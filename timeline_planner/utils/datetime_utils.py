"""
UTC helpers for planner instants.

Every instant the planner stores is timezone-aware UTC, so interval
arithmetic never mixes naive and aware values.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current instant, UTC-aware."""
    return datetime.now(UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise an instant to aware UTC.

    Args:
        value: Naive (read as UTC) or aware datetime, or None

    Returns:
        Optional[datetime]: The same instant in UTC, or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the instant's day."""
    return ensure_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def whole_days(delta: timedelta) -> int:
    """Number of whole days in a non-negative interval."""
    return delta.days


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """
    Check whether two closed intervals share more than a single instant.

    Touching endpoints ([d1, d5] and [d5, d8]) do not overlap.
    """
    return a_start < b_end and b_start < a_end
