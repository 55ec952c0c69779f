"""Calendar helpers. Days of the week use 0=Sunday ... 6=Saturday.

All stored and compared timestamps are naive local time, matching the
default ``datetime.now`` clock. ``to_local_naive`` converts anything else.
"""

from datetime import datetime
from typing import Optional

MINUTES_PER_DAY = 24 * 60
SECONDS_PER_DAY = 24 * 60 * 60


def to_local_naive(moment: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=None)
    return moment.astimezone().replace(tzinfo=None)


def day_of_week(moment: datetime) -> int:
    # datetime.weekday() is Monday=0
    return (moment.weekday() + 1) % 7


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def day_difference(day_a: int, day_b: int) -> int:
    """Circular distance between two weekdays, so Saturday and Sunday are adjacent."""
    diff = abs(day_a - day_b) % 7
    return min(diff, 7 - diff)


def time_of_day_difference(minutes_a: int, minutes_b: int) -> int:
    """Circular distance in minutes between two times of day."""
    diff = abs(minutes_a - minutes_b) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later``, never negative."""
    return max(0.0, (later - earlier).total_seconds() / SECONDS_PER_DAY)


def rush_period(hour: int) -> Optional[str]:
    """"morning" for 7-9h, "evening" for 17-19h, otherwise None."""
    if 7 <= hour <= 9:
        return "morning"
    if 17 <= hour <= 19:
        return "evening"
    return None


def time_bucket(hour: int) -> str:
    """Coarse time-preference bucket for an hour of the day."""
    if hour < 7:
        return "early"
    if rush_period(hour) is not None:
        return "peak"
    if hour >= 20:
        return "late"
    return "offpeak"
