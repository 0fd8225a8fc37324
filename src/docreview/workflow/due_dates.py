"""Business-day due date calculation."""

from __future__ import annotations

from datetime import datetime, timedelta

# datetime.weekday(): Monday == 0 ... Saturday == 5, Sunday == 6
_WEEKEND = {5, 6}


def add_business_days(start: datetime, days: int) -> datetime:
    """Return the moment ``days`` weekdays after ``start``.

    Steps forward one calendar day at a time, counting only Monday-Friday,
    until ``days`` weekdays have elapsed. The time of day is preserved.
    ``days == 0`` returns ``start`` unchanged (even on a weekend).

    >>> add_business_days(datetime(2024, 3, 1), 1)  # Friday
    datetime.datetime(2024, 3, 4, 0, 0)

    Raises:
        ValueError: If ``days`` is negative.
    """
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")

    current = start
    added = 0
    while added < days:
        current += timedelta(days=1)
        if current.weekday() not in _WEEKEND:
            added += 1
    return current


def is_business_day(moment: datetime) -> bool:
    """Whether the date falls on Monday-Friday."""
    return moment.weekday() not in _WEEKEND
