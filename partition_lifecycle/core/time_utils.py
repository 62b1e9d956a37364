"""Calendar-month arithmetic used by the partition lifecycle services."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Default clock for the lifecycle services."""
    return datetime.now(UTC)


def as_date(value: date | datetime) -> date:
    """Normalize a date or datetime to a calendar date.

    Aware datetimes are converted to UTC first; naive datetimes are taken
    as-is.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month length.

    Examples:
        add_months(date(2025, 1, 31), 1) -> date(2025, 2, 28)
        add_months(date(2025, 3, 1), -3) -> date(2024, 12, 1)
    """
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    if month == 12:
        next_month_start = date(year + 1, 1, 1)
    else:
        next_month_start = date(year, month + 1, 1)
    last_day = (next_month_start - date(year, month, 1)).days
    return date(year, month, min(day.day, last_day))


def iter_month_starts(start: date, end: date) -> Iterator[date]:
    """Yield the first day of every month from start's month while <= end."""
    current = first_of_month(start)
    while current <= end:
        yield current
        current = add_months(current, 1)

