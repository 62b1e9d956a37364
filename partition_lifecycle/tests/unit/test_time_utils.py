"""Unit tests for calendar-month helpers."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from partition_lifecycle.core.time_utils import (
    add_months,
    as_date,
    first_of_month,
    iter_month_starts,
)


@pytest.mark.parametrize(
    ("day", "months", "expected"),
    [
        (date(2025, 1, 15), 1, date(2025, 2, 15)),
        (date(2025, 1, 31), 1, date(2025, 2, 28)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2025, 11, 1), 2, date(2026, 1, 1)),
        (date(2025, 3, 1), -3, date(2024, 12, 1)),
        (date(2025, 3, 1), 12, date(2026, 3, 1)),
    ],
)
def test_add_months(day, months, expected):
    assert add_months(day, months) == expected


def test_first_of_month():
    assert first_of_month(date(2025, 7, 19)) == date(2025, 7, 1)


def test_as_date_converts_aware_datetime_to_utc():
    # 23:30 at UTC-05:00 is already the next day in UTC
    value = datetime(2025, 1, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert as_date(value) == date(2025, 2, 1)


def test_as_date_passes_dates_through():
    assert as_date(date(2025, 1, 31)) == date(2025, 1, 31)
    assert as_date(datetime(2025, 1, 31, 12, tzinfo=UTC)) == date(2025, 1, 31)


def test_iter_month_starts_includes_month_of_end():
    months = list(iter_month_starts(date(2025, 1, 15), date(2025, 4, 10)))
    assert months == [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1), date(2025, 4, 1)]


def test_iter_month_starts_single_day_range():
    assert list(iter_month_starts(date(2025, 6, 30), date(2025, 6, 30))) == [date(2025, 6, 1)]
