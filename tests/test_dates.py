"""Date-range helpers — day counts, ranges and overlap."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from hrms.common.dates import (
    business_days_between,
    date_range,
    intervals_overlap,
    working_days_between,
)


class TestBusinessDaysBetween:

    def test_single_day(self):
        assert business_days_between(date(2024, 6, 3), date(2024, 6, 3)) == Decimal("1")

    def test_weekdays_inclusive(self):
        assert business_days_between(date(2024, 6, 3), date(2024, 6, 7)) == Decimal("5")

    def test_half_first_day(self):
        result = business_days_between(date(2024, 6, 3), date(2024, 6, 7), half_first_day=True)
        assert result == Decimal("4.5")

    def test_both_halves(self):
        result = business_days_between(
            date(2024, 6, 3), date(2024, 6, 7), half_first_day=True, half_last_day=True,
        )
        assert result == Decimal("4")

    def test_weekends_are_counted(self):
        # Fri..Mon is four calendar days
        assert business_days_between(date(2024, 6, 7), date(2024, 6, 10)) == Decimal("4")

    def test_datetimes_use_their_date(self):
        result = business_days_between(
            datetime(2024, 6, 3, 23, 59), datetime(2024, 6, 4, 0, 1),
        )
        assert result == Decimal("2")

    def test_reversed_range_has_no_days(self):
        start, end = date(2024, 6, 7), date(2024, 6, 3)
        assert business_days_between(start, end) == Decimal("0")
        assert business_days_between(start, end, half_first_day=True) == Decimal("0")
        assert len(date_range(start, end)) == 0


class TestWorkingDaysBetween:

    def test_full_week(self):
        # Mon 2024-06-03 .. Sun 2024-06-09
        assert working_days_between(date(2024, 6, 3), date(2024, 6, 9)) == 5

    def test_weekend_only(self):
        assert working_days_between(date(2024, 6, 8), date(2024, 6, 9)) == 0


class TestDateRange:

    def test_inclusive_and_ordered(self):
        assert date_range(date(2024, 6, 29), date(2024, 7, 2)) == [
            date(2024, 6, 29),
            date(2024, 6, 30),
            date(2024, 7, 1),
            date(2024, 7, 2),
        ]

    def test_single_day(self):
        assert date_range(date(2024, 6, 3), date(2024, 6, 3)) == [date(2024, 6, 3)]

    def test_reversed_is_empty(self):
        assert date_range(date(2024, 6, 5), date(2024, 6, 3)) == []

    def test_leap_day(self):
        days = date_range(date(2024, 2, 28), date(2024, 3, 1))
        assert date(2024, 2, 29) in days
        assert len(days) == 3


class TestIntervalsOverlap:

    def test_touching_on_one_day_overlaps(self):
        assert intervals_overlap(
            date(2024, 7, 1), date(2024, 7, 3), date(2024, 7, 3), date(2024, 7, 5),
        )

    def test_adjacent_does_not_overlap(self):
        assert not intervals_overlap(
            date(2024, 7, 1), date(2024, 7, 3), date(2024, 7, 4), date(2024, 7, 5),
        )

    def test_containment(self):
        assert intervals_overlap(
            date(2024, 7, 1), date(2024, 7, 31), date(2024, 7, 10), date(2024, 7, 11),
        )
