"""Date-range helpers shared by leave and attendance.

Two day-count rules live here and must stay separate:

* ``business_days_between`` counts every calendar day (weekends included)
  and is what a leave request's ``total_days`` is built from.
* ``working_days_between`` skips Saturdays and Sundays and is only used by
  the attendance summary when it computes an attendance rate.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Union

DateLike = Union[date, datetime]

HALF_DAY = Decimal("0.5")


def _as_date(value: DateLike) -> date:
    """Drop any time component; a datetime becomes its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def business_days_between(
    start: DateLike,
    end: DateLike,
    half_first_day: bool = False,
    half_last_day: bool = False,
) -> Decimal:
    """Inclusive calendar-day count minus 0.5 per half-day flag.

    A reversed range has no days, matching ``date_range``.

    >>> business_days_between(date(2024, 6, 3), date(2024, 6, 7))
    Decimal('5')
    """
    start_d, end_d = _as_date(start), _as_date(end)
    if end_d < start_d:
        return Decimal(0)
    total = Decimal((end_d - start_d).days + 1)
    if half_first_day:
        total -= HALF_DAY
    if half_last_day:
        total -= HALF_DAY
    return total


def working_days_between(start: DateLike, end: DateLike) -> int:
    """Count Mon–Fri days in ``[start, end]``."""
    return sum(1 for d in date_range(start, end) if d.weekday() < 5)


def date_range(start: DateLike, end: DateLike) -> list[date]:
    """Every calendar date from ``start`` to ``end`` inclusive, in order.

    Returns an empty list when ``end`` is before ``start``.
    """
    current, last = _as_date(start), _as_date(end)
    days: list[date] = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def intervals_overlap(
    a_start: DateLike,
    a_end: DateLike,
    b_start: DateLike,
    b_end: DateLike,
) -> bool:
    """Inclusive-bounds overlap: touching on a single day counts."""
    return _as_date(a_start) <= _as_date(b_end) and _as_date(a_end) >= _as_date(b_start)
