"""Calendar math for leave ranges — inclusive day counts and overlap tests.

All ranges are closed intervals: both ``start`` and ``end`` are leave days.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from leave_ledger.common.exceptions import InvalidRange

_ONE_DAY = timedelta(days=1)
_WEEKEND = frozenset({5, 6})  # Sat, Sun


def days_between(
    start: date | datetime,
    end: date | datetime,
    business_days_only: bool = False,
) -> int:
    """Number of leave days in ``[start, end]``.

    The calendar count is ``ceil((end - start) / 1 day) + 1``, so a
    datetime range ending part-way through a day still counts that day.
    With ``business_days_only`` only Mon–Fri dates are counted.

    Raises:
        InvalidRange: if ``start`` is after ``end``.
    """
    if start > end:
        raise InvalidRange(start, end)

    if not business_days_only:
        return math.ceil((end - start) / _ONE_DAY) + 1

    first = start.date() if isinstance(start, datetime) else start
    last = end.date() if isinstance(end, datetime) else end
    count = 0
    current = first
    while current <= last:
        if current.weekday() not in _WEEKEND:
            count += 1
        current += _ONE_DAY
    return count


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True iff the closed intervals ``[a_start, a_end]`` and ``[b_start, b_end]`` intersect."""
    return a_start <= b_end and b_start <= a_end
