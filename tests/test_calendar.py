"""Calendar math — inclusive day counts, business days and overlap checks."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from leave_ledger.common.exceptions import InvalidRange
from leave_ledger.leave.calendar import days_between, overlaps


class TestDaysBetween:

    def test_single_day_counts_as_one(self):
        assert days_between(date(2024, 3, 4), date(2024, 3, 4)) == 1

    def test_full_week_inclusive(self):
        # 2024-03-04 is Monday, 2024-03-10 is Sunday
        assert days_between(date(2024, 3, 4), date(2024, 3, 10)) == 7

    def test_business_days_skip_weekend(self):
        assert days_between(date(2024, 3, 4), date(2024, 3, 10), business_days_only=True) == 5

    def test_weekend_only_range_has_no_business_days(self):
        # Sat 2024-03-09 to Sun 2024-03-10
        assert days_between(date(2024, 3, 9), date(2024, 3, 10)) == 2
        assert days_between(date(2024, 3, 9), date(2024, 3, 10), business_days_only=True) == 0

    def test_range_across_month_boundary(self):
        assert days_between(date(2024, 2, 28), date(2024, 3, 1)) == 3  # leap year

    def test_partial_day_rounds_up(self):
        start = datetime(2024, 3, 4, 9, 0)
        end = datetime(2024, 3, 5, 12, 0)
        assert days_between(start, end) == 3

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidRange):
            days_between(date(2024, 3, 5), date(2024, 3, 4))

    def test_business_days_start_after_end_raises(self):
        with pytest.raises(InvalidRange):
            days_between(date(2024, 3, 5), date(2024, 3, 4), business_days_only=True)


class TestOverlaps:

    def test_touching_ranges_overlap(self):
        assert overlaps(date(2024, 3, 1), date(2024, 3, 5), date(2024, 3, 5), date(2024, 3, 8))

    def test_contained_range_overlaps(self):
        assert overlaps(date(2024, 3, 1), date(2024, 3, 10), date(2024, 3, 3), date(2024, 3, 4))

    def test_adjacent_ranges_do_not_overlap(self):
        assert not overlaps(date(2024, 3, 1), date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 8))

    def test_overlap_is_symmetric(self):
        a = (date(2024, 3, 1), date(2024, 3, 5))
        b = (date(2024, 3, 4), date(2024, 3, 9))
        assert overlaps(*a, *b) == overlaps(*b, *a)
