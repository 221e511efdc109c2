"""
Tests for month-period arithmetic.

Covers:
- Period boundaries and labels
- Prior/next with year rollover
- Due-date offsets and signed month distances
- Reporting buckets at monthly, quarterly and yearly granularity
"""

from datetime import date

import pytest

from close_engines.periods import (
    Granularity,
    Period,
    compute_due_date,
    current_period,
    iter_periods,
    months_between,
    next_period,
    period_end_date,
    period_start_date,
    periods_in_range,
    prior_period,
    quarter_end_month,
    quarter_for_month,
    quarter_label,
    quarter_start_month,
)


class TestPeriod:
    """Tests for the Period value type."""

    def test_boundaries(self):
        p = Period(2024, 2)

        assert p.start_date == date(2024, 2, 1)
        assert p.end_date == date(2024, 2, 29)  # leap year
        assert p.days == 29

    def test_labels_and_key(self):
        p = Period(2024, 3)

        assert p.key == "2024-03"
        assert str(p) == "2024-03"
        assert p.label == "March 2024"
        assert p.short_label == "Mar 2024"

    def test_rollover(self):
        assert Period(2024, 12).next() == Period(2025, 1)
        assert Period(2025, 1).previous() == Period(2024, 12)

    def test_add_months(self):
        assert Period(2024, 11).add_months(3) == Period(2025, 2)
        assert Period(2024, 2).add_months(-3) == Period(2023, 11)
        assert Period(2024, 5).add_months(0) == Period(2024, 5)

    def test_ordering(self):
        assert Period(2023, 12) < Period(2024, 1) < Period(2024, 2)

    def test_of_and_parse(self):
        assert Period.of(date(2024, 7, 19)) == Period(2024, 7)
        assert Period.parse("2025-01") == Period(2025, 1)

    def test_invalid_month_rejected(self):
        with pytest.raises(ValueError):
            Period(2024, 13)
        with pytest.raises(ValueError):
            Period(2024, 0)


class TestPeriodFunctions:
    """Tests for the (year, month) helpers."""

    def test_start_and_end_dates(self):
        assert period_start_date(2023, 2) == date(2023, 2, 1)
        assert period_end_date(2023, 2) == date(2023, 2, 28)
        assert period_end_date(2024, 4) == date(2024, 4, 30)

    def test_prior_and_next(self):
        assert prior_period(2024, 1) == Period(2023, 12)
        assert next_period(2024, 12) == Period(2025, 1)
        assert prior_period(2024, 6) == Period(2024, 5)

    def test_current_period_uses_supplied_date(self):
        assert current_period(date(2024, 9, 30)) == Period(2024, 9)

    def test_compute_due_date_after_period_end(self):
        assert compute_due_date(2024, 1, 15) == date(2024, 2, 15)

    def test_compute_due_date_zero_and_negative(self):
        assert compute_due_date(2024, 1, 0) == date(2024, 1, 31)
        assert compute_due_date(2024, 1, -5) == date(2024, 1, 26)

    def test_months_between_is_signed(self):
        assert months_between(Period(2024, 1), Period(2024, 1)) == 0
        assert months_between(Period(2024, 1), Period(2024, 12)) == 11
        assert months_between(Period(2024, 11), Period(2025, 2)) == 3
        assert months_between(Period(2024, 3), Period(2024, 1)) == -2

    def test_iter_periods_inclusive(self):
        periods = list(iter_periods(Period(2024, 11), Period(2025, 2)))

        assert periods == [
            Period(2024, 11), Period(2024, 12), Period(2025, 1), Period(2025, 2),
        ]

    def test_iter_periods_empty_when_reversed(self):
        assert list(iter_periods(Period(2025, 1), Period(2024, 12))) == []


class TestQuarters:
    """Tests for quarter helpers."""

    def test_quarter_for_month(self):
        assert [quarter_for_month(m) for m in range(1, 13)] == [
            1, 1, 1, 2, 2, 2, 3, 3, 3, 4, 4, 4,
        ]

    def test_quarter_bounds(self):
        assert quarter_start_month(3) == 7
        assert quarter_end_month(3) == 9

    def test_quarter_label(self):
        assert quarter_label(2024, 2) == "Q2 2024"


class TestPeriodsInRange:
    """Tests for reporting buckets."""

    def test_monthly_buckets(self):
        buckets = periods_in_range(Period(2023, 12), Period(2024, 2), Granularity.MONTHLY)

        assert [b.key for b in buckets] == ["2023-12", "2024-01", "2024-02"]
        assert [b.label for b in buckets] == ["Dec-23", "Jan-24", "Feb-24"]
        assert all(len(b.months) == 1 for b in buckets)

    def test_quarterly_buckets_clipped_to_range(self):
        buckets = periods_in_range(Period(2024, 2), Period(2024, 7), Granularity.QUARTERLY)

        assert [b.key for b in buckets] == ["2024-Q1", "2024-Q2", "2024-Q3"]
        assert buckets[0].label == "Q1 24"
        assert buckets[0].months == (Period(2024, 2), Period(2024, 3))
        assert len(buckets[1].months) == 3
        assert buckets[2].months == (Period(2024, 7),)

    def test_yearly_buckets(self):
        buckets = periods_in_range(Period(2023, 10), Period(2025, 3), Granularity.YEARLY)

        assert [b.key for b in buckets] == ["FY2023", "FY2024", "FY2025"]
        assert [b.label for b in buckets] == ["FY 23", "FY 24", "FY 25"]
        assert (buckets[0].start_month, buckets[0].end_month) == (10, 12)
        assert len(buckets[1].months) == 12
        assert (buckets[2].start_month, buckets[2].end_month) == (1, 3)

    def test_empty_range(self):
        assert periods_in_range(Period(2024, 5), Period(2024, 4)) == []
