"""
Module: close_engines.periods
Responsibility:
    Month-period arithmetic shared by every schedule engine: period
    boundaries, prior/next period with year rollover, due-date offsets,
    signed month distances, inclusive period iteration, and grouping of
    months into monthly/quarterly/yearly reporting buckets.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf dependency of the
    depreciation, amortization, lease and revenue engines.

Invariants enforced:
    - Purity: no clock access.  ``current_period`` takes the as-of date
      from the caller.
    - ``Period`` values are immutable and totally ordered by (year, month).

Failure modes:
    - None for valid inputs (year >= 1, month in 1..12).  ``Period``
      construction rejects an out-of-range month with ValueError.

Usage:
    from close_engines.periods import Period, months_between

    p = Period(2024, 12)
    p.next()                                  # Period(2025, 1)
    p.end_date                                # date(2024, 12, 31)
    months_between(Period(2024, 1), p)        # 11
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from close_kernel.logging_config import get_logger

logger = get_logger("engines.periods")


@dataclass(frozen=True, order=True)
class Period:
    """
    A calendar month.

    Contract:
        Frozen, ordered by (year, month), hashable.
    Guarantees:
        - 1 <= month <= 12.
        - ``next()`` / ``previous()`` roll the year over at the boundaries.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def of(cls, value: date) -> Period:
        """Period containing ``value``."""
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, key: str) -> Period:
        """Parse a ``YYYY-MM`` key."""
        year, month = key.strip().split("-")[:2]
        return cls(int(year), int(month))

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return date(self.year, self.month, self.days)

    @property
    def days(self) -> int:
        """Number of calendar days in the month."""
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def quarter(self) -> int:
        return quarter_for_month(self.month)

    @property
    def key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    def __str__(self) -> str:
        return self.key

    @property
    def label(self) -> str:
        """Long label, e.g. ``March 2024``."""
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def short_label(self) -> str:
        """Short label, e.g. ``Mar 2024``."""
        return f"{calendar.month_abbr[self.month]} {self.year}"

    def next(self) -> Period:
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def previous(self) -> Period:
        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    def add_months(self, count: int) -> Period:
        index = self.year * 12 + (self.month - 1) + count
        return Period(index // 12, index % 12 + 1)


# ---------------------------------------------------------------------------
# (year, month) functions
# ---------------------------------------------------------------------------


def period_start_date(year: int, month: int) -> date:
    """First calendar day of the period."""
    return Period(year, month).start_date


def period_end_date(year: int, month: int) -> date:
    """Last calendar day of the period."""
    return Period(year, month).end_date


def prior_period(year: int, month: int) -> Period:
    return Period(year, month).previous()


def next_period(year: int, month: int) -> Period:
    return Period(year, month).next()


def current_period(as_of: date) -> Period:
    """Period containing the caller-supplied as-of date."""
    return Period.of(as_of)


def compute_due_date(year: int, month: int, relative_due_day: int) -> date:
    """
    Due date ``relative_due_day`` days after the period end.

    Negative offsets land before the period end; 0 is the period end.
    """
    return period_end_date(year, month) + timedelta(days=relative_due_day)


def months_between(start: Period, end: Period) -> int:
    """
    Signed month distance from ``start`` to ``end``.

    0 for the same month; negative when ``end`` precedes ``start``
    (callers treat that as "not yet in service").
    """
    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_periods(start: Period, end: Period) -> Iterator[Period]:
    """Yield every period from ``start`` through ``end`` inclusive."""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor = cursor.next()


# ---------------------------------------------------------------------------
# Quarters and reporting buckets
# ---------------------------------------------------------------------------


def quarter_for_month(month: int) -> int:
    return (month + 2) // 3


def quarter_start_month(quarter: int) -> int:
    return (quarter - 1) * 3 + 1


def quarter_end_month(quarter: int) -> int:
    return quarter * 3


def quarter_label(year: int, quarter: int) -> str:
    return f"Q{quarter} {year}"


class Granularity(str, Enum):
    """Reporting bucket size."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class PeriodBucket:
    """
    A reporting column covering one or more months.

    ``months`` holds only the months of the bucket that fall inside the
    requested range, so a quarter at either end of the range may hold
    fewer than three.
    """

    key: str
    label: str
    year: int
    start_month: int
    end_month: int
    months: tuple[Period, ...]


def periods_in_range(
    start: Period,
    end: Period,
    granularity: Granularity = Granularity.MONTHLY,
) -> list[PeriodBucket]:
    """
    Group the months from ``start`` through ``end`` into buckets.

    Returns an empty list when ``end`` precedes ``start``.
    """
    in_range = list(iter_periods(start, end))
    buckets: list[PeriodBucket] = []

    match granularity:
        case Granularity.MONTHLY:
            for p in in_range:
                buckets.append(PeriodBucket(
                    key=p.key,
                    label=f"{calendar.month_abbr[p.month]}-{p.year % 100:02d}",
                    year=p.year,
                    start_month=p.month,
                    end_month=p.month,
                    months=(p,),
                ))
        case Granularity.QUARTERLY:
            grouped: dict[tuple[int, int], list[Period]] = {}
            for p in in_range:
                grouped.setdefault((p.year, p.quarter), []).append(p)
            for (year, quarter), months in grouped.items():
                buckets.append(PeriodBucket(
                    key=f"{year}-Q{quarter}",
                    label=f"Q{quarter} {year % 100:02d}",
                    year=year,
                    start_month=quarter_start_month(quarter),
                    end_month=quarter_end_month(quarter),
                    months=tuple(months),
                ))
        case Granularity.YEARLY:
            by_year: dict[int, list[Period]] = {}
            for p in in_range:
                by_year.setdefault(p.year, []).append(p)
            for year, months in by_year.items():
                buckets.append(PeriodBucket(
                    key=f"FY{year}",
                    label=f"FY {year % 100:02d}",
                    year=year,
                    start_month=months[0].month,
                    end_month=months[-1].month,
                    months=tuple(months),
                ))

    logger.debug("periods_bucketed", extra={
        "start": start.key,
        "end": end.key,
        "granularity": granularity.value,
        "bucket_count": len(buckets),
    })
    return buckets
