"""
Module: close_engines.revenue
Responsibility:
    Revenue accrual/deferral for rental contracts.  For each contract,
    compare what was EARNED in a month (pro-rated by calendar days) with
    what was BILLED:

        accrual  = earned - billed, when earned > billed
        deferral = billed - earned, when billed > earned

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends only on close_engines.periods and close_kernel.

Invariants enforced:
    - Rental days and overlap days are inclusive of both ends.
    - At most one of accrual/deferral is non-zero per line; both are zero
      when earned == billed.
    - Totals sum earned, billed, accrual and deferral independently; they
      are never netted against each other.

Failure modes:
    - None.  A contract ending before it starts has a zero daily rate; a
      contract outside the month earns 0 and defers its full billing.

Audit relevance:
    Accrual and deferral totals become the month-end revenue adjusting
    entry.  ``calculate_all`` is traced via ``@traced_engine``.

Usage:
    from close_engines.revenue import RentalContractRow, calculate_line

    line = calculate_line(
        RentalContractRow(
            contract_id="C-1", customer_name="Acme", description="Lift",
            rental_start=date(2024, 1, 1), rental_end=date(2024, 1, 31),
            total_contract_value=Decimal("3100"), billed_amount=Decimal("1500"),
        ),
        2024, 1,
    )
    line.accrual_amount   # Decimal("1600.00")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from operator import attrgetter
from typing import Any

from close_engines.periods import Period
from close_engines.tracer import traced_engine
from close_kernel.domain.values import (
    ZERO,
    round_money,
    round_rate,
    to_date,
    to_decimal,
)
from close_kernel.logging_config import get_logger

logger = get_logger("engines.revenue")


@dataclass(frozen=True)
class RentalContractRow:
    """A rental contract and what was billed on it in the period."""

    contract_id: str
    customer_name: str
    description: str
    rental_start: date
    rental_end: date
    total_contract_value: Decimal
    billed_amount: Decimal

    @property
    def rental_days(self) -> int:
        """Inclusive day count; 0 or negative when end precedes start."""
        return (self.rental_end - self.rental_start).days + 1

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> RentalContractRow:
        name = "rental_contract"
        return cls(
            contract_id=str(record.get("contract_id") or ""),
            customer_name=str(record.get("customer_name") or ""),
            description=str(record.get("description") or ""),
            rental_start=to_date(record, "rental_start", name),
            rental_end=to_date(record, "rental_end", name),
            total_contract_value=to_decimal(record, "total_contract_value", name, ZERO),
            billed_amount=to_decimal(record, "billed_amount", name, ZERO),
        )


@dataclass(frozen=True)
class CalculatedRevenueLine:
    contract_id: str
    customer_name: str
    description: str
    rental_start: date
    rental_end: date
    total_contract_value: Decimal
    daily_rate: Decimal
    days_in_period: int
    earned_revenue: Decimal
    billed_amount: Decimal
    accrual_amount: Decimal
    deferral_amount: Decimal


@dataclass(frozen=True)
class RevenueTotals:
    earned: Decimal = ZERO
    billed: Decimal = ZERO
    accrual: Decimal = ZERO
    deferral: Decimal = ZERO


@dataclass(frozen=True)
class RevenueCalculation:
    period: Period
    lines: tuple[CalculatedRevenueLine, ...]
    totals: RevenueTotals


def overlap_days(start: date, end: date, period: Period) -> int:
    """Inclusive days of [start, end] that fall inside ``period``."""
    overlap_start = max(start, period.start_date)
    overlap_end = min(end, period.end_date)
    if overlap_end < overlap_start:
        return 0
    return (overlap_end - overlap_start).days + 1


def calculate_line(
    row: RentalContractRow,
    period_year: int,
    period_month: int,
) -> CalculatedRevenueLine:
    """
    Earned vs billed for one contract in one month.

    Earned revenue uses the full-precision daily rate and is rounded to
    cents; the reported daily rate is rounded to 4 places.
    """
    period = Period(period_year, period_month)
    total_days = row.rental_days
    daily_rate = row.total_contract_value / total_days if total_days > 0 else ZERO
    days = overlap_days(row.rental_start, row.rental_end, period)

    earned = round_money(daily_rate * days)
    difference = earned - row.billed_amount

    line = CalculatedRevenueLine(
        contract_id=row.contract_id,
        customer_name=row.customer_name,
        description=row.description,
        rental_start=row.rental_start,
        rental_end=row.rental_end,
        total_contract_value=row.total_contract_value,
        daily_rate=round_rate(daily_rate),
        days_in_period=days,
        earned_revenue=earned,
        billed_amount=row.billed_amount,
        accrual_amount=round_money(difference) if difference > ZERO else ZERO,
        deferral_amount=round_money(-difference) if difference < ZERO else ZERO,
    )
    logger.debug("revenue_line_calculated", extra={
        "contract_id": row.contract_id,
        "period": period.key,
        "days_in_period": days,
        "earned_revenue": str(earned),
        "billed_amount": str(row.billed_amount),
    })
    return line


@traced_engine(
    "revenue",
    "1.0",
    fingerprint_fields=("rows", "period_year", "period_month"),
    rows=attrgetter("lines"),
)
def calculate_all(
    rows: Sequence[RentalContractRow],
    period_year: int,
    period_month: int,
) -> RevenueCalculation:
    """Calculate every contract line for the month and sum the totals."""
    lines = tuple(calculate_line(row, period_year, period_month) for row in rows)
    totals = RevenueTotals(
        earned=sum((line.earned_revenue for line in lines), ZERO),
        billed=sum((line.billed_amount for line in lines), ZERO),
        accrual=sum((line.accrual_amount for line in lines), ZERO),
        deferral=sum((line.deferral_amount for line in lines), ZERO),
    )
    logger.info("revenue_period_calculated", extra={
        "period": f"{period_year}-{period_month:02d}",
        "contract_count": len(lines),
        "total_accrual": str(totals.accrual),
        "total_deferral": str(totals.deferral),
    })
    return RevenueCalculation(
        period=Period(period_year, period_month),
        lines=lines,
        totals=totals,
    )
