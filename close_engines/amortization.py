"""
Module: close_engines.amortization
Responsibility:
    Month-by-month principal/interest/balance schedules for debt
    instruments: level-payment term loans and interest-only revolving
    lines of credit, from origination through a target period.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends only on close_engines.periods and close_kernel.

Invariants enforced:
    - Chaining: entries[i].ending_balance == entries[i + 1].beginning_balance.
    - First entry's beginning balance is the original amount (term loan)
      or the current draw (line of credit).
    - A term loan generated through its final term month ends at 0.00:
      the final payment is truncated/extended to retire the balance.
    - Interest, principal and balances are rounded to cents each month.

Failure modes:
    - None.  Zero/negative principal or term yields a zero payment and an
      empty or short schedule; a line of credit with no draw yields an
      empty schedule.

Audit relevance:
    Rows drive the monthly interest accrual and the current/long-term
    debt split on the balance sheet.  Schedule generation is traced via
    ``@traced_engine``.

Usage:
    from close_engines.amortization import (
        DebtInstrument, DebtType, generate_amortization_schedule,
    )

    loan = DebtInstrument(
        debt_type=DebtType.TERM_LOAN,
        original_amount=Decimal("100000"),
        interest_rate=Decimal("0.06"),
        term_months=12,
        start_date=date(2024, 1, 1),
    )
    rows = generate_amortization_schedule(loan, 2024, 12)
    rows[-1].ending_balance   # Decimal("0.00")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from close_config.schema import EngineSettings
from close_engines.periods import Period
from close_engines.tracer import traced_engine
from close_kernel.domain.values import (
    ZERO,
    parse_tag,
    round_money,
    to_date,
    to_decimal,
    to_int,
    to_optional_decimal,
)
from close_kernel.logging_config import get_logger

logger = get_logger("engines.amortization")

_MONTHS_PER_YEAR = Decimal(12)


class DebtType(str, Enum):
    TERM_LOAN = "term_loan"
    LINE_OF_CREDIT = "line_of_credit"


class DebtStatus(str, Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class DebtInstrument:
    """
    A term loan or line of credit.

    ``interest_rate`` is the annual rate as a decimal fraction
    (0.065 = 6.5%).  ``payment_amount`` overrides the computed level
    payment when set.  ``credit_limit`` and ``current_draw`` apply to
    lines of credit only.
    """

    debt_type: DebtType
    original_amount: Decimal
    interest_rate: Decimal
    start_date: date
    term_months: int | None = None
    payment_amount: Decimal | None = None
    credit_limit: Decimal | None = None
    current_draw: Decimal | None = None
    status: DebtStatus = DebtStatus.ACTIVE
    instrument_id: str | None = None

    @property
    def monthly_rate(self) -> Decimal:
        return self.interest_rate / _MONTHS_PER_YEAR

    @property
    def available_credit(self) -> Decimal | None:
        """Undrawn portion of a line of credit (None without a limit)."""
        if self.credit_limit is None:
            return None
        return self.credit_limit - (self.current_draw or ZERO)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> DebtInstrument:
        """Build from a persistence row (string tags, ISO dates)."""
        name = "debt_instrument"
        return cls(
            debt_type=parse_tag(DebtType, record.get("debt_type"), "debt_type"),
            original_amount=to_decimal(record, "original_amount", name, ZERO),
            interest_rate=to_decimal(record, "interest_rate", name, ZERO),
            start_date=to_date(record, "start_date", name),
            term_months=to_int(record, "term_months", name),
            payment_amount=to_optional_decimal(record, "payment_amount", name),
            credit_limit=to_optional_decimal(record, "credit_limit", name),
            current_draw=to_optional_decimal(record, "current_draw", name),
            status=parse_tag(DebtStatus, record.get("status") or "active", "debt status"),
            instrument_id=str(record["id"]) if record.get("id") is not None else None,
        )


@dataclass(frozen=True)
class AmortizationEntry:
    """One month of a debt schedule."""

    year: int
    month: int
    beginning_balance: Decimal
    payment: Decimal
    principal: Decimal
    interest: Decimal
    ending_balance: Decimal

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)


def calculate_monthly_payment(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
) -> Decimal:
    """
    Level monthly payment: M = P * r(1+r)^n / ((1+r)^n - 1), r = annual/12.

    Zero-interest loans divide principal evenly.  Returns Decimal("0")
    for principal <= 0 or term <= 0.
    """
    if principal <= ZERO or term_months <= 0:
        return ZERO
    if annual_rate <= ZERO:
        return round_money(principal / term_months)

    r = annual_rate / _MONTHS_PER_YEAR
    factor = (1 + r) ** term_months
    return round_money(principal * (r * factor) / (factor - 1))


@traced_engine("amortization", "1.0", fingerprint_fields=("debt", "through_year", "through_month"))
def generate_amortization_schedule(
    debt: DebtInstrument,
    through_year: int,
    through_month: int,
    settings: EngineSettings | None = None,
) -> list[AmortizationEntry]:
    """
    Schedule from the start month through the target period inclusive.

    Term loans amortize with a level payment; lines of credit accrue
    interest only on the current draw.
    """
    settings = settings or EngineSettings()
    through = Period(through_year, through_month)

    match debt.debt_type:
        case DebtType.LINE_OF_CREDIT:
            entries = _line_of_credit_schedule(debt, through, settings)
        case _:
            entries = _term_loan_schedule(debt, through, settings)

    logger.info("amortization_schedule_generated", extra={
        "instrument_id": debt.instrument_id,
        "debt_type": debt.debt_type.value,
        "through": through.key,
        "row_count": len(entries),
        "ending_balance": str(entries[-1].ending_balance) if entries else None,
    })
    return entries


def _term_loan_schedule(
    debt: DebtInstrument,
    through: Period,
    settings: EngineSettings,
) -> list[AmortizationEntry]:
    term = debt.term_months
    if term is None:
        term = settings.default_debt_term_months
    monthly_rate = debt.monthly_rate
    level_payment = debt.payment_amount
    if level_payment is None:
        level_payment = calculate_monthly_payment(
            debt.original_amount, debt.interest_rate, term
        )

    entries: list[AmortizationEntry] = []
    balance = round_money(debt.original_amount)
    period = Period.of(debt.start_date)

    for index in range(term):
        if period > through or balance <= ZERO:
            break

        interest = round_money(balance * monthly_rate)
        if index == term - 1:
            # Final term month retires whatever is left
            payment = balance + interest
        else:
            payment = min(level_payment, balance + interest)
        principal = round_money(payment - interest)
        ending_balance = round_money(max(ZERO, balance - principal))

        entries.append(AmortizationEntry(
            year=period.year,
            month=period.month,
            beginning_balance=balance,
            payment=round_money(payment),
            principal=principal,
            interest=interest,
            ending_balance=ending_balance,
        ))
        logger.debug("term_loan_period", extra={
            "period": period.key,
            "interest": str(interest),
            "principal": str(principal),
            "ending_balance": str(ending_balance),
        })

        balance = ending_balance
        period = period.next()

    return entries


def _line_of_credit_schedule(
    debt: DebtInstrument,
    through: Period,
    settings: EngineSettings,
) -> list[AmortizationEntry]:
    balance = round_money(debt.current_draw or ZERO)
    if balance <= ZERO:
        return []

    interest = round_money(balance * debt.monthly_rate)
    entries: list[AmortizationEntry] = []
    period = Period.of(debt.start_date)

    for _ in range(settings.line_of_credit_horizon_months):
        if period > through:
            break
        entries.append(AmortizationEntry(
            year=period.year,
            month=period.month,
            beginning_balance=balance,
            payment=interest,
            principal=ZERO,
            interest=interest,
            ending_balance=balance,
        ))
        period = period.next()

    return entries
