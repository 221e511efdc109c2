"""
Lease Accounting Pure Calculation Functions -- ASC 842.

Domain math for a lessee's right-of-use model:
- Lease classification test (ASC 842-10-25-2)
- Present value of lease payments / initial lease liability
- Initial ROU asset
- Monthly liability (effective interest) and ROU amortization schedule
- Initial-recognition and monthly journal entries

Operating lease: liability on the effective interest method, total
expense straight-line, ROU amortization is the plug.
Finance lease: same liability, ROU amortized straight-line, expense is
interest plus amortization (front-loaded).

All amounts are rounded to cents as they are produced; the final period
forces the liability and ROU asset to zero to clear rounding residue.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from operator import itemgetter
from typing import Any

from close_engines.periods import Period
from close_engines.tracer import traced_engine
from close_kernel.domain.values import (
    ZERO,
    parse_tag,
    round_money,
    to_date,
    to_decimal,
    to_int,
)
from close_kernel.logging_config import get_logger

logger = get_logger("engines.lease_accounting")


class LeaseClassification(str, Enum):
    OPERATING = "operating"
    FINANCE = "finance"


@dataclass(frozen=True)
class LeaseForASC842:
    """
    Terms needed to measure a lease under ASC 842.

    ``monthly_payments`` overrides ``base_rent_monthly`` only when it holds
    exactly ``lease_term_months`` amounts.
    """

    lease_type: LeaseClassification
    lease_term_months: int
    discount_rate: Decimal  # annual incremental borrowing rate (0.065 = 6.5%)
    commencement_date: date
    base_rent_monthly: Decimal = ZERO
    initial_direct_costs: Decimal = ZERO
    lease_incentives_received: Decimal = ZERO
    prepaid_rent: Decimal = ZERO
    monthly_payments: tuple[Decimal, ...] | None = None

    @property
    def payments(self) -> tuple[Decimal, ...]:
        if (
            self.monthly_payments is not None
            and len(self.monthly_payments) == self.lease_term_months
        ):
            return self.monthly_payments
        return (self.base_rent_monthly,) * max(self.lease_term_months, 0)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> LeaseForASC842:
        name = "lease"
        payments = record.get("monthly_payments")
        return cls(
            lease_type=parse_tag(
                LeaseClassification, record.get("lease_type") or "operating", "lease_type"
            ),
            lease_term_months=to_int(record, "lease_term_months", name, 0),
            discount_rate=to_decimal(record, "discount_rate", name, ZERO),
            commencement_date=to_date(record, "commencement_date", name),
            base_rent_monthly=to_decimal(record, "base_rent_monthly", name, ZERO),
            initial_direct_costs=to_decimal(record, "initial_direct_costs", name, ZERO),
            lease_incentives_received=to_decimal(
                record, "lease_incentives_received", name, ZERO
            ),
            prepaid_rent=to_decimal(record, "prepaid_rent", name, ZERO),
            monthly_payments=(
                tuple(Decimal(str(p)) for p in payments) if payments else None
            ),
        )


@dataclass(frozen=True)
class ASC842ScheduleEntry:
    period: int  # 1-indexed month of the lease term
    year: int
    month: int
    lease_liability_beginning: Decimal
    lease_payment: Decimal
    interest_expense: Decimal
    principal_reduction: Decimal
    lease_liability_ending: Decimal
    rou_asset_beginning: Decimal
    amortization_expense: Decimal
    rou_asset_ending: Decimal
    total_expense: Decimal


@dataclass(frozen=True)
class ASC842Summary:
    lease_type: LeaseClassification
    initial_lease_liability: Decimal
    initial_rou_asset: Decimal
    total_lease_cost: Decimal
    monthly_straight_line_expense: Decimal
    total_interest_expense: Decimal
    total_amortization_expense: Decimal


@dataclass(frozen=True)
class LeaseAccountMapping:
    """Optional GL account ids attached to generated journal lines."""

    rou_asset_account_id: str | None = None
    lease_liability_account_id: str | None = None
    lease_expense_account_id: str | None = None
    interest_expense_account_id: str | None = None
    asc842_adjustment_account_id: str | None = None
    cash_ap_account_id: str | None = None


@dataclass(frozen=True)
class JournalLine:
    account: str
    amount: Decimal
    account_id: str | None = None


@dataclass(frozen=True)
class JournalEntry:
    entry_date: date
    description: str
    debits: tuple[JournalLine, ...]
    credits: tuple[JournalLine, ...]

    @property
    def total_debits(self) -> Decimal:
        return sum((line.amount for line in self.debits), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.amount for line in self.credits), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


def classify_lease(
    lease_term_months: int,
    economic_life_months: int,
    pv_payments: Decimal,
    fair_value: Decimal,
    transfer_ownership: bool = False,
    purchase_option: bool = False,
    specialized_asset: bool = False,
) -> LeaseClassification:
    """
    Finance lease if ANY of:
    1. Transfer of ownership
    2. Purchase option reasonably certain to exercise
    3. Lease term >= 75% of economic life
    4. PV of payments >= 90% of fair value
    5. Specialized nature with no alternative use
    """
    if transfer_ownership or purchase_option:
        return LeaseClassification.FINANCE
    if economic_life_months > 0:
        if Decimal(lease_term_months) / Decimal(economic_life_months) >= Decimal("0.75"):
            return LeaseClassification.FINANCE
    if fair_value > ZERO and pv_payments / fair_value >= Decimal("0.90"):
        return LeaseClassification.FINANCE
    if specialized_asset:
        return LeaseClassification.FINANCE
    return LeaseClassification.OPERATING


def present_value(payments: Sequence[Decimal], monthly_rate: Decimal) -> Decimal:
    """
    PV of end-of-month payments (ordinary annuity), unrounded.

    A zero rate returns the plain sum.
    """
    if monthly_rate == ZERO:
        return sum(payments, ZERO)
    one_plus_r = 1 + monthly_rate
    return sum(
        (payment / one_plus_r ** (i + 1) for i, payment in enumerate(payments)),
        ZERO,
    )


def calculate_lease_liability(lease: LeaseForASC842) -> Decimal:
    """Initial lease liability = PV of the lease payments."""
    if lease.lease_term_months <= 0 or lease.discount_rate < ZERO:
        return ZERO
    return round_money(present_value(lease.payments, lease.discount_rate / 12))


def calculate_rou_asset(lease: LeaseForASC842) -> Decimal:
    """ROU = liability + initial direct costs + prepaid rent - incentives."""
    return round_money(
        calculate_lease_liability(lease)
        + lease.initial_direct_costs
        + lease.prepaid_rent
        - lease.lease_incentives_received
    )


@traced_engine("lease_accounting", "1.0", fingerprint_fields=("lease",), rows=itemgetter(0))
def generate_asc842_schedule(
    lease: LeaseForASC842,
) -> tuple[list[ASC842ScheduleEntry], ASC842Summary]:
    """Full ASC 842 schedule over the lease term, with its summary."""
    n = lease.lease_term_months
    if n <= 0:
        return [], ASC842Summary(
            lease_type=lease.lease_type,
            initial_lease_liability=ZERO,
            initial_rou_asset=ZERO,
            total_lease_cost=ZERO,
            monthly_straight_line_expense=ZERO,
            total_interest_expense=ZERO,
            total_amortization_expense=ZERO,
        )

    payments = lease.payments
    monthly_rate = lease.discount_rate / 12
    initial_liability = calculate_lease_liability(lease)
    initial_rou = calculate_rou_asset(lease)

    # ASC 842-20-25-6: single lease cost = payments + IDC - incentives
    total_lease_cost = (
        sum(payments, ZERO)
        + lease.initial_direct_costs
        - lease.lease_incentives_received
    )
    straight_line_expense = total_lease_cost / n
    finance_amortization = initial_rou / n

    schedule: list[ASC842ScheduleEntry] = []
    liability = ZERO if initial_rou == ZERO else initial_liability
    rou = initial_rou
    total_interest = ZERO
    total_amortization = ZERO
    period = Period.of(lease.commencement_date)

    for i in range(n):
        is_last = i == n - 1
        liability_beginning = round_money(liability)
        rou_beginning = round_money(rou)
        payment = payments[i]

        interest = round_money(liability_beginning * monthly_rate)
        principal = round_money(payment - interest)
        liability_ending = round_money(liability_beginning - principal)

        if lease.lease_type is LeaseClassification.OPERATING:
            total_expense = round_money(straight_line_expense)
            amortization = round_money(total_expense - interest)
        else:
            amortization = round_money(finance_amortization)
            total_expense = round_money(interest + amortization)

        if is_last:
            amortization = rou_beginning
            total_expense = round_money(interest + amortization)
            rou_ending = ZERO
            liability_ending = ZERO
        else:
            rou_ending = round_money(rou_beginning - amortization)

        total_interest += interest
        total_amortization += amortization

        schedule.append(ASC842ScheduleEntry(
            period=i + 1,
            year=period.year,
            month=period.month,
            lease_liability_beginning=liability_beginning,
            lease_payment=round_money(payment),
            interest_expense=interest,
            principal_reduction=principal,
            lease_liability_ending=liability_ending,
            rou_asset_beginning=rou_beginning,
            amortization_expense=amortization,
            rou_asset_ending=rou_ending,
            total_expense=total_expense,
        ))

        liability = liability_ending
        rou = rou_ending
        period = period.next()

    summary = ASC842Summary(
        lease_type=lease.lease_type,
        initial_lease_liability=initial_liability,
        initial_rou_asset=initial_rou,
        total_lease_cost=round_money(total_lease_cost),
        monthly_straight_line_expense=round_money(straight_line_expense),
        total_interest_expense=round_money(total_interest),
        total_amortization_expense=round_money(total_amortization),
    )
    logger.info("asc842_schedule_generated", extra={
        "lease_type": lease.lease_type.value,
        "term_months": n,
        "initial_lease_liability": str(initial_liability),
        "initial_rou_asset": str(initial_rou),
    })
    return schedule, summary


# ---------------------------------------------------------------------------
# Journal entries
# ---------------------------------------------------------------------------


def generate_initial_journal_entries(
    lease: LeaseForASC842,
    accounts: LeaseAccountMapping | None = None,
) -> list[JournalEntry]:
    """Recognition of the ROU asset and lease liability at commencement."""
    accounts = accounts or LeaseAccountMapping()
    liability = calculate_lease_liability(lease)
    rou = calculate_rou_asset(lease)
    if liability == ZERO and rou == ZERO:
        return []

    debits = [JournalLine("ROU Asset", rou, accounts.rou_asset_account_id)]
    credits = [JournalLine("Lease Liability", liability, accounts.lease_liability_account_id)]

    # IDC and prepaid rent are paid out; incentives come in
    net_cash = (
        lease.initial_direct_costs
        + lease.prepaid_rent
        - lease.lease_incentives_received
    )
    if net_cash > ZERO:
        credits.append(JournalLine("Cash", round_money(net_cash), accounts.cash_ap_account_id))
    elif net_cash < ZERO:
        debits.append(JournalLine("Cash", round_money(-net_cash), accounts.cash_ap_account_id))

    return [JournalEntry(
        entry_date=lease.commencement_date,
        description="Initial recognition of ROU asset and lease liability",
        debits=tuple(debits),
        credits=tuple(credits),
    )]


def generate_monthly_journal_entry(
    entry: ASC842ScheduleEntry,
    lease_type: LeaseClassification,
    accounts: LeaseAccountMapping | None = None,
) -> JournalEntry:
    """
    Monthly entry for one schedule row.

    Operating: rent expense at the cash payment plus a non-cash ASC 842
    adjustment up to straight-line expense.
    Finance: interest expense and amortization expense separately.
    Both reduce the liability by principal, the ROU asset by
    amortization, and credit cash/AP for the payment.
    """
    accounts = accounts or LeaseAccountMapping()
    debits: list[JournalLine] = []
    credits: list[JournalLine] = []

    if lease_type is LeaseClassification.OPERATING:
        adjustment = round_money(entry.total_expense - entry.lease_payment)
        if entry.lease_payment != ZERO:
            debits.append(JournalLine(
                "Rent Expense", entry.lease_payment, accounts.lease_expense_account_id
            ))
        if adjustment > ZERO:
            debits.append(JournalLine(
                "ASC 842 Adjustment", adjustment, accounts.asc842_adjustment_account_id
            ))
        elif adjustment < ZERO:
            credits.append(JournalLine(
                "ASC 842 Adjustment", -adjustment, accounts.asc842_adjustment_account_id
            ))
        description = f"Period {entry.period} operating lease expense"
    else:
        if entry.interest_expense != ZERO:
            debits.append(JournalLine(
                "Interest Expense", entry.interest_expense, accounts.interest_expense_account_id
            ))
        if entry.amortization_expense != ZERO:
            debits.append(JournalLine(
                "Amortization Expense", entry.amortization_expense,
                accounts.lease_expense_account_id,
            ))
        description = f"Period {entry.period} finance lease expense"

    if entry.principal_reduction != ZERO:
        debits.append(JournalLine(
            "Lease Liability", entry.principal_reduction, accounts.lease_liability_account_id
        ))
    if entry.amortization_expense != ZERO:
        credits.append(JournalLine(
            "ROU Asset", entry.amortization_expense, accounts.rou_asset_account_id
        ))
    if entry.lease_payment != ZERO:
        credits.append(JournalLine(
            "Cash / AP", entry.lease_payment, accounts.cash_ap_account_id
        ))

    return JournalEntry(
        entry_date=date(entry.year, entry.month, 1),
        description=description,
        debits=tuple(debits),
        credits=tuple(credits),
    )
