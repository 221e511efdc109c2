"""
Module: close_engines.lease_payments
Responsibility:
    Generate the monthly payment schedule of a real-estate lease (and the
    monthly income schedule of a sublease) from its terms, rent abatement,
    ordered escalation rules and operating-cost amounts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends only on close_engines.periods and close_kernel.

Invariants enforced:
    - One row per (month, payment type) from the rent-commencement month
      through the expiration month inclusive; zero-valued categories are
      omitted.
    - Escalations apply in effective-date order, only in the month of
      their effective date; several in one month compound in list order.
    - Running rent is carried at full precision; emitted amounts are
      rounded to 4 decimal places.
    - CPI escalations leave rent unchanged (no index data is modelled).

Failure modes:
    - None.  Rent commencement after expiration yields an empty schedule.

Audit relevance:
    Payment rows are the cash side of the straight-line rent and ASC 842
    calculations.  Schedule generation is traced via ``@traced_engine``.

Usage:
    from close_engines.lease_payments import (
        EscalationRule, EscalationType, Lease, generate_lease_payment_schedule,
    )

    rows = generate_lease_payment_schedule(
        Lease(
            commencement_date=date(2024, 1, 1),
            expiration_date=date(2025, 12, 31),
            base_rent_monthly=Decimal("5000"),
        ),
        [EscalationRule(EscalationType.FIXED_PERCENTAGE, date(2025, 1, 1),
                        percentage_increase=Decimal("0.03"))],
    )
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from close_engines.periods import Period, iter_periods
from close_engines.tracer import traced_engine
from close_kernel.domain.values import (
    ZERO,
    parse_tag,
    round_rate,
    to_date,
    to_decimal,
    to_int,
    to_optional_decimal,
)
from close_kernel.logging_config import get_logger

logger = get_logger("engines.lease_payments")


class EscalationType(str, Enum):
    FIXED_PERCENTAGE = "fixed_percentage"
    FIXED_AMOUNT = "fixed_amount"
    CPI = "cpi"


class EscalationFrequency(str, Enum):
    """Recorded cadence of a rule; each rule row still fires once."""

    ANNUAL = "annual"
    BIENNIAL = "biennial"
    AT_RENEWAL = "at_renewal"


class PropertyTaxFrequency(str, Enum):
    MONTHLY = "monthly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"


class PaymentType(str, Enum):
    """Lease expense categories, in emission order."""

    BASE_RENT = "base_rent"
    CAM = "cam"
    INSURANCE = "insurance"
    PROPERTY_TAX = "property_tax"
    UTILITIES = "utilities"
    OTHER = "other"


class SubleasePaymentType(str, Enum):
    """Sublease income categories, in emission order."""

    BASE_RENT = "base_rent"
    CAM_RECOVERY = "cam_recovery"
    PROPERTY_TAX_RECOVERY = "property_tax_recovery"
    INSURANCE_RECOVERY = "insurance_recovery"
    UTILITIES_RECOVERY = "utilities_recovery"
    OTHER_RECOVERY = "other_recovery"


# ---------------------------------------------------------------------------
# Value records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EscalationRule:
    """
    A scheduled rent increase effective in the month of ``effective_date``.

    ``percentage_increase`` is a decimal fraction (0.03 = 3%).
    """

    escalation_type: EscalationType
    effective_date: date
    percentage_increase: Decimal | None = None
    amount_increase: Decimal | None = None
    frequency: EscalationFrequency = EscalationFrequency.ANNUAL

    @property
    def effective_period(self) -> Period:
        return Period.of(self.effective_date)

    def apply(self, rent: Decimal) -> Decimal:
        """Rent after this rule; unchanged when the rule carries no value."""
        match self.escalation_type:
            case EscalationType.FIXED_PERCENTAGE if self.percentage_increase is not None:
                return rent * (1 + self.percentage_increase)
            case EscalationType.FIXED_AMOUNT if self.amount_increase is not None:
                return rent + self.amount_increase
            case _:
                # CPI needs external index data; rent is left as is
                return rent

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> EscalationRule:
        name = "escalation_rule"
        return cls(
            escalation_type=parse_tag(
                EscalationType, record.get("escalation_type"), "escalation_type"
            ),
            effective_date=to_date(record, "effective_date", name),
            percentage_increase=to_optional_decimal(record, "percentage_increase", name),
            amount_increase=to_optional_decimal(record, "amount_increase", name),
            frequency=parse_tag(
                EscalationFrequency, record.get("frequency") or "annual", "frequency"
            ),
        )


@dataclass(frozen=True)
class Lease:
    """Payment terms of a lease where the entity is the tenant."""

    commencement_date: date
    expiration_date: date
    base_rent_monthly: Decimal
    rent_commencement_date: date | None = None
    cam_monthly: Decimal = ZERO
    insurance_monthly: Decimal = ZERO
    property_tax_annual: Decimal = ZERO
    property_tax_frequency: PropertyTaxFrequency = PropertyTaxFrequency.MONTHLY
    utilities_monthly: Decimal = ZERO
    other_monthly_costs: Decimal = ZERO
    rent_abatement_months: int = 0
    rent_abatement_amount: Decimal = ZERO
    lease_id: str | None = None

    @property
    def rent_start_date(self) -> date:
        return self.rent_commencement_date or self.commencement_date

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Lease:
        name = "lease"
        return cls(
            commencement_date=to_date(record, "commencement_date", name),
            expiration_date=to_date(record, "expiration_date", name),
            base_rent_monthly=to_decimal(record, "base_rent_monthly", name, ZERO),
            rent_commencement_date=to_date(
                record, "rent_commencement_date", name, required=False
            ),
            cam_monthly=to_decimal(record, "cam_monthly", name, ZERO),
            insurance_monthly=to_decimal(record, "insurance_monthly", name, ZERO),
            property_tax_annual=to_decimal(record, "property_tax_annual", name, ZERO),
            property_tax_frequency=parse_tag(
                PropertyTaxFrequency,
                record.get("property_tax_frequency") or "monthly",
                "property_tax_frequency",
            ),
            utilities_monthly=to_decimal(record, "utilities_monthly", name, ZERO),
            other_monthly_costs=to_decimal(record, "other_monthly_costs", name, ZERO),
            rent_abatement_months=to_int(record, "rent_abatement_months", name, 0),
            rent_abatement_amount=to_decimal(record, "rent_abatement_amount", name, ZERO),
            lease_id=str(record["id"]) if record.get("id") is not None else None,
        )


@dataclass(frozen=True)
class Sublease:
    """Income terms of a sublease where the entity is the sublandlord."""

    commencement_date: date
    expiration_date: date
    base_rent_monthly: Decimal
    rent_commencement_date: date | None = None
    cam_recovery_monthly: Decimal = ZERO
    insurance_recovery_monthly: Decimal = ZERO
    property_tax_recovery_monthly: Decimal = ZERO
    utilities_recovery_monthly: Decimal = ZERO
    other_recovery_monthly: Decimal = ZERO
    rent_abatement_months: int = 0
    rent_abatement_amount: Decimal = ZERO
    sublease_id: str | None = None

    @property
    def rent_start_date(self) -> date:
        return self.rent_commencement_date or self.commencement_date

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Sublease:
        name = "sublease"
        return cls(
            commencement_date=to_date(record, "commencement_date", name),
            expiration_date=to_date(record, "expiration_date", name),
            base_rent_monthly=to_decimal(record, "base_rent_monthly", name, ZERO),
            rent_commencement_date=to_date(
                record, "rent_commencement_date", name, required=False
            ),
            cam_recovery_monthly=to_decimal(record, "cam_recovery_monthly", name, ZERO),
            insurance_recovery_monthly=to_decimal(
                record, "insurance_recovery_monthly", name, ZERO
            ),
            property_tax_recovery_monthly=to_decimal(
                record, "property_tax_recovery_monthly", name, ZERO
            ),
            utilities_recovery_monthly=to_decimal(
                record, "utilities_recovery_monthly", name, ZERO
            ),
            other_recovery_monthly=to_decimal(record, "other_recovery_monthly", name, ZERO),
            rent_abatement_months=to_int(record, "rent_abatement_months", name, 0),
            rent_abatement_amount=to_decimal(record, "rent_abatement_amount", name, ZERO),
            sublease_id=str(record["id"]) if record.get("id") is not None else None,
        )


@dataclass(frozen=True)
class PaymentScheduleEntry:
    """One scheduled amount for one category in one month."""

    year: int
    month: int
    payment_type: PaymentType | SubleasePaymentType
    scheduled_amount: Decimal

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)


# ---------------------------------------------------------------------------
# Rent walk
# ---------------------------------------------------------------------------


def property_tax_amount(
    annual_amount: Decimal,
    frequency: PropertyTaxFrequency,
    month: int,
) -> Decimal:
    """
    Property tax due in ``month``.

    Monthly: 1/12 every month.  Semi-annual: 1/2 in June and December.
    Annual: the full amount in December.
    """
    match frequency:
        case PropertyTaxFrequency.SEMI_ANNUAL:
            return annual_amount / 2 if month in (6, 12) else ZERO
        case PropertyTaxFrequency.ANNUAL:
            return annual_amount if month == 12 else ZERO
        case _:
            return annual_amount / 12


def apply_escalations(
    rent: Decimal,
    period: Period,
    escalations: Sequence[EscalationRule],
) -> Decimal:
    """Apply, in order, every rule whose effective month is ``period``."""
    for rule in escalations:
        if rule.effective_period == period:
            rent = rule.apply(rent)
    return rent


def _rent_by_month(
    start_date: date,
    end_date: date,
    base_rent: Decimal,
    abatement_months: int,
    abatement_amount: Decimal,
    escalations: Sequence[EscalationRule],
) -> Iterator[tuple[Period, Decimal]]:
    """
    Yield (period, base rent due) from the start month to the end month.

    Escalations keep accruing during abatement; the abated amount only
    replaces what is billed.
    """
    if start_date > end_date:
        return

    ordered = sorted(escalations, key=lambda rule: rule.effective_date)
    current_rent = base_rent

    for index, period in enumerate(iter_periods(Period.of(start_date), Period.of(end_date))):
        current_rent = apply_escalations(current_rent, period, ordered)
        billed = current_rent
        if abatement_months > 0 and index < abatement_months:
            billed = abatement_amount
        yield period, billed


def _emit(
    entries: list[PaymentScheduleEntry],
    period: Period,
    payment_type: PaymentType | SubleasePaymentType,
    amount: Decimal,
) -> None:
    entries.append(PaymentScheduleEntry(
        year=period.year,
        month=period.month,
        payment_type=payment_type,
        scheduled_amount=round_rate(amount),
    ))


@traced_engine("lease_payments", "1.0", fingerprint_fields=("lease", "escalations"))
def generate_lease_payment_schedule(
    lease: Lease,
    escalations: Sequence[EscalationRule] = (),
) -> list[PaymentScheduleEntry]:
    """
    Lease payment rows from rent commencement through expiration.

    Within a month rows are ordered base rent, CAM, insurance, property
    tax, utilities, other.
    """
    entries: list[PaymentScheduleEntry] = []

    for period, rent in _rent_by_month(
        lease.rent_start_date,
        lease.expiration_date,
        lease.base_rent_monthly,
        lease.rent_abatement_months,
        lease.rent_abatement_amount,
        escalations,
    ):
        if rent != ZERO:
            _emit(entries, period, PaymentType.BASE_RENT, rent)
        if lease.cam_monthly > ZERO:
            _emit(entries, period, PaymentType.CAM, lease.cam_monthly)
        if lease.insurance_monthly > ZERO:
            _emit(entries, period, PaymentType.INSURANCE, lease.insurance_monthly)
        if lease.property_tax_annual > ZERO:
            tax = property_tax_amount(
                lease.property_tax_annual, lease.property_tax_frequency, period.month
            )
            if tax > ZERO:
                _emit(entries, period, PaymentType.PROPERTY_TAX, tax)
        if lease.utilities_monthly > ZERO:
            _emit(entries, period, PaymentType.UTILITIES, lease.utilities_monthly)
        if lease.other_monthly_costs > ZERO:
            _emit(entries, period, PaymentType.OTHER, lease.other_monthly_costs)

    logger.info("lease_payment_schedule_generated", extra={
        "lease_id": lease.lease_id,
        "escalation_count": len(escalations),
        "row_count": len(entries),
    })
    return entries


@traced_engine("sublease_payments", "1.0", fingerprint_fields=("sublease", "escalations"))
def generate_sublease_payment_schedule(
    sublease: Sublease,
    escalations: Sequence[EscalationRule] = (),
) -> list[PaymentScheduleEntry]:
    """
    Sublease income rows from rent commencement through expiration.

    Within a month rows are ordered base rent, CAM, property tax,
    insurance, utilities and other recoveries.
    """
    entries: list[PaymentScheduleEntry] = []
    recoveries = (
        (SubleasePaymentType.CAM_RECOVERY, sublease.cam_recovery_monthly),
        (SubleasePaymentType.PROPERTY_TAX_RECOVERY, sublease.property_tax_recovery_monthly),
        (SubleasePaymentType.INSURANCE_RECOVERY, sublease.insurance_recovery_monthly),
        (SubleasePaymentType.UTILITIES_RECOVERY, sublease.utilities_recovery_monthly),
        (SubleasePaymentType.OTHER_RECOVERY, sublease.other_recovery_monthly),
    )

    for period, rent in _rent_by_month(
        sublease.rent_start_date,
        sublease.expiration_date,
        sublease.base_rent_monthly,
        sublease.rent_abatement_months,
        sublease.rent_abatement_amount,
        escalations,
    ):
        if rent != ZERO:
            _emit(entries, period, SubleasePaymentType.BASE_RENT, rent)
        for payment_type, amount in recoveries:
            if amount > ZERO:
                _emit(entries, period, payment_type, amount)

    logger.info("sublease_payment_schedule_generated", extra={
        "sublease_id": sublease.sublease_id,
        "escalation_count": len(escalations),
        "row_count": len(entries),
    })
    return entries


def summarize_by_period(
    entries: Sequence[PaymentScheduleEntry],
) -> dict[Period, Decimal]:
    """Total scheduled amount per month, in period order."""
    totals: dict[Period, Decimal] = {}
    for entry in entries:
        totals[entry.period] = totals.get(entry.period, ZERO) + entry.scheduled_amount
    return dict(sorted(totals.items()))
