"""
Module: close_engines.depreciation
Responsibility:
    Book and tax depreciation for a fixed asset, month by month, plus
    full-schedule generation from the in-service month through a target
    period and gain/loss on disposition.

    Book methods: straight-line, double-declining balance with automatic
    switch to straight-line, none.
    Tax methods: MACRS 5/7/10-year (half-year convention tables),
    Section 179 expensing, 100/80/60% bonus depreciation, straight-line
    tax, none.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends only on close_engines.periods and close_kernel.

Invariants enforced:
    - Decimal-only arithmetic; every monthly amount is rounded to cents
      as soon as it is produced.
    - Schedule accumulation never exceeds max(0, cost - salvage) for book
      or max(0, tax basis) for tax.
    - Identical inputs produce identical schedules (no hidden state).

Failure modes:
    - None.  Degenerate inputs (life <= 0, depreciable basis <= 0, query
      month before the in-service month) yield Decimal("0") rather than
      raising.  ``DepreciableAsset.from_record`` raises
      ``InvalidInstrumentError`` / ``UnknownMethodError`` for malformed
      persistence rows.

Audit relevance:
    Book depreciation feeds the monthly depreciation journal entry; tax
    depreciation feeds the book/tax difference (deferred tax) schedule.
    Schedule generation is traced via ``@traced_engine``.

Usage:
    from close_engines.depreciation import (
        BookMethod, DepreciableAsset, generate_depreciation_schedule,
    )

    asset = DepreciableAsset(
        acquisition_cost=Decimal("12000"),
        in_service_date=date(2024, 1, 15),
        book_useful_life_months=12,
        book_depreciation_method=BookMethod.STRAIGHT_LINE,
    )
    rows = generate_depreciation_schedule(asset, 2024, 12)
    rows[0].book_depreciation   # Decimal("1000.00")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from close_config.schema import EngineSettings
from close_engines.periods import Period, iter_periods, months_between
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

logger = get_logger("engines.depreciation")

_HUNDRED = Decimal("100")


class BookMethod(str, Enum):
    """Book (GAAP) depreciation methods."""

    STRAIGHT_LINE = "straight_line"
    DECLINING_BALANCE = "declining_balance"
    NONE = "none"


class TaxMethod(str, Enum):
    """Tax depreciation methods."""

    MACRS_5 = "macrs_5"
    MACRS_7 = "macrs_7"
    MACRS_10 = "macrs_10"
    SECTION_179 = "section_179"
    BONUS_100 = "bonus_100"
    BONUS_80 = "bonus_80"
    BONUS_60 = "bonus_60"
    STRAIGHT_LINE_TAX = "straight_line_tax"
    NONE = "none"


class MacrsClass(str, Enum):
    """MACRS recovery classes with a fixed half-year-convention table."""

    FIVE_YEAR = "macrs_5"
    SEVEN_YEAR = "macrs_7"
    TEN_YEAR = "macrs_10"

    @property
    def percentages(self) -> tuple[Decimal, ...]:
        """Percent of basis per tax year."""
        return MACRS_TABLES[self]


# IRS Publication 946, Table A-1 (half-year convention, 200% DB)
MACRS_TABLES: Mapping[MacrsClass, tuple[Decimal, ...]] = MappingProxyType({
    MacrsClass.FIVE_YEAR: tuple(Decimal(p) for p in (
        "20.0", "32.0", "19.2", "11.52", "11.52", "5.76",
    )),
    MacrsClass.SEVEN_YEAR: tuple(Decimal(p) for p in (
        "14.29", "24.49", "17.49", "12.49", "8.93", "8.92", "8.93", "4.46",
    )),
    MacrsClass.TEN_YEAR: tuple(Decimal(p) for p in (
        "10.0", "18.0", "14.4", "11.52", "9.22", "7.37",
        "6.55", "6.55", "6.56", "6.55", "3.28",
    )),
})

_BONUS_RATES: Mapping[TaxMethod, Decimal] = MappingProxyType({
    TaxMethod.BONUS_100: Decimal("1.0"),
    TaxMethod.BONUS_80: Decimal("0.8"),
    TaxMethod.BONUS_60: Decimal("0.6"),
})


# ---------------------------------------------------------------------------
# Value records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DepreciableAsset:
    """
    A fixed asset's depreciation terms.

    Contract:
        Frozen value record; the engine reads nothing else.
    Guarantees:
        - ``tax_basis`` defaults to ``acquisition_cost`` when
          ``tax_cost_basis`` is None.
    Non-goals:
        - Does not validate that the method/life combination is sensible;
          degenerate terms depreciate 0.
    """

    acquisition_cost: Decimal
    in_service_date: date
    book_useful_life_months: int
    book_salvage_value: Decimal = ZERO
    book_depreciation_method: BookMethod = BookMethod.STRAIGHT_LINE
    tax_cost_basis: Decimal | None = None
    tax_depreciation_method: TaxMethod = TaxMethod.NONE
    tax_useful_life_months: int | None = None
    section_179_amount: Decimal = ZERO
    bonus_depreciation_amount: Decimal = ZERO
    asset_id: str | None = None

    @property
    def tax_basis(self) -> Decimal:
        if self.tax_cost_basis is None:
            return self.acquisition_cost
        return self.tax_cost_basis

    @property
    def book_depreciable_basis(self) -> Decimal:
        return self.acquisition_cost - self.book_salvage_value

    @property
    def in_service_period(self) -> Period:
        return Period.of(self.in_service_date)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> DepreciableAsset:
        """Build from a persistence row (string tags, ISO dates)."""
        name = "fixed_asset"
        return cls(
            acquisition_cost=to_decimal(record, "acquisition_cost", name),
            in_service_date=to_date(record, "in_service_date", name),
            book_useful_life_months=to_int(record, "book_useful_life_months", name, 0),
            book_salvage_value=to_decimal(record, "book_salvage_value", name, ZERO),
            book_depreciation_method=parse_tag(
                BookMethod,
                record.get("book_depreciation_method") or "straight_line",
                "book_depreciation_method",
            ),
            tax_cost_basis=to_optional_decimal(record, "tax_cost_basis", name),
            tax_depreciation_method=parse_tag(
                TaxMethod,
                record.get("tax_depreciation_method") or "none",
                "tax_depreciation_method",
            ),
            tax_useful_life_months=to_int(record, "tax_useful_life_months", name),
            section_179_amount=to_decimal(record, "section_179_amount", name, ZERO),
            bonus_depreciation_amount=to_decimal(
                record, "bonus_depreciation_amount", name, ZERO
            ),
            asset_id=str(record["id"]) if record.get("id") is not None else None,
        )


@dataclass(frozen=True)
class DepreciationEntry:
    """One month of a depreciation schedule."""

    year: int
    month: int
    book_depreciation: Decimal
    book_accumulated: Decimal
    book_net_value: Decimal
    tax_depreciation: Decimal
    tax_accumulated: Decimal
    tax_net_value: Decimal

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)

    @property
    def book_tax_difference(self) -> Decimal:
        """Tax minus book depreciation for the month."""
        return self.tax_depreciation - self.book_depreciation


@dataclass(frozen=True)
class DispositionResult:
    """Gain (positive) or loss (negative) on sale, per basis."""

    book_net_book_value: Decimal
    tax_net_book_value: Decimal
    book_gain_loss: Decimal
    tax_gain_loss: Decimal

    @property
    def is_book_gain(self) -> bool:
        return self.book_gain_loss > ZERO

    @property
    def is_tax_gain(self) -> bool:
        return self.tax_gain_loss > ZERO


# ---------------------------------------------------------------------------
# Treatments (closed tagged variants)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoBookDepreciation:
    pass


@dataclass(frozen=True)
class StraightLineBook:
    depreciable_basis: Decimal
    life_months: int


@dataclass(frozen=True)
class DecliningBalanceBook:
    cost: Decimal
    salvage: Decimal
    life_months: int


BookTreatment = NoBookDepreciation | StraightLineBook | DecliningBalanceBook


@dataclass(frozen=True)
class NoTaxDepreciation:
    pass


@dataclass(frozen=True)
class Section179Expense:
    """Full deduction in the in-service month."""

    deduction: Decimal


@dataclass(frozen=True)
class BonusDepreciation:
    """
    Bonus in the in-service month; any remaining basis follows a MACRS
    table from the following month.
    """

    bonus: Decimal
    remaining_basis: Decimal
    remainder_class: MacrsClass | None


@dataclass(frozen=True)
class MacrsDepreciation:
    basis: Decimal
    macrs_class: MacrsClass


@dataclass(frozen=True)
class StraightLineTax:
    basis: Decimal
    life_months: int


TaxTreatment = (
    NoTaxDepreciation
    | Section179Expense
    | BonusDepreciation
    | MacrsDepreciation
    | StraightLineTax
)


def book_treatment(asset: DepreciableAsset) -> BookTreatment:
    """Resolve the asset's book method into its treatment variant."""
    match asset.book_depreciation_method:
        case BookMethod.STRAIGHT_LINE:
            return StraightLineBook(
                depreciable_basis=asset.book_depreciable_basis,
                life_months=asset.book_useful_life_months,
            )
        case BookMethod.DECLINING_BALANCE:
            return DecliningBalanceBook(
                cost=asset.acquisition_cost,
                salvage=asset.book_salvage_value,
                life_months=asset.book_useful_life_months,
            )
        case _:
            return NoBookDepreciation()


def tax_treatment(
    asset: DepreciableAsset,
    settings: EngineSettings | None = None,
) -> TaxTreatment:
    """Resolve the asset's tax method into its treatment variant."""
    settings = settings or EngineSettings()
    basis = asset.tax_basis
    method = asset.tax_depreciation_method

    match method:
        case TaxMethod.SECTION_179:
            # Zero elected amount means "expense the whole basis"
            elected = asset.section_179_amount or basis
            return Section179Expense(deduction=min(elected, basis))
        case TaxMethod.BONUS_100 | TaxMethod.BONUS_80 | TaxMethod.BONUS_60:
            bonus_used = asset.bonus_depreciation_amount or basis * _BONUS_RATES[method]
            remainder_class = None
            if method is not TaxMethod.BONUS_100:
                remainder_class = MacrsClass(settings.bonus_remainder_macrs_class)
            return BonusDepreciation(
                bonus=min(bonus_used, basis),
                remaining_basis=basis - bonus_used,
                remainder_class=remainder_class,
            )
        case TaxMethod.STRAIGHT_LINE_TAX:
            life = (
                asset.tax_useful_life_months
                or settings.default_straight_line_tax_life_months
            )
            return StraightLineTax(basis=basis, life_months=life)
        case TaxMethod.MACRS_5 | TaxMethod.MACRS_7 | TaxMethod.MACRS_10:
            return MacrsDepreciation(basis=basis, macrs_class=MacrsClass(method.value))
        case _:
            return NoTaxDepreciation()


# ---------------------------------------------------------------------------
# Monthly depreciation
# ---------------------------------------------------------------------------


def monthly_book_depreciation(
    asset: DepreciableAsset,
    year: int,
    month: int,
) -> Decimal:
    """
    Book depreciation for one month.

    Returns Decimal("0") before the in-service month, once the useful life
    is exhausted, or when cost <= salvage.
    """
    treatment = book_treatment(asset)
    elapsed = months_between(asset.in_service_period, Period(year, month))

    match treatment:
        case StraightLineBook(depreciable_basis=basis, life_months=life):
            if elapsed < 0 or elapsed >= life or basis <= ZERO:
                return ZERO
            return round_money(basis / life)
        case DecliningBalanceBook(life_months=life):
            if elapsed < 0 or elapsed >= life:
                return ZERO
            if treatment.cost - treatment.salvage <= ZERO:
                return ZERO
            return _declining_balance_month(treatment, elapsed)
        case _:
            return ZERO


def _declining_balance_month(treatment: DecliningBalanceBook, elapsed: int) -> Decimal:
    """
    Walk the double-declining recurrence from the in-service month to
    month index ``elapsed``.

    Each month takes the greater of DDB on net book value and
    straight-line of the remaining depreciable amount over the remaining
    life, capped so net book value never drops below salvage.
    """
    cost, salvage, life = treatment.cost, treatment.salvage, treatment.life_months
    rate = Decimal(2) / Decimal(life)
    accumulated = ZERO
    depreciation = ZERO

    for index in range(elapsed + 1):
        net_book_value = cost - accumulated
        ddb_amount = net_book_value * rate
        remaining_months = life - index
        sl_amount = (
            (net_book_value - salvage) / remaining_months
            if remaining_months > 0
            else ZERO
        )
        capped = min(max(ddb_amount, sl_amount), net_book_value - salvage)
        depreciation = max(ZERO, round_money(capped))
        accumulated += depreciation

    return depreciation


def monthly_tax_depreciation(
    asset: DepreciableAsset,
    year: int,
    month: int,
    settings: EngineSettings | None = None,
) -> Decimal:
    """
    Tax depreciation for one month.

    Returns Decimal("0") before the in-service month, outside the
    method's recovery window, or when the tax basis is <= 0.
    """
    treatment = tax_treatment(asset, settings)
    start = asset.in_service_period
    elapsed = months_between(start, Period(year, month))

    if elapsed < 0 or asset.tax_basis <= ZERO:
        return ZERO

    match treatment:
        case Section179Expense(deduction=deduction):
            return round_money(deduction) if elapsed == 0 else ZERO
        case BonusDepreciation():
            if elapsed == 0:
                return round_money(treatment.bonus)
            if treatment.remainder_class is None or treatment.remaining_basis <= ZERO:
                return ZERO
            return _macrs_month(
                treatment.remaining_basis, treatment.remainder_class, start, year, month
            )
        case StraightLineTax(basis=basis, life_months=life):
            if elapsed >= life:
                return ZERO
            return round_money(basis / life)
        case MacrsDepreciation(basis=basis, macrs_class=macrs_class):
            return _macrs_month(basis, macrs_class, start, year, month)
        case _:
            return ZERO


def _macrs_month(
    basis: Decimal,
    macrs_class: MacrsClass,
    in_service: Period,
    year: int,
    month: int,
) -> Decimal:
    """
    Monthly share of a MACRS tax year.

    Tax year N is calendar year in_service.year + N.  The first tax
    year's amount is spread over the months remaining in that calendar
    year from the in-service month; later years over 12 months.
    """
    table = MACRS_TABLES[macrs_class]
    tax_year = year - in_service.year
    if tax_year < 0 or tax_year >= len(table):
        return ZERO

    annual = basis * table[tax_year] / _HUNDRED
    if tax_year == 0:
        if month < in_service.month:
            return ZERO
        months_in_year = 13 - in_service.month
    else:
        months_in_year = 12

    return round_money(annual / months_in_year)


# ---------------------------------------------------------------------------
# Schedule and disposition
# ---------------------------------------------------------------------------


@traced_engine("depreciation", "1.0", fingerprint_fields=("asset", "through_year", "through_month"))
def generate_depreciation_schedule(
    asset: DepreciableAsset,
    through_year: int,
    through_month: int,
    settings: EngineSettings | None = None,
) -> list[DepreciationEntry]:
    """
    One row per month from the in-service month through the target
    period inclusive.

    Returns an empty list when the target precedes the in-service month.
    """
    book_cap = max(ZERO, asset.book_depreciable_basis)
    tax_basis = asset.tax_basis
    tax_cap = max(ZERO, tax_basis)

    book_accumulated = ZERO
    tax_accumulated = ZERO
    entries: list[DepreciationEntry] = []

    for period in iter_periods(asset.in_service_period, Period(through_year, through_month)):
        book = monthly_book_depreciation(asset, period.year, period.month)
        tax = monthly_tax_depreciation(asset, period.year, period.month, settings)

        book_accumulated = min(book_accumulated + book, book_cap)
        tax_accumulated = min(tax_accumulated + tax, tax_cap)

        entries.append(DepreciationEntry(
            year=period.year,
            month=period.month,
            book_depreciation=round_money(book),
            book_accumulated=round_money(book_accumulated),
            book_net_value=round_money(asset.acquisition_cost - book_accumulated),
            tax_depreciation=round_money(tax),
            tax_accumulated=round_money(tax_accumulated),
            tax_net_value=round_money(tax_basis - tax_accumulated),
        ))

    logger.info("depreciation_schedule_generated", extra={
        "asset_id": asset.asset_id,
        "book_method": asset.book_depreciation_method.value,
        "tax_method": asset.tax_depreciation_method.value,
        "through": f"{through_year}-{through_month:02d}",
        "row_count": len(entries),
        "book_accumulated": str(book_accumulated),
        "tax_accumulated": str(tax_accumulated),
    })
    return entries


def calculate_disposition_gain_loss(
    acquisition_cost: Decimal,
    book_accumulated_depreciation: Decimal,
    tax_cost_basis: Decimal,
    tax_accumulated_depreciation: Decimal,
    sale_price: Decimal,
) -> DispositionResult:
    """
    Gain/loss on sale = sale price - net book value, for book and tax.

    Positive is a gain, negative a loss.
    """
    book_nbv = acquisition_cost - book_accumulated_depreciation
    tax_nbv = tax_cost_basis - tax_accumulated_depreciation
    result = DispositionResult(
        book_net_book_value=round_money(book_nbv),
        tax_net_book_value=round_money(tax_nbv),
        book_gain_loss=round_money(sale_price - book_nbv),
        tax_gain_loss=round_money(sale_price - tax_nbv),
    )
    logger.debug("disposition_calculated", extra={
        "sale_price": str(sale_price),
        "book_gain_loss": str(result.book_gain_loss),
        "tax_gain_loss": str(result.tax_gain_loss),
    })
    return result


def dispose_asset(
    asset: DepreciableAsset,
    disposal_year: int,
    disposal_month: int,
    sale_price: Decimal,
    settings: EngineSettings | None = None,
) -> DispositionResult:
    """
    Gain/loss for an asset sold in the given month, using accumulated
    depreciation through that month (0 if sold before in-service).
    """
    schedule = generate_depreciation_schedule(
        asset, disposal_year, disposal_month, settings
    )
    book_accumulated = schedule[-1].book_accumulated if schedule else ZERO
    tax_accumulated = schedule[-1].tax_accumulated if schedule else ZERO
    return calculate_disposition_gain_loss(
        asset.acquisition_cost,
        book_accumulated,
        asset.tax_basis,
        tax_accumulated,
        sale_price,
    )
