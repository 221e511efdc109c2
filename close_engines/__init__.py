"""
Module: close_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    schedule engines.  This is the canonical import surface for the
    persistence, import and reporting layers that call the engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import close_kernel and close_config.schema.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Target periods and as-of dates are explicit parameters.
    - Decimal-only arithmetic: floats are forbidden.
    - Determinism: identical inputs always produce identical outputs.
    - Engines never raise on degenerate numeric/date input; they return 0.

Audit relevance:
    Every schedule generation is traced via the ``@traced_engine``
    decorator (see ``close_engines.tracer``), emitting CLOSE_ENGINE_TRACE
    log records with engine name, version, input fingerprint and duration.

Usage:
    from close_engines.depreciation import generate_depreciation_schedule
    from close_engines.amortization import generate_amortization_schedule
    from close_engines.lease_payments import generate_lease_payment_schedule
    from close_engines.revenue import calculate_all
"""

from close_kernel.logging_config import get_logger

logger = get_logger("engines")

from close_engines.amortization import (
    AmortizationEntry,
    DebtInstrument,
    DebtStatus,
    DebtType,
    calculate_monthly_payment,
    generate_amortization_schedule,
)
from close_engines.depreciation import (
    MACRS_TABLES,
    BookMethod,
    DepreciableAsset,
    DepreciationEntry,
    DispositionResult,
    MacrsClass,
    TaxMethod,
    calculate_disposition_gain_loss,
    dispose_asset,
    generate_depreciation_schedule,
    monthly_book_depreciation,
    monthly_tax_depreciation,
)
from close_engines.lease_accounting import (
    ASC842ScheduleEntry,
    ASC842Summary,
    JournalEntry,
    JournalLine,
    LeaseAccountMapping,
    LeaseClassification,
    LeaseForASC842,
    calculate_lease_liability,
    calculate_rou_asset,
    classify_lease,
    generate_asc842_schedule,
    generate_initial_journal_entries,
    generate_monthly_journal_entry,
)
from close_engines.lease_payments import (
    EscalationFrequency,
    EscalationRule,
    EscalationType,
    Lease,
    PaymentScheduleEntry,
    PaymentType,
    PropertyTaxFrequency,
    Sublease,
    SubleasePaymentType,
    generate_lease_payment_schedule,
    generate_sublease_payment_schedule,
)
from close_engines.periods import (
    Granularity,
    Period,
    PeriodBucket,
    compute_due_date,
    current_period,
    iter_periods,
    months_between,
    next_period,
    period_end_date,
    period_start_date,
    periods_in_range,
    prior_period,
)
from close_engines.revenue import (
    CalculatedRevenueLine,
    RentalContractRow,
    RevenueCalculation,
    RevenueTotals,
    calculate_all,
    calculate_line,
)

__all__ = [
    # Periods
    "Period",
    "PeriodBucket",
    "Granularity",
    "period_start_date",
    "period_end_date",
    "prior_period",
    "next_period",
    "current_period",
    "compute_due_date",
    "months_between",
    "iter_periods",
    "periods_in_range",
    # Depreciation
    "BookMethod",
    "TaxMethod",
    "MacrsClass",
    "MACRS_TABLES",
    "DepreciableAsset",
    "DepreciationEntry",
    "DispositionResult",
    "monthly_book_depreciation",
    "monthly_tax_depreciation",
    "generate_depreciation_schedule",
    "calculate_disposition_gain_loss",
    "dispose_asset",
    # Amortization
    "DebtType",
    "DebtStatus",
    "DebtInstrument",
    "AmortizationEntry",
    "calculate_monthly_payment",
    "generate_amortization_schedule",
    # Lease payments
    "EscalationType",
    "EscalationFrequency",
    "EscalationRule",
    "PropertyTaxFrequency",
    "PaymentType",
    "SubleasePaymentType",
    "Lease",
    "Sublease",
    "PaymentScheduleEntry",
    "generate_lease_payment_schedule",
    "generate_sublease_payment_schedule",
    # Lease accounting (ASC 842)
    "LeaseClassification",
    "LeaseForASC842",
    "ASC842ScheduleEntry",
    "ASC842Summary",
    "LeaseAccountMapping",
    "JournalEntry",
    "JournalLine",
    "classify_lease",
    "calculate_lease_liability",
    "calculate_rou_asset",
    "generate_asc842_schedule",
    "generate_initial_journal_entries",
    "generate_monthly_journal_entry",
    # Revenue
    "RentalContractRow",
    "CalculatedRevenueLine",
    "RevenueTotals",
    "RevenueCalculation",
    "calculate_line",
    "calculate_all",
]
