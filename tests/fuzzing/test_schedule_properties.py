"""
Property-based tests for the schedule engines.

Verifies, over generated instruments:
- Depreciation accumulation never exceeds the depreciable basis
- Straight-line book and MACRS tax totals recover the basis to within a
  cent per month
- Term loans chain and retire to 0.00 at the end of the term
- Revenue lines carry at most one of accrual/deferral
- Lease schedules stay inside the lease term
- Period arithmetic round-trips
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from close_engines.amortization import (
    DebtInstrument,
    DebtType,
    generate_amortization_schedule,
)
from close_engines.depreciation import (
    MACRS_TABLES,
    BookMethod,
    DepreciableAsset,
    MacrsClass,
    TaxMethod,
    generate_depreciation_schedule,
    monthly_book_depreciation,
    monthly_tax_depreciation,
)
from close_engines.lease_payments import (
    EscalationRule,
    EscalationType,
    Lease,
    generate_lease_payment_schedule,
)
from close_engines.periods import Period, iter_periods, months_between
from close_engines.revenue import RentalContractRow, calculate_line

_FUZZ_SETTINGS = settings(
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("5000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2040, 12, 31))

periods = st.builds(
    Period,
    year=st.integers(min_value=1990, max_value=2060),
    month=st.integers(min_value=1, max_value=12),
)


@composite
def assets(draw) -> DepreciableAsset:
    cost = draw(money)
    salvage = draw(st.decimals(
        min_value=Decimal("0"), max_value=cost, places=2,
        allow_nan=False, allow_infinity=False,
    ))
    return DepreciableAsset(
        acquisition_cost=cost,
        in_service_date=draw(dates),
        book_useful_life_months=draw(st.integers(min_value=1, max_value=120)),
        book_salvage_value=salvage,
        book_depreciation_method=draw(st.sampled_from(list(BookMethod))),
        tax_depreciation_method=draw(st.sampled_from(list(TaxMethod))),
    )


@composite
def term_loans(draw) -> DebtInstrument:
    return DebtInstrument(
        debt_type=DebtType.TERM_LOAN,
        original_amount=draw(money),
        interest_rate=draw(st.decimals(
            min_value=Decimal("0"), max_value=Decimal("0.25"), places=4,
            allow_nan=False, allow_infinity=False,
        )),
        term_months=draw(st.integers(min_value=1, max_value=360)),
        start_date=draw(dates),
    )


@composite
def contracts(draw) -> RentalContractRow:
    start = draw(dates)
    length = draw(st.integers(min_value=0, max_value=400))
    return RentalContractRow(
        contract_id="C",
        customer_name="Customer",
        description="Rental",
        rental_start=start,
        rental_end=start + timedelta(days=length),
        total_contract_value=draw(money),
        billed_amount=draw(st.decimals(
            min_value=Decimal("0"), max_value=Decimal("5000000"), places=2,
            allow_nan=False, allow_infinity=False,
        )),
    )


class TestDepreciationProperties:
    """Accumulation caps hold for every method combination."""

    @given(asset=assets(), horizon=st.integers(min_value=0, max_value=150))
    @_FUZZ_SETTINGS
    def test_accumulation_within_basis(self, asset, horizon):
        through = asset.in_service_period.add_months(horizon)
        rows = generate_depreciation_schedule(asset, through.year, through.month)

        assert len(rows) == horizon + 1
        book_cap = asset.acquisition_cost - asset.book_salvage_value
        for row in rows:
            assert Decimal("0") <= row.book_accumulated <= book_cap
            assert Decimal("0") <= row.tax_accumulated <= asset.tax_basis
            assert row.book_depreciation >= Decimal("0")

    @given(
        cost=money,
        salvage_share=st.decimals(
            min_value=Decimal("0"), max_value=Decimal("1"), places=2,
            allow_nan=False, allow_infinity=False,
        ),
        life=st.integers(min_value=1, max_value=480),
        in_service=dates,
    )
    @_FUZZ_SETTINGS
    def test_straight_line_life_total_matches_basis(self, cost, salvage_share, life, in_service):
        salvage = (cost * salvage_share).quantize(Decimal("0.01"))
        asset = DepreciableAsset(
            acquisition_cost=cost,
            in_service_date=in_service,
            book_useful_life_months=life,
            book_salvage_value=salvage,
            book_depreciation_method=BookMethod.STRAIGHT_LINE,
        )
        first = asset.in_service_period
        last = first.add_months(life - 1)

        total = sum(
            (monthly_book_depreciation(asset, p.year, p.month) for p in iter_periods(first, last)),
            Decimal("0"),
        )

        assert abs(total - (cost - salvage)) <= Decimal("0.01") * life
        after = last.next()
        assert monthly_book_depreciation(asset, after.year, after.month) == Decimal("0")

    @given(basis=money, macrs_class=st.sampled_from(list(MacrsClass)), in_service=dates)
    @_FUZZ_SETTINGS
    def test_macrs_table_span_total_matches_basis(self, basis, macrs_class, in_service):
        asset = DepreciableAsset(
            acquisition_cost=basis,
            in_service_date=in_service,
            book_useful_life_months=12,
            tax_depreciation_method=TaxMethod(macrs_class.value),
        )
        first = asset.in_service_period
        last = Period(first.year + len(MACRS_TABLES[macrs_class]) - 1, 12)
        months = months_between(first, last) + 1

        total = sum(
            (monthly_tax_depreciation(asset, p.year, p.month) for p in iter_periods(first, last)),
            Decimal("0"),
        )

        assert abs(total - basis) <= Decimal("0.01") * months
        after = last.next()
        assert monthly_tax_depreciation(asset, after.year, after.month) == Decimal("0")


class TestAmortizationProperties:
    """Term loans chain and pay off."""

    @given(loan=term_loans())
    @_FUZZ_SETTINGS
    def test_chains_and_retires(self, loan):
        end = Period.of(loan.start_date).add_months(loan.term_months - 1)
        rows = generate_amortization_schedule(loan, end.year, end.month)

        assert rows
        assert rows[0].beginning_balance == loan.original_amount
        for prev, curr in zip(rows, rows[1:]):
            assert prev.ending_balance == curr.beginning_balance
        assert rows[-1].ending_balance == Decimal("0.00")
        assert len(rows) <= loan.term_months


class TestRevenueProperties:
    """Accrual and deferral are mutually exclusive and reconcile."""

    @given(row=contracts(), period=periods)
    @_FUZZ_SETTINGS
    def test_accrual_deferral_exclusive(self, row, period):
        line = calculate_line(row, period.year, period.month)

        assert line.accrual_amount == Decimal("0") or line.deferral_amount == Decimal("0")
        assert line.earned_revenue - line.billed_amount == (
            line.accrual_amount - line.deferral_amount
        )
        assert 0 <= line.days_in_period <= period.days


class TestLeaseProperties:
    """Lease rows fall inside the term and carry positive amounts."""

    @given(
        start=dates,
        months=st.integers(min_value=1, max_value=120),
        rent=money,
        increase=st.decimals(
            min_value=Decimal("0"), max_value=Decimal("0.10"), places=4,
            allow_nan=False, allow_infinity=False,
        ),
    )
    @_FUZZ_SETTINGS
    def test_rows_within_term(self, start, months, rent, increase):
        end_period = Period.of(start).add_months(months - 1)
        lease = Lease(
            commencement_date=start,
            expiration_date=end_period.end_date,
            base_rent_monthly=rent,
        )
        rule = EscalationRule(
            EscalationType.FIXED_PERCENTAGE,
            Period.of(start).add_months(12).start_date,
            percentage_increase=increase,
        )

        rows = generate_lease_payment_schedule(lease, [rule])

        assert len(rows) == months
        assert all(r.scheduled_amount > Decimal("0") for r in rows)
        assert rows[0].period == Period.of(start)
        assert rows[-1].period == end_period


class TestPeriodProperties:
    """Period arithmetic round-trips."""

    @given(period=periods, offset=st.integers(min_value=-600, max_value=600))
    @_FUZZ_SETTINGS
    def test_add_months_inverse_of_months_between(self, period, offset):
        assert months_between(period, period.add_months(offset)) == offset

    @given(period=periods)
    @_FUZZ_SETTINGS
    def test_next_previous_round_trip(self, period):
        assert period.next().previous() == period
        assert period.next() == period.add_months(1)
