"""
Tests for the debt amortization engine.

Covers:
- Level payment calculation
- Term loan schedules: chaining, payoff, early truncation
- Line of credit interest-only schedules
- Settings fallbacks and record construction
"""

from datetime import date
from decimal import Decimal

import pytest

from close_config.schema import EngineSettings
from close_engines.amortization import (
    DebtInstrument,
    DebtStatus,
    DebtType,
    calculate_monthly_payment,
    generate_amortization_schedule,
)
from close_kernel.exceptions import UnknownMethodError


def _loan(**overrides) -> DebtInstrument:
    terms = dict(
        debt_type=DebtType.TERM_LOAN,
        original_amount=Decimal("100000"),
        interest_rate=Decimal("0.06"),
        term_months=12,
        start_date=date(2024, 1, 1),
    )
    terms.update(overrides)
    return DebtInstrument(**terms)


class TestMonthlyPayment:
    """Tests for the level payment formula."""

    def test_standard_loan(self):
        payment = calculate_monthly_payment(Decimal("100000"), Decimal("0.06"), 12)

        assert payment == Decimal("8606.64")

    def test_zero_rate_divides_evenly(self):
        payment = calculate_monthly_payment(Decimal("12000"), Decimal("0"), 12)

        assert payment == Decimal("1000.00")

    @pytest.mark.parametrize("principal,term", [
        (Decimal("0"), 12),
        (Decimal("-500"), 12),
        (Decimal("1000"), 0),
    ])
    def test_degenerate_inputs_return_zero(self, principal, term):
        assert calculate_monthly_payment(principal, Decimal("0.05"), term) == Decimal("0")


class TestTermLoanSchedule:
    """Tests for term loan schedules."""

    def test_fully_amortizes_to_zero(self):
        """100000 at 6% over 12 months ends at 0.00 after 12 rows."""
        rows = generate_amortization_schedule(_loan(), 2024, 12)

        assert len(rows) == 12
        assert rows[-1].ending_balance == Decimal("0.00")

    def test_first_row(self):
        rows = generate_amortization_schedule(_loan(), 2024, 12)

        first = rows[0]
        assert first.beginning_balance == Decimal("100000.00")
        assert first.interest == Decimal("500.00")
        assert first.payment == Decimal("8606.64")
        assert first.principal == Decimal("8106.64")
        assert first.ending_balance == Decimal("91893.36")

    def test_rows_chain(self):
        rows = generate_amortization_schedule(_loan(), 2024, 12)

        for prev, curr in zip(rows, rows[1:]):
            assert prev.ending_balance == curr.beginning_balance

    def test_payment_splits_into_principal_and_interest(self):
        rows = generate_amortization_schedule(_loan(), 2024, 12)

        for row in rows:
            assert row.principal + row.interest == row.payment

    def test_truncated_at_target_period(self):
        rows = generate_amortization_schedule(_loan(), 2024, 6)

        assert len(rows) == 6
        assert rows[-1].period.key == "2024-06"
        assert rows[-1].ending_balance > Decimal("0")

    def test_stops_at_term_even_with_later_target(self):
        rows = generate_amortization_schedule(_loan(), 2030, 12)

        assert len(rows) == 12

    def test_target_before_start_is_empty(self):
        assert generate_amortization_schedule(_loan(), 2023, 12) == []

    def test_zero_rate_loan(self):
        rows = generate_amortization_schedule(
            _loan(original_amount=Decimal("1000"), interest_rate=Decimal("0"), term_months=3),
            2024, 12,
        )

        assert [r.payment for r in rows] == [
            Decimal("333.33"), Decimal("333.33"), Decimal("333.34"),
        ]
        assert rows[-1].ending_balance == Decimal("0.00")
        assert all(r.interest == Decimal("0.00") for r in rows)

    def test_payment_override(self):
        """A stated payment larger than level retires the loan early."""
        rows = generate_amortization_schedule(
            _loan(
                original_amount=Decimal("1000"),
                interest_rate=Decimal("0"),
                payment_amount=Decimal("400"),
            ),
            2024, 12,
        )

        assert [r.payment for r in rows] == [
            Decimal("400.00"), Decimal("400.00"), Decimal("200.00"),
        ]
        assert rows[-1].ending_balance == Decimal("0.00")

    def test_missing_term_uses_settings_default(self):
        loan = _loan(term_months=None)

        default_rows = generate_amortization_schedule(loan, 2040, 12)
        short_rows = generate_amortization_schedule(
            loan, 2040, 12, EngineSettings(default_debt_term_months=24)
        )

        assert len(default_rows) == 60
        assert len(short_rows) == 24
        assert short_rows[-1].ending_balance == Decimal("0.00")

    def test_start_mid_year_rolls_over(self):
        rows = generate_amortization_schedule(
            _loan(start_date=date(2024, 11, 15), term_months=4), 2025, 12,
        )

        assert [r.period.key for r in rows] == ["2024-11", "2024-12", "2025-01", "2025-02"]

    def test_identical_inputs_identical_schedules(self):
        assert (
            generate_amortization_schedule(_loan(), 2024, 12)
            == generate_amortization_schedule(_loan(), 2024, 12)
        )


class TestLineOfCredit:
    """Tests for interest-only line of credit schedules."""

    def _line(self, **overrides) -> DebtInstrument:
        terms = dict(
            debt_type=DebtType.LINE_OF_CREDIT,
            original_amount=Decimal("0"),
            interest_rate=Decimal("0.12"),
            start_date=date(2024, 1, 1),
            credit_limit=Decimal("250000"),
            current_draw=Decimal("50000"),
        )
        terms.update(overrides)
        return DebtInstrument(**terms)

    def test_interest_only_rows(self):
        rows = generate_amortization_schedule(self._line(), 2024, 3)

        assert len(rows) == 3
        for row in rows:
            assert row.beginning_balance == Decimal("50000.00")
            assert row.interest == Decimal("500.00")
            assert row.payment == Decimal("500.00")
            assert row.principal == Decimal("0")
            assert row.ending_balance == Decimal("50000.00")

    def test_no_draw_is_empty(self):
        assert generate_amortization_schedule(self._line(current_draw=None), 2024, 12) == []

    def test_horizon_limit(self):
        settings = EngineSettings(line_of_credit_horizon_months=6)

        rows = generate_amortization_schedule(self._line(), 2030, 1, settings)

        assert len(rows) == 6

    def test_available_credit(self):
        assert self._line().available_credit == Decimal("200000")
        assert _loan().available_credit is None


class TestFromRecord:
    """Tests for building instruments from persistence rows."""

    def test_term_loan_record(self):
        debt = DebtInstrument.from_record({
            "id": "TL-1",
            "debt_type": "term_loan",
            "original_amount": "250000",
            "interest_rate": "0.065",
            "term_months": 60,
            "start_date": "2024-03-01",
            "status": "paid_off",
        })

        assert debt.debt_type is DebtType.TERM_LOAN
        assert debt.interest_rate == Decimal("0.065")
        assert debt.term_months == 60
        assert debt.status is DebtStatus.PAID_OFF
        assert debt.instrument_id == "TL-1"

    def test_unknown_debt_type_rejected(self):
        with pytest.raises(UnknownMethodError):
            DebtInstrument.from_record({
                "debt_type": "mortgage",
                "start_date": "2024-01-01",
            })
