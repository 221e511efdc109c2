#!/usr/bin/env python3
"""
Run each schedule engine on sample instruments and print the rows.

Instruments come from a YAML file (one list per engine, records shaped
like the persistence rows) or, without one, from built-in samples.

Usage:
    python3 scripts/demo_schedules.py
    python3 scripts/demo_schedules.py --through 2025-06
    python3 scripts/demo_schedules.py --instruments my_instruments.yaml
    python3 scripts/demo_schedules.py --engine revenue --period 2024-01
    python3 scripts/demo_schedules.py --settings close_config/defaults.yaml --json-logs

YAML shape:
    assets:      [{acquisition_cost: 12000, in_service_date: 2024-01-15, ...}]
    debts:       [{debt_type: term_loan, original_amount: 100000, ...}]
    leases:      [{commencement_date: 2024-01-01, ..., escalations: [...]}]
    contracts:   [{contract_id: C-1, rental_start: 2024-01-01, ...}]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from close_config import EngineSettings, get_engine_settings, load_yaml_file  # noqa: E402
from close_engines import (  # noqa: E402
    DebtInstrument,
    DepreciableAsset,
    EscalationRule,
    Lease,
    Period,
    RentalContractRow,
    calculate_all,
    generate_amortization_schedule,
    generate_depreciation_schedule,
    generate_lease_payment_schedule,
)
from close_kernel.exceptions import CloseKernelError  # noqa: E402
from close_kernel.logging_config import configure_logging  # noqa: E402

SAMPLES: dict[str, list[dict[str, Any]]] = {
    "assets": [
        {
            "id": "FA-001",
            "acquisition_cost": "12000",
            "in_service_date": "2024-01-15",
            "book_useful_life_months": 12,
            "book_depreciation_method": "straight_line",
            "tax_depreciation_method": "macrs_5",
        },
        {
            "id": "FA-002",
            "acquisition_cost": "50000",
            "in_service_date": "2024-03-01",
            "book_useful_life_months": 60,
            "book_salvage_value": "5000",
            "book_depreciation_method": "declining_balance",
            "tax_depreciation_method": "bonus_80",
        },
    ],
    "debts": [
        {
            "id": "TL-1",
            "debt_type": "term_loan",
            "original_amount": "100000",
            "interest_rate": "0.06",
            "term_months": 12,
            "start_date": "2024-01-01",
        },
        {
            "id": "LOC-1",
            "debt_type": "line_of_credit",
            "original_amount": "0",
            "interest_rate": "0.085",
            "start_date": "2024-01-01",
            "credit_limit": "250000",
            "current_draw": "75000",
        },
    ],
    "leases": [
        {
            "id": "RE-1",
            "commencement_date": "2024-01-01",
            "expiration_date": "2025-12-31",
            "base_rent_monthly": "5000",
            "cam_monthly": "450",
            "property_tax_annual": "6000",
            "property_tax_frequency": "semi_annual",
            "rent_abatement_months": 2,
            "rent_abatement_amount": "0",
            "escalations": [
                {
                    "escalation_type": "fixed_percentage",
                    "effective_date": "2025-01-01",
                    "percentage_increase": "0.03",
                },
            ],
        },
    ],
    "contracts": [
        {
            "contract_id": "C-1",
            "customer_name": "Acme Builders",
            "description": "Scissor lift",
            "rental_start": "2024-01-01",
            "rental_end": "2024-01-31",
            "total_contract_value": "3100",
            "billed_amount": "1500",
        },
        {
            "contract_id": "C-2",
            "customer_name": "Northwind",
            "description": "Generator",
            "rental_start": "2024-01-20",
            "rental_end": "2024-02-18",
            "total_contract_value": "3000",
            "billed_amount": "3000",
        },
    ],
}


def _print_rows(title: str, rows: list[Any]) -> None:
    print(f"\n=== {title} ({len(rows)} rows)")
    for row in rows:
        print("  " + "  ".join(f"{k}={v}" for k, v in vars(row).items()))


def run_depreciation(records, through: Period, settings: EngineSettings) -> None:
    for record in records:
        asset = DepreciableAsset.from_record(record)
        rows = generate_depreciation_schedule(asset, through.year, through.month, settings)
        _print_rows(f"Depreciation {asset.asset_id or ''}", rows)


def run_amortization(records, through: Period, settings: EngineSettings) -> None:
    for record in records:
        debt = DebtInstrument.from_record(record)
        rows = generate_amortization_schedule(debt, through.year, through.month, settings)
        _print_rows(f"Amortization {debt.instrument_id or ''}", rows)


def run_lease_payments(records) -> None:
    for record in records:
        lease = Lease.from_record(record)
        escalations = [EscalationRule.from_record(e) for e in record.get("escalations", [])]
        rows = generate_lease_payment_schedule(lease, escalations)
        _print_rows(f"Lease payments {lease.lease_id or ''}", rows)


def run_revenue(records, period: Period) -> None:
    contracts = [RentalContractRow.from_record(r) for r in records]
    result = calculate_all(contracts, period.year, period.month)
    _print_rows(f"Revenue {period.label}", list(result.lines))
    t = result.totals
    print(f"  totals: earned={t.earned} billed={t.billed} accrual={t.accrual} deferral={t.deferral}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the month-end schedule engines")
    parser.add_argument("--instruments", type=Path, help="YAML file of instrument records")
    parser.add_argument("--settings", type=Path, help="Engine settings YAML")
    parser.add_argument("--through", type=Period.parse, default="2024-12", help="Target period YYYY-MM")
    parser.add_argument("--period", type=Period.parse, default="2024-01", help="Revenue period YYYY-MM")
    parser.add_argument(
        "--engine",
        choices=("all", "depreciation", "amortization", "lease", "revenue"),
        default="all",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit engine logs to stderr")
    args = parser.parse_args()

    if args.json_logs:
        configure_logging(level=logging.INFO)

    try:
        settings = get_engine_settings(args.settings)
        data = load_yaml_file(args.instruments) if args.instruments else SAMPLES

        if args.engine in ("all", "depreciation"):
            run_depreciation(data.get("assets", []), args.through, settings)
        if args.engine in ("all", "amortization"):
            run_amortization(data.get("debts", []), args.through, settings)
        if args.engine in ("all", "lease"):
            run_lease_payments(data.get("leases", []))
        if args.engine in ("all", "revenue"):
            run_revenue(data.get("contracts", []), args.period)
    except CloseKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
