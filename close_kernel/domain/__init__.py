"""
Pure domain layer.

Rounding primitives and record coercion with NO dependencies on
persistence, time/clock or I/O.
"""

from close_kernel.domain.values import (
    BASIS_POINT,
    CENT,
    ZERO,
    parse_tag,
    round_money,
    round_rate,
    to_date,
    to_decimal,
    to_int,
    to_optional_decimal,
)

__all__ = [
    "BASIS_POINT",
    "CENT",
    "ZERO",
    "parse_tag",
    "round_money",
    "round_rate",
    "to_date",
    "to_decimal",
    "to_int",
    "to_optional_decimal",
]
