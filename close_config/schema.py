"""
EngineSettings schema.

The tunable defaults the schedule engines fall back to when an instrument
record leaves a term unset.  YAML settings files are parsed into this type
by the loader; engines receive it as an optional ``settings`` argument and
use ``EngineSettings()`` when none is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

MACRS_CLASS_TAGS: tuple[str, ...] = ("macrs_5", "macrs_7", "macrs_10")


@dataclass(frozen=True)
class EngineSettings:
    """Defaults applied by the schedule engines."""

    # Term loans without term_months amortize over this many months
    default_debt_term_months: int = 60
    # Interest-only rows generated at most for a line of credit
    line_of_credit_horizon_months: int = 120
    # straight_line_tax assets without tax_useful_life_months
    default_straight_line_tax_life_months: int = 60
    # MACRS table used for basis remaining after 80%/60% bonus depreciation
    bonus_remainder_macrs_class: str = "macrs_5"

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in self.field_names()}
