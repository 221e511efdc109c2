"""
Values -- Decimal rounding and record-coercion helpers.

Responsibility:
    Provides the rounding primitives every schedule engine applies at its
    computation boundaries, and the coercion helpers that turn plain
    persistence rows (strings, ints, floats, ISO dates) into the typed
    fields of the instrument value records.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every engine module.

Invariants enforced:
    - Monetary amounts are quantized to 0.01 with ROUND_HALF_UP.
    - Rates (daily revenue rate, lease line amounts) are quantized to
      0.0001 with ROUND_HALF_UP.
    - Floats are converted through ``str`` so that 0.1 becomes
      ``Decimal("0.1")`` rather than its binary expansion.

Failure modes:
    - ``InvalidInstrumentError`` from the ``to_*`` coercers when a field is
      missing or unparseable.
    - ``UnknownMethodError`` from ``parse_tag`` for a tag outside the enum.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from close_kernel.exceptions import InvalidInstrumentError, UnknownMethodError

ZERO = Decimal("0")
CENT = Decimal("0.01")
BASIS_POINT = Decimal("0.0001")

E = TypeVar("E", bound=Enum)


def round_money(value: Decimal) -> Decimal:
    """Quantize to cents (ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Quantize to four decimal places (ROUND_HALF_UP)."""
    return value.quantize(BASIS_POINT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Record coercion
# ---------------------------------------------------------------------------


def to_decimal(
    record: Mapping[str, Any],
    field: str,
    instrument: str,
    default: Decimal | None = None,
) -> Decimal:
    """
    Read ``field`` from ``record`` as a Decimal.

    None or a missing key yields ``default``; without a default the field
    is required.
    """
    value = record.get(field)
    if value is None or value == "":
        if default is None:
            raise InvalidInstrumentError(instrument, field, "required")
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidInstrumentError(
            instrument, field, f"not a number: {value!r}"
        ) from None


def to_optional_decimal(
    record: Mapping[str, Any],
    field: str,
    instrument: str,
) -> Decimal | None:
    """Read ``field`` as a Decimal, keeping None when absent."""
    if record.get(field) is None or record.get(field) == "":
        return None
    return to_decimal(record, field, instrument)


def to_int(
    record: Mapping[str, Any],
    field: str,
    instrument: str,
    default: int | None = None,
) -> int | None:
    """Read ``field`` as an int; None/missing yields ``default``."""
    value = record.get(field)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInstrumentError(
            instrument, field, f"not an integer: {value!r}"
        ) from None


def to_date(
    record: Mapping[str, Any],
    field: str,
    instrument: str,
    required: bool = True,
) -> date | None:
    """Read ``field`` as a date from a ``date``, ``datetime`` or ISO string."""
    value = record.get(field)
    if value is None or value == "":
        if required:
            raise InvalidInstrumentError(instrument, field, "required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidInstrumentError(
            instrument, field, f"not an ISO date: {value!r}"
        ) from None


def parse_tag(enum_cls: type[E], value: Any, kind: str) -> E:
    """Map a string tag (or an enum member) onto ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise UnknownMethodError(
            kind, str(value), tuple(m.value for m in enum_cls)
        ) from None
