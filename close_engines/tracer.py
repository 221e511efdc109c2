"""
close_engines.tracer -- CLOSE_ENGINE_TRACE records for schedule engines.

``@traced_engine`` wraps a schedule generator and, after each call, logs one
``CLOSE_ENGINE_TRACE`` record carrying:

    engine_name, engine_version   -- what ran
    input_fingerprint             -- 16 hex chars of SHA-256 over the
                                     selected arguments
    close_period                  -- ``YYYY-MM`` when the engine takes a
                                     year/month pair, else null
    row_count, duration_ms        -- what came back and how long it took

The wrapper reads its arguments and nothing else; it never touches the
result, so wrapped engines stay pure.

    @traced_engine("depreciation", "1.0", fingerprint_fields=("asset",))
    def generate_depreciation_schedule(asset, through_year, through_month):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping, Sized
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from close_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

# (year, month) argument names the engines use for the close they run against
_PERIOD_ARGUMENTS = (
    ("through_year", "through_month"),
    ("period_year", "period_month"),
)


def _canonicalize(value: Any) -> str:
    """Stable text form of ``value``; mappings and dataclasses sort their keys."""
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case str():
            return value
        case int() | float() | Decimal():
            return str(value)
        case date():
            return value.isoformat()
        case Mapping():
            pairs = sorted(value.items())
        case list() | tuple():
            return "[" + ",".join(_canonicalize(item) for item in value) + "]"
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            pairs = sorted(
                (field.name, getattr(value, field.name))
                for field in dataclasses.fields(value)
            )
        case _:
            return str(value)
    return "{" + ",".join(f"{key}:{_canonicalize(item)}" for key, item in pairs) + "}"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hash the named arguments; an absent argument hashes the same as ``None``."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _close_period(arguments: Mapping[str, Any]) -> str | None:
    for year_arg, month_arg in _PERIOD_ARGUMENTS:
        year, month = arguments.get(year_arg), arguments.get(month_arg)
        if isinstance(year, int) and isinstance(month, int):
            return f"{year}-{month:02d}"
    return None


def _row_count(result: Any, rows: Callable[[Any], Sized] | None) -> int | None:
    if rows is not None:
        return len(rows(result))
    return len(result) if isinstance(result, Sized) else None


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    rows: Callable[[Any], Sized] | None = None,
) -> Callable:
    """Decorate a schedule engine so each call logs CLOSE_ENGINE_TRACE.

    ``fingerprint_fields`` names parameters, however they are passed, that
    feed the input fingerprint.  With none named the fingerprint is ``""``.

    ``rows`` picks the schedule rows out of a result that is not itself the
    row list, e.g. ``itemgetter(0)`` for a ``(rows, summary)`` pair.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed = time.monotonic() - started

            _logger.info(
                "CLOSE_ENGINE_TRACE",
                extra={
                    "trace_type": "CLOSE_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, bound.arguments)
                        if fingerprint_fields else ""
                    ),
                    "close_period": _close_period(bound.arguments),
                    "row_count": _row_count(result, rows),
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
