"""
JSON-lines logging shared by the close packages.

Every record written through a ``close_kernel.*`` logger is rendered as one
JSON object per line.  The object always carries ``ts``, ``level``,
``logger`` and ``message``; on top of that it picks up

* whatever close context is currently bound (correlation, entity,
  instrument, period) via :class:`LogContext`,
* the ``extra=`` mapping passed at the call site,
* for records logged with ``exc_info``, the exception type, message and,
  for :class:`~close_kernel.exceptions.CloseKernelError`, its ``code`` and
  public attributes.

Money, dates, periods and enum tags are rendered as strings so a schedule
row logged as ``extra`` stays readable without custom decoding.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

ROOT_LOGGER_NAME = "close_kernel"

_CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "entity_id",
    "instrument_id",
    "period",
)

# One immutable snapshot per context; writers replace it, never mutate it.
_close_context: ContextVar[Mapping[str, str]] = ContextVar(
    "close_log_context", default={}
)


class LogContext:
    """Close-run fields stamped onto every log record in the current context."""

    @staticmethod
    def _merged(fields: Mapping[str, str | None]) -> dict[str, str]:
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        snapshot = dict(_close_context.get())
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        return snapshot

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        entity_id: str | None = None,
        instrument_id: str | None = None,
        period: str | None = None,
    ) -> None:
        """Overlay the given fields; ``None`` leaves a field as it was."""
        _close_context.set(cls._merged({
            "correlation_id": correlation_id,
            "entity_id": entity_id,
            "instrument_id": instrument_id,
            "period": period,
        }))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        snapshot = _close_context.get()
        return {name: snapshot[name] for name in _CONTEXT_FIELDS if name in snapshot}

    @classmethod
    def clear(cls) -> None:
        _close_context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Scope fields to a ``with`` block, restoring the prior snapshot on exit.

        Typically wrapped around one instrument's schedule::

            with LogContext.bind(instrument_id=asset_id, period="2024-12"):
                rows = generate_depreciation_schedule(asset, 2024, 12)
        """
        token = _close_context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _close_context.reset(token)


def _json_default(value: Any) -> Any:
    match value:
        case Decimal() | UUID():
            return str(value)
        case datetime() | date():
            return value.isoformat()
        case Enum():
            return value.value
        case _:
            # Period and other value objects render through __str__
            return str(value)


# Attribute names every LogRecord carries; anything else came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry.update(self._exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # CloseKernelError subclasses keep their context as plain attributes
        for attr, value in vars(exc).items():
            if attr != "code" and not attr.startswith("_"):
                fields[f"exc_{attr}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Return ``close_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_install_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``close_kernel`` logger.

    Only the first call has any effect until :func:`reset_logging` runs.
    ``handler`` wins over ``stream``; with neither, records go to stderr.
    """
    global _installed_handler
    with _install_lock:
        if _installed_handler is not None:
            return
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(target)
        _installed_handler = target


def reset_logging() -> None:
    """Detach the handler installed by :func:`configure_logging`. Test use only.

    Handlers attached by anyone else (pytest log capture, ``captured_logs``)
    are left in place.
    """
    global _installed_handler
    with _install_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        if _installed_handler is not None:
            root.removeHandler(_installed_handler)
            _installed_handler = None
        root.setLevel(logging.WARNING)
