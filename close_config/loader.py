"""
Settings Loader (``close_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``EngineSettings``.  The single public entry point for runtime settings is
``close_config.get_engine_settings()``; this module is the parsing and
validation machinery behind it.

Invariants enforced
-------------------
* Unknown keys are rejected, never silently ignored.
* Month counts must be positive integers.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  settings identity and change detection.

Failure modes
-------------
* Missing file or malformed YAML  -> ``ConfigLoadError``.
* Unknown key, wrong type or out-of-range value  -> ``InvalidSettingError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from close_config.schema import MACRS_CLASS_TAGS, EngineSettings
from close_kernel.exceptions import ConfigLoadError, InvalidSettingError
from close_kernel.logging_config import get_logger

logger = get_logger("config.loader")

_MONTH_COUNT_KEYS = (
    "default_debt_term_months",
    "line_of_credit_horizon_months",
    "default_straight_line_tax_life_months",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigLoadError: if the file is missing, unreadable, not valid
            YAML, or its top level is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigLoadError(str(path), "file not found") from None
    except yaml.YAMLError as exc:
        raise ConfigLoadError(str(path), f"invalid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(str(path), "top level must be a mapping")
    return data


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a dict.

    Accepts either the settings keys at top level or nested under an
    ``engine_settings`` key.  Missing keys keep their schema defaults.
    """
    if "engine_settings" in data:
        data = data["engine_settings"] or {}
    if not isinstance(data, dict):
        raise InvalidSettingError("engine_settings", data, "must be a mapping")

    known = EngineSettings.field_names()
    for key in data:
        if key not in known:
            raise InvalidSettingError(key, data[key], "unknown setting")

    for key in _MONTH_COUNT_KEYS:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidSettingError(key, value, "must be an integer")
            if value <= 0:
                raise InvalidSettingError(key, value, "must be positive")

    if "bonus_remainder_macrs_class" in data:
        value = data["bonus_remainder_macrs_class"]
        if value not in MACRS_CLASS_TAGS:
            raise InvalidSettingError(
                "bonus_remainder_macrs_class",
                value,
                f"expected one of {', '.join(MACRS_CLASS_TAGS)}",
            )

    return EngineSettings(**data)


def load_settings(path: Path) -> EngineSettings:
    """Load and validate an ``EngineSettings`` YAML file."""
    settings = parse_settings(load_yaml_file(path))
    logger.debug(
        "settings_loaded",
        extra={"path": str(path), **settings.to_dict()},
    )
    return settings


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
