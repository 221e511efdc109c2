"""
close_config -- single public entrypoint for schedule engine settings.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_engine_settings()``.  Engines never read files or environment
    variables; callers resolve settings here and pass them in.

Failure modes:
    - ``ConfigLoadError`` -- settings file missing or not valid YAML.
    - ``InvalidSettingError`` -- unknown key or out-of-range value.

Audit relevance:
    Every successful ``get_engine_settings()`` call emits a
    ``CLOSE_CONFIG_TRACE`` log entry with the source path and checksum,
    tying generated schedules back to the defaults that governed them.
"""

from __future__ import annotations

from pathlib import Path

from close_config.loader import (
    compute_checksum,
    load_settings,
    load_yaml_file,
    parse_settings,
)
from close_config.schema import EngineSettings
from close_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_engine_settings(path: Path | None = None) -> EngineSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: YAML settings file.  Defaults to the bundled
            ``close_config/defaults.yaml``.

    Returns:
        Validated, frozen ``EngineSettings``.
    """
    source = path or DEFAULT_SETTINGS_PATH
    settings = load_settings(source)

    _logger.info(
        "CLOSE_CONFIG_TRACE",
        extra={
            "trace_type": "CLOSE_CONFIG_TRACE",
            "settings_path": str(source),
            "checksum": compute_checksum(settings.to_dict()),
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "compute_checksum",
    "get_engine_settings",
    "load_settings",
    "load_yaml_file",
    "parse_settings",
]
