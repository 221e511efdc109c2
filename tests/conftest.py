"""
Shared fixtures for the close schedule test suite.

- JSON logging is installed once per session at DEBUG.
- LogContext starts empty in every test.
- ``captured_logs`` collects what the ``close_kernel`` loggers emit during a
  test, parsed back from JSON.
- ``engine_settings`` is the schema default ``EngineSettings``.
"""

import json
import logging
from io import StringIO

import pytest

from close_config.schema import EngineSettings
from close_kernel.logging_config import (
    ROOT_LOGGER_NAME,
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


class LogCapture:
    """Parsed JSON records written while a test runs.

    Call it for every record, or ask for one event::

        def test_trace(captured_logs):
            generate_depreciation_schedule(asset, 2024, 12)
            (trace,) = captured_logs.events("CLOSE_ENGINE_TRACE")
    """

    def __init__(self) -> None:
        self.buffer = StringIO()
        self.handler = logging.StreamHandler(self.buffer)
        self.handler.setFormatter(StructuredFormatter())

    def __call__(self) -> list[dict]:
        return [json.loads(line) for line in self.buffer.getvalue().splitlines() if line]

    def events(self, message: str) -> list[dict]:
        return [record for record in self() if record["message"] == message]


@pytest.fixture(autouse=True, scope="session")
def _session_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    capture = LogCapture()
    close_logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved_level = close_logger.level
    close_logger.setLevel(logging.DEBUG)
    close_logger.addHandler(capture.handler)
    try:
        yield capture
    finally:
        close_logger.removeHandler(capture.handler)
        close_logger.setLevel(saved_level)


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Schema defaults, identical to close_config/defaults.yaml."""
    return EngineSettings()
