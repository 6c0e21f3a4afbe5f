"""Smoke tests — verify the test harness itself is wired up correctly.

These tests assert nothing about business logic.  Their sole purpose is to
confirm:

1. pytest discovers and runs tests in this suite.
2. pytest-asyncio's ``asyncio_mode = "auto"`` setting works (async tests
   run without any decorator).
3. Core checkinbot modules import without errors.
4. ``configure_logging()`` executes without raising.
5. The exception taxonomy is importable and the hierarchy is intact.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest

from checkinbot.core import (
    CheckinBotError,
    ConfigError,
    JsonFormatter,
    OrchestratorError,
    TransportError,
    configure_logging,
)
from checkinbot.core.logging_config import CYCLE_ID_CTX

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Import & startup smoke
# ---------------------------------------------------------------------------


def test_core_imports_succeed() -> None:
    assert configure_logging is not None
    assert JsonFormatter is not None
    assert CheckinBotError is not None


def test_package_imports_succeed() -> None:
    import checkinbot.client  # noqa: F401, PLC0415
    import checkinbot.credentials  # noqa: F401, PLC0415
    import checkinbot.dashboard  # noqa: F401, PLC0415
    import checkinbot.orchestrator  # noqa: F401, PLC0415


def test_configure_logging_text() -> None:
    configure_logging(level="INFO", fmt="text", force=True)


def test_configure_logging_json() -> None:
    configure_logging(level="DEBUG", fmt="json", force=True)
    configure_logging(level="DEBUG", fmt="text", force=True)


def test_configure_logging_invalid_level() -> None:
    with pytest.raises(ValueError, match="Unknown LOG_LEVEL"):
        configure_logging(level="VERBOSE", force=True)


def test_configure_logging_invalid_format() -> None:
    with pytest.raises(ValueError, match="Unknown LOG_FORMAT"):
        configure_logging(fmt="xml", force=True)


def test_configure_logging_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "bot.log"
    configure_logging(level="INFO", fmt="text", force=True, log_file=str(log_file))
    logging.getLogger("tests.file").info("written to file")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")
    configure_logging(level="DEBUG", fmt="text", force=True)


def test_json_formatter_carries_cycle_id_and_extra() -> None:
    record = logging.LogRecord("checkinbot.test", logging.INFO, __file__, 1, "hello %s", ("x",), None)
    record.cycle_id = "abcd1234"
    record.event = "CYCLE_START"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello x"
    assert payload["extra"]["cycle_id"] == "abcd1234"
    assert payload["extra"]["event"] == "CYCLE_START"


def test_cycle_id_defaults_outside_cycle() -> None:
    assert CYCLE_ID_CTX.get() == "-"


# ---------------------------------------------------------------------------
# Exception taxonomy
# ---------------------------------------------------------------------------


def test_exception_hierarchy_base() -> None:
    for exc_class in (ConfigError, TransportError, OrchestratorError):
        assert issubclass(exc_class, CheckinBotError)


def test_transport_error_carries_status_code() -> None:
    exc = TransportError("Bad gateway", status_code=502)
    assert exc.status_code == 502
    assert "HTTP 502" in str(exc)

    assert TransportError("reset").status_code is None


# ---------------------------------------------------------------------------
# Async harness
# ---------------------------------------------------------------------------


async def test_async_test_runs() -> None:
    await asyncio.sleep(0)
    assert True
