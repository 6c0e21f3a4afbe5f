"""Shared pytest fixtures and configuration for the Checkinbot test suite.

This file is loaded automatically by pytest before any test module.
It provides project-wide fixtures used across the unit tests.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from pydantic_settings import SettingsConfigDict

from checkinbot.core import configure_logging
from checkinbot.core.events import BaseEvent
from checkinbot.core.settings import Settings
from checkinbot.orchestrator.bus import EventBus

#: Fixed instant used as "now" by every clock-injected test.
NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)

_SIGNING_KEY = "checkinbot-test-signing-key-0123456789"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _configure_test_logging() -> None:
    """Force DEBUG logging in text format for every test."""
    configure_logging(level="DEBUG", fmt="text", force=True)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove Checkinbot env vars and disable ``.env`` loading for one test."""
    prefixes = (
        "WALLET_",
        "CHECKIN_",
        "USER_AGENT",
        "CYCLE_",
        "ACCOUNT_",
        "ATTEMPT_",
        "DASHBOARD_",
        "LOG_",
    )
    for key in list(os.environ):
        if any(key.startswith(prefix) for prefix in prefixes):
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setattr(
        Settings,
        "model_config",
        SettingsConfigDict(
            env_file=None,
            env_file_encoding="utf-8",
            extra="ignore",
        ),
    )


# ---------------------------------------------------------------------------
# Event capture
# ---------------------------------------------------------------------------


class EventRecorder:
    """Bus subscriber that keeps every delivered event, in order."""

    def __init__(self) -> None:
        self.events: list[BaseEvent] = []

    def __call__(self, event: BaseEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> list[BaseEvent]:
        return [e for e in self.events if getattr(e, "kind", None) == kind]

    def logs(self, level: str | None = None) -> list[BaseEvent]:
        return [e for e in self.of_kind("log") if level is None or e.level == level]

    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def recorder(bus: EventBus) -> EventRecorder:
    rec = EventRecorder()
    bus.subscribe(rec)
    return rec


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def mint_token(exp: datetime | float | None, /, **claims: object) -> str:
    """Return an HS256 JWT whose payload carries *exp* (omitted when None)."""
    payload: dict[str, object] = dict(claims)
    if exp is not None:
        payload["exp"] = int(exp.timestamp()) if isinstance(exp, datetime) else exp
    return jwt.encode(payload, _SIGNING_KEY, algorithm="HS256")


@pytest.fixture()
def valid_token() -> str:
    return mint_token(NOW + timedelta(days=7), sub="account-1")


@pytest.fixture()
def expired_token() -> str:
    return mint_token(NOW - timedelta(days=1), sub="account-2")


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture()
def make_token() -> Callable[..., str]:
    return mint_token

