"""Unit tests for the core layer: settings, domain models, and events.

Tests cover:
- ``Settings`` — defaults, env overrides, millisecond → second helpers,
  validator normalisation and rejection.
- ``Outcome`` — the reward invariant (no reward unless accepted and not
  already done).
- ``CredentialState.usable`` and ``StatusSnapshot`` defaults.
- Events — frozen, timestamped, and round-trippable through the
  discriminated ``Event`` union.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from checkinbot.core.events import (
    CheckinResult,
    CycleComplete,
    Event,
    EventKind,
    LogEvent,
    LogLevel,
    StatusUpdate,
)
from checkinbot.core.models import (
    BotState,
    CredentialState,
    Outcome,
    StatusSnapshot,
)
from checkinbot.core.settings import DEFAULT_USER_AGENT, Settings

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("clean_env")
class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.wallet_path == "wallet.txt"
        assert s.checkin_url.endswith("/api/taskwall/meme/sign")
        assert s.user_agent == DEFAULT_USER_AGENT
        assert s.cycle_interval_ms == 86_400_000
        assert s.account_delay_ms == 3_000
        assert s.attempt_timeout_ms == 15_000
        assert s.log_level == "INFO"
        assert s.log_format == "text"
        assert s.log_file == ""

    def test_second_helpers(self) -> None:
        s = Settings(cycle_interval_ms=90_000, account_delay_ms=250, attempt_timeout_ms=1_500)
        assert s.cycle_interval_s == 90.0
        assert s.account_delay_s == 0.25
        assert s.attempt_timeout_s == 1.5

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WALLET_PATH", "/tmp/tokens.txt")
        monkeypatch.setenv("ACCOUNT_DELAY_MS", "0")
        s = Settings()
        assert s.wallet_path == "/tmp/tokens.txt"
        assert s.account_delay_s == 0.0

    def test_log_level_normalised(self) -> None:
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_log_format_normalised(self) -> None:
        assert Settings(log_format="JSON").log_format == "json"

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_level="VERBOSE")

    def test_invalid_log_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(account_delay_ms=-1)

    def test_zero_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(cycle_interval_ms=0)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestOutcome:
    def test_accepted_with_reward(self) -> None:
        o = Outcome(accepted=True, reward_amount=10, detail="+10 points")
        assert o.reward_amount == 10
        assert not o.already_done

    def test_already_done_with_reward_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Outcome(accepted=True, already_done=True, reward_amount=5)

    def test_rejected_with_reward_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Outcome(accepted=False, reward_amount=5)

    def test_negative_reward_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Outcome(accepted=True, reward_amount=-1)

    def test_frozen(self) -> None:
        o = Outcome(accepted=False, detail="transport error")
        with pytest.raises(ValidationError):
            o.detail = "changed"  # type: ignore[misc]


class TestCredentialState:
    @pytest.mark.parametrize(
        ("state", "usable"),
        [
            (CredentialState.VALID, True),
            (CredentialState.EXPIRED, False),
            (CredentialState.INVALID, False),
            (CredentialState.UNKNOWN, False),
        ],
    )
    def test_usable(self, state: CredentialState, usable: bool) -> None:
        assert state.usable is usable


def test_snapshot_defaults() -> None:
    snap = StatusSnapshot()
    assert snap.bot_state is BotState.IDLE
    assert snap.credential_count == 0
    assert snap.next_cycle_at is None
    assert snap.recent_logs == ()


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEvents:
    def test_events_are_timestamped_in_utc(self) -> None:
        event = LogEvent(level=LogLevel.INFO, message="hello")
        assert event.at.tzinfo is not None
        assert event.at.utcoffset() == UTC.utcoffset(None)

    def test_events_are_frozen(self) -> None:
        event = CycleComplete(processed=1, total=1)
        with pytest.raises(ValidationError):
            event.total = 2  # type: ignore[misc]

    def test_kind_literals_match_event_kind(self) -> None:
        assert LogEvent(level=LogLevel.WARN, message="x").kind == EventKind.LOG
        assert CycleComplete(processed=0, total=0).kind == EventKind.CYCLE_COMPLETE
        assert (
            StatusUpdate(bot_state=BotState.IDLE, credential_count=0).kind
            == EventKind.STATUS_UPDATE
        )

    def test_discriminated_union_round_trip(self) -> None:
        adapter = TypeAdapter(Event)
        original = CheckinResult(
            index=2,
            accepted=True,
            detail="+10 points",
            reward_amount=10,
            at=datetime(2026, 10, 18, tzinfo=UTC),
        )
        restored = adapter.validate_json(original.model_dump_json())
        assert isinstance(restored, CheckinResult)
        assert restored == original

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CheckinResult(index=-1, accepted=False, detail="x")
