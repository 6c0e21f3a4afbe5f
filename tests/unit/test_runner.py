"""End-to-end tests for process wiring: ``run_bot`` and the CLI entry-point.

``run_bot`` is exercised headless with a real wallet file and an
:class:`httpx.MockTransport`-backed client, so every component (loader, gate,
runner, classifier, scheduler, projection, log bridge) runs for real.

Tests cover:
- ``--once`` run over a mixed wallet → final snapshot, Idle, rewards summed.
- Missing wallet → empty cycle, still exits cleanly.
- Runner fault → ``OrchestratorError``.
- SIGINT during an open-ended run → Idle with no next cycle.
- ``main()`` exit codes for success, interrupts, configuration errors, and
  faults.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from checkinbot.__main__ import main
from checkinbot.client import CheckinClient
from checkinbot.core.exceptions import OrchestratorError
from checkinbot.core.models import BotState, CheckinStatus, CredentialState, StatusSnapshot
from checkinbot.core.settings import Settings
from checkinbot.orchestrator import runner as runner_module
from checkinbot.orchestrator.cycle import CycleRunner
from checkinbot.orchestrator.runner import run_bot

URL = "https://checkin.test/api/taskwall/meme/sign"


@pytest.fixture()
def live_tokens(make_token: Any) -> tuple[str, str]:
    """One token valid against the real clock, one long expired."""
    real_now = datetime.now(UTC)
    return (
        make_token(real_now + timedelta(days=1), sub="fresh"),
        make_token(real_now - timedelta(days=1), sub="stale"),
    )


@pytest.fixture()
def settings(clean_env: None, tmp_path: Path) -> Settings:
    return Settings(
        wallet_path=str(tmp_path / "wallet.txt"),
        checkin_url=URL,
        account_delay_ms=0,
        cycle_interval_ms=60_000,
    )


def _client(handler: Any) -> CheckinClient:
    return CheckinClient(url=URL, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# run_bot
# ---------------------------------------------------------------------------


class TestRunBot:
    async def test_once_over_mixed_wallet(
        self, settings: Settings, live_tokens: tuple[str, str]
    ) -> None:
        fresh, stale = live_tokens
        Path(settings.wallet_path).write_text(
            f"# accounts\n{fresh}\n\n{stale}\n", encoding="utf-8"
        )
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Token"])
            return httpx.Response(200, json={"code": 200, "debug": {"task": {"rewardPoint": 12}}})

        snapshot = await run_bot(settings, once=True, show_dashboard=False, client=_client(handler))

        assert isinstance(snapshot, StatusSnapshot)
        assert seen == [fresh]
        assert snapshot.bot_state is BotState.IDLE
        assert snapshot.credential_count == 2
        assert snapshot.per_credential == {0: CredentialState.VALID, 1: CredentialState.EXPIRED}
        assert snapshot.last_result == {0: CheckinStatus.CHECKED, 1: CheckinStatus.SKIPPED}
        assert snapshot.total_rewards == 12
        assert snapshot.last_cycle_at is not None
        assert snapshot.next_cycle_at is None

    async def test_missing_wallet_runs_empty_cycle(self, settings: Settings) -> None:
        handler = AsyncMock()
        snapshot = await run_bot(
            settings, once=True, show_dashboard=False, client=_client(handler)
        )

        handler.assert_not_called()
        assert snapshot.credential_count == 0
        assert snapshot.last_cycle_at is not None
        messages = [m for _, _, m in snapshot.recent_logs]
        assert any("Wallet file not found" in m for m in messages)

    async def test_transport_failure_recorded_as_failed(
        self, settings: Settings, live_tokens: tuple[str, str]
    ) -> None:
        Path(settings.wallet_path).write_text(live_tokens[0], encoding="utf-8")

        snapshot = await run_bot(
            settings,
            once=True,
            show_dashboard=False,
            client=_client(lambda request: httpx.Response(502, text="bad gateway")),
        )

        assert snapshot.last_result == {0: CheckinStatus.FAILED}
        assert snapshot.total_rewards == 0

    async def test_bus_logs_mirrored_to_stdlib(
        self, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="checkinbot.events"):
            await run_bot(
                settings,
                once=True,
                show_dashboard=False,
                client=_client(lambda request: httpx.Response(200, json={})),
            )
        messages = [r.getMessage() for r in caplog.records if r.name == "checkinbot.events"]
        assert "Starting check-in cycle..." in messages

    async def test_fault_raises_orchestrator_error(
        self,
        settings: Settings,
        live_tokens: tuple[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        Path(settings.wallet_path).write_text(live_tokens[0], encoding="utf-8")
        monkeypatch.setattr(
            CycleRunner, "run_cycle", AsyncMock(side_effect=RuntimeError("runner crashed"))
        )

        with pytest.raises(OrchestratorError, match="runner crashed"):
            await run_bot(
                settings,
                once=True,
                show_dashboard=False,
                client=_client(lambda request: httpx.Response(200, json={})),
            )

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal handlers")
    async def test_sigint_stops_interactive_run(
        self,
        settings: Settings,
        live_tokens: tuple[str, str],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        Path(settings.wallet_path).write_text(live_tokens[0], encoding="utf-8")
        loop = asyncio.get_running_loop()
        loop.call_later(0.3, os.kill, os.getpid(), signal.SIGINT)

        with caplog.at_level(logging.INFO, logger="checkinbot.orchestrator.runner"):
            snapshot = await asyncio.wait_for(
                run_bot(
                    settings,
                    show_dashboard=False,
                    client=_client(
                        lambda request: httpx.Response(
                            200, json={"code": 200, "debug": {"task": {"rewardPoint": 5}}}
                        )
                    ),
                ),
                timeout=5.0,
            )

        assert snapshot.bot_state is BotState.IDLE
        assert snapshot.next_cycle_at is None
        assert snapshot.last_result == {0: CheckinStatus.CHECKED}
        assert "checkinbot stopped (SIGINT)." in [r.getMessage() for r in caplog.records]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("clean_env")
class TestMain:
    def test_success_exits_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = AsyncMock(return_value=StatusSnapshot())
        monkeypatch.setattr(runner_module, "run_bot", fake)

        with pytest.raises(SystemExit) as exc_info:
            main(["--once", "--no-dashboard", "--wallet", "accounts.txt"])

        assert exc_info.value.code == 0
        settings = fake.await_args.args[0]
        assert settings.wallet_path == "accounts.txt"
        assert fake.await_args.kwargs == {"once": True, "show_dashboard": False}

    def test_invalid_log_level_exits_one(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--no-dashboard", "--log-level", "VERBOSE"])
        assert exc_info.value.code == 1

    def test_invalid_env_exits_one(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACCOUNT_DELAY_MS", "-5")
        with pytest.raises(SystemExit) as exc_info:
            main(["--no-dashboard"])
        assert exc_info.value.code == 1

    def test_fault_exits_one(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            runner_module, "run_bot", AsyncMock(side_effect=OrchestratorError("halted"))
        )
        with pytest.raises(SystemExit) as exc_info:
            main(["--once", "--no-dashboard"])
        assert exc_info.value.code == 1

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal handlers")
    def test_sigint_exits_zero(self, tmp_path: Path) -> None:
        timer = threading.Timer(0.5, os.kill, args=(os.getpid(), signal.SIGINT))
        timer.start()
        try:
            with pytest.raises(SystemExit) as exc_info:
                main(["--no-dashboard", "--wallet", str(tmp_path / "absent.txt")])
        finally:
            timer.cancel()

        assert exc_info.value.code == 0
