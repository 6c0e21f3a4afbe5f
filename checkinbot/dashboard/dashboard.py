"""Terminal dashboard rendered with :mod:`rich`.

The dashboard is a pure reader of
:attr:`~checkinbot.orchestrator.projection.StatusProjection.snapshot`.  It
re-renders on a fixed tick (``dashboard_refresh_s``) only so the countdown
moves smoothly; the countdown itself is computed from the snapshot's
``next_cycle_at`` and the wall clock and is never fed back anywhere.

Layout::

    ┌──────────────── banner ────────────────┐
    │ main log (recent log   │ status        │
    │ events, level glyphs)  ├───────────────┤
    │                        │ success log   │
    └────────────────────────┴───────────────┘
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from checkinbot.core.events import LogLevel
from checkinbot.core.models import BotState, CheckinStatus, CredentialState, StatusSnapshot
from checkinbot.credentials.gate import Clock, utcnow
from checkinbot.orchestrator.projection import StatusProjection

__all__ = ["Dashboard", "format_remaining", "render_snapshot"]

logger = logging.getLogger(__name__)

TITLE = "CHECKINBOT — DAILY AUTO CHECK-IN"

_LEVEL_STYLE: dict[str, tuple[str, str]] = {
    LogLevel.INFO: ("ℹ", "blue"),
    LogLevel.SUCCESS: ("✔", "green"),
    LogLevel.WARN: ("⚠", "yellow"),
    LogLevel.ERROR: ("✖", "red"),
    LogLevel.WAIT: ("⌛", "cyan"),
}

_STATE_STYLE: dict[BotState, str] = {
    BotState.IDLE: "grey50",
    BotState.INITIALIZING: "cyan",
    BotState.RUNNING: "bold green",
    BotState.WAITING: "yellow",
    BotState.ERROR: "bold red",
}

_CREDENTIAL_STYLE: dict[CredentialState, str] = {
    CredentialState.VALID: "green",
    CredentialState.EXPIRED: "red",
    CredentialState.INVALID: "red",
    CredentialState.UNKNOWN: "white",
}

_RESULT_LABEL: dict[CheckinStatus, tuple[str, str]] = {
    CheckinStatus.PENDING: ("pending", "grey50"),
    CheckinStatus.CHECKED: ("Checked ✔", "green"),
    CheckinStatus.DONE_TODAY: ("Done today ⚠", "yellow"),
    CheckinStatus.FAILED: ("Failed ✖", "red"),
    CheckinStatus.SKIPPED: ("Skipped ✖", "red"),
}

_ALREADY_DONE_MARKER = "already checked in"


def format_remaining(total_seconds: float) -> str:
    """Format a countdown like ``1h 5m 10s``; ``Now`` when due."""
    seconds = int(total_seconds)
    if seconds <= 0:
        return "Now"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def _status_panel(snapshot: StatusSnapshot, now: datetime) -> Panel:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()

    table.add_row(
        "Bot Status:",
        Text(str(snapshot.bot_state), style=_STATE_STYLE[snapshot.bot_state]),
    )
    table.add_row("Tokens Loaded:", str(snapshot.credential_count))
    table.add_row("Total Rewards:", f"{snapshot.total_rewards} points")

    if snapshot.bot_state is BotState.WAITING and snapshot.next_cycle_at is not None:
        remaining = (snapshot.next_cycle_at - now).total_seconds()
        table.add_row("Next Check-in:", Text(format_remaining(remaining), style="yellow"))
    else:
        table.add_row("Next Check-in:", Text("N/A", style="grey50"))

    accounts = Table.grid(padding=(0, 1))
    for index in sorted(snapshot.per_credential):
        state = snapshot.per_credential[index]
        label, style = _RESULT_LABEL[snapshot.last_result.get(index, CheckinStatus.PENDING)]
        accounts.add_row(
            f"Key {index + 1}:",
            snapshot.masked_identifiers.get(index, "***"),
            Text(str(state), style=_CREDENTIAL_STYLE[state]),
            Text(label, style=style),
        )

    return Panel(Group(table, accounts), title="Status", border_style="magenta")


def _log_line(at: datetime, level: str, message: str) -> Text:
    glyph, style = _LEVEL_STYLE.get(level, ("", "white"))
    line = Text(f"[{at.astimezone():%H:%M:%S}] ", style="grey50")
    line.append(f"{glyph} {message}", style=style)
    return line


def _log_panel(snapshot: StatusSnapshot, limit: int | None = None) -> Panel:
    entries = snapshot.recent_logs if limit is None else snapshot.recent_logs[-limit:]
    lines = [_log_line(*entry) for entry in entries]
    return Panel(Group(*lines), title="Main Log", border_style="cyan")


def _success_panel(snapshot: StatusSnapshot) -> Panel:
    lines = [
        _log_line(at, level, message)
        for at, level, message in snapshot.recent_logs
        if level == LogLevel.SUCCESS
        or (level == LogLevel.WARN and _ALREADY_DONE_MARKER in message.lower())
    ]
    return Panel(Group(*lines), title="Success Log", border_style="green")


def render_snapshot(snapshot: StatusSnapshot, now: datetime) -> RenderableType:
    """Build the full dashboard renderable for *snapshot* at time *now*."""
    layout = Layout()
    layout.split_column(
        Layout(Panel(Text(TITLE, justify="center", style="bold bright_blue")), size=3),
        Layout(name="body"),
    )
    layout["body"].split_row(
        Layout(_log_panel(snapshot), ratio=65),
        Layout(name="side", ratio=35),
    )
    layout["body"]["side"].split_column(
        Layout(_status_panel(snapshot, now)),
        Layout(_success_panel(snapshot)),
    )
    return layout


class Dashboard:
    """Live terminal view over a :class:`StatusProjection`.

    Args:
        projection: Source of snapshots.
        refresh_s: Seconds between re-renders.
        console: Rich console to draw on; a full-screen stdout console by
            default.
        clock: Wall clock for the countdown.
    """

    def __init__(
        self,
        projection: StatusProjection,
        *,
        refresh_s: float = 1.0,
        console: Console | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._projection = projection
        self._refresh_s = refresh_s
        self._console = console or Console()
        self._clock = clock
        self._closed = asyncio.Event()

    def render(self) -> RenderableType:
        return render_snapshot(self._projection.snapshot, self._clock())

    def close(self) -> None:
        """Ask :meth:`run` to draw a final frame and return."""
        self._closed.set()

    async def run(self) -> None:
        """Redraw every ``refresh_s`` seconds until :meth:`close` is called."""
        logger.debug("Dashboard started (refresh=%.2fs).", self._refresh_s)
        with Live(
            self.render(),
            console=self._console,
            auto_refresh=False,
            screen=True,
            transient=True,
        ) as live:
            while not self._closed.is_set():
                live.update(self.render(), refresh=True)
                try:
                    await asyncio.wait_for(self._closed.wait(), timeout=self._refresh_s)
                except TimeoutError:
                    continue
            live.update(self.render(), refresh=True)
        self._console.print(_log_panel(self._projection.snapshot, limit=20))
        logger.debug("Dashboard closed.")
