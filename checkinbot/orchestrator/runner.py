"""Process-level wiring: assemble all components and run the bot.

:func:`run_bot` is the top-level coroutine invoked by :mod:`checkinbot.__main__`.

Component wiring
----------------
1. An :class:`~checkinbot.orchestrator.bus.EventBus` is created and the
   presentation-side subscribers are attached first, so they observe every
   event from process start: the
   :class:`~checkinbot.orchestrator.projection.StatusProjection` and the
   :class:`~checkinbot.core.logging_config.LogEventBridge`.
2. The credential gate, outcome classifier, and
   :class:`~checkinbot.client.http_client.CheckinClient` are built from
   :class:`~checkinbot.core.settings.Settings`.
3. A :class:`~checkinbot.orchestrator.cycle.CycleRunner` and
   :class:`~checkinbot.orchestrator.scheduler.Scheduler` drive the cycles.
4. Optionally, a :class:`~checkinbot.dashboard.Dashboard` renders the
   projection until shutdown.

Shutdown
--------
``SIGINT`` and ``SIGTERM`` call :meth:`Scheduler.stop` — the timer is
disarmed and a final ``Idle`` ``statusUpdate`` is published.  The in-flight
attempt (if any) is awaited before the HTTP client closes.  An unrecoverable
fault surfaces here as :exc:`~checkinbot.core.exceptions.OrchestratorError`.

Typical usage::

    import asyncio
    from checkinbot.core.settings import Settings
    from checkinbot.orchestrator.runner import run_bot

    asyncio.run(run_bot(Settings(), show_dashboard=False))
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
import signal
from contextlib import AsyncExitStack

from checkinbot.client.classifier import OutcomeClassifier
from checkinbot.client.http_client import CheckinClient
from checkinbot.core.exceptions import OrchestratorError
from checkinbot.core.logging_config import LogEventBridge
from checkinbot.core.models import StatusSnapshot
from checkinbot.core.settings import Settings
from checkinbot.credentials.gate import CredentialGate
from checkinbot.credentials.loader import load_credentials
from checkinbot.orchestrator.bus import EventBus
from checkinbot.orchestrator.cycle import CycleRunner
from checkinbot.orchestrator.projection import StatusProjection
from checkinbot.orchestrator.scheduler import Scheduler

__all__ = ["run_bot"]

logger = logging.getLogger(__name__)

_STOP_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


async def run_bot(
    settings: Settings | None = None,
    *,
    once: bool = False,
    show_dashboard: bool = True,
    client: CheckinClient | None = None,
) -> StatusSnapshot:
    """Run the check-in bot until stopped (or after one cycle with *once*).

    Args:
        settings: Application settings.  Loaded from environment if ``None``.
        once: Run a single cycle, then stop.
        show_dashboard: Render the live terminal dashboard.
        client: Pre-built check-in client (tests inject one backed by
            :class:`httpx.MockTransport`).  Built from *settings* if ``None``.

    Returns:
        The final status snapshot.

    Raises:
        OrchestratorError: If the bot stopped because of an unrecoverable
            fault (the bot is in ``Error``).
    """
    if settings is None:
        settings = Settings()

    bus = EventBus()
    projection = StatusProjection(log_history=settings.log_history)
    projection.attach(bus)
    LogEventBridge().attach(bus)

    gate = CredentialGate(bus)
    classifier = OutcomeClassifier(bus)

    logger.info(
        "checkinbot starting — interval=%d ms delay=%d ms timeout=%d ms wallet=%s",
        settings.cycle_interval_ms,
        settings.account_delay_ms,
        settings.attempt_timeout_ms,
        settings.wallet_path,
    )

    async with AsyncExitStack() as stack:
        checkin_client = await stack.enter_async_context(
            client or CheckinClient.from_settings(settings)
        )
        runner = CycleRunner(
            bus,
            gate,
            classifier,
            checkin_client.attempt,
            account_delay_s=settings.account_delay_s,
        )
        scheduler = Scheduler(
            bus,
            runner,
            functools.partial(load_credentials, settings.wallet_path, bus),
            gate,
            interval_s=settings.cycle_interval_s,
        )

        loop = asyncio.get_running_loop()
        _received: list[str] = []

        def _request_stop(signame: str) -> None:
            if not _received:
                _received.append(signame)
                logger.info("Received %s — stopping.", signame)
            scheduler.stop()

        for sig in _STOP_SIGNALS:
            loop.add_signal_handler(sig, _request_stop, sig.name)

        dashboard = None
        dashboard_task: asyncio.Task[None] | None = None
        if show_dashboard:
            # Imported lazily so headless runs never touch the terminal toolkit.
            from checkinbot.dashboard import Dashboard  # noqa: PLC0415

            dashboard = Dashboard(projection, refresh_s=settings.dashboard_refresh_s)
            dashboard_task = asyncio.create_task(dashboard.run(), name="checkinbot-dashboard")

        try:
            await scheduler.start(once=once)
            await scheduler.wait_finished()
        finally:
            await scheduler.shutdown()
            if dashboard is not None and dashboard_task is not None:
                dashboard.close()
                await dashboard_task
            for sig in _STOP_SIGNALS:
                with contextlib.suppress(Exception):
                    loop.remove_signal_handler(sig)

    if scheduler.fault is not None:
        raise OrchestratorError(
            f"Bot halted by an unrecoverable fault: {scheduler.fault}"
        ) from scheduler.fault

    logger.info("checkinbot stopped (%s).", _received[0] if _received else "completed")
    return projection.snapshot
