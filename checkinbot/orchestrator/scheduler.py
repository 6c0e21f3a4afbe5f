"""Bot lifecycle state machine and cycle timer.

:class:`Scheduler` is the **sole writer** of :class:`~checkinbot.core.models.BotState`.
Every transition publishes a ``statusUpdate`` event carrying the lifecycle
fields of the snapshot (``bot_state``, ``credential_count``,
``next_cycle_at``) followed by an ``info`` log line.

State machine
~~~~~~~~~~~~~
::

    Idle ──start──▶ Initializing ──▶ Running ──cycle ends──▶ Waiting
                                        ▲                        │
                                        └──────timer fires───────┘

    any state ──stop──▶ Idle            any state ──fault──▶ Error

* Entering ``Waiting`` sets ``next_cycle_at = now + interval`` and arms a
  one-shot timer (``loop.call_later``).  Arming always disarms the previous
  timer first, so at most one timer is ever pending.
* The timer is armed only after the previous cycle has fully completed, so
  two cycles can never overlap; no lock is needed.
* :meth:`Scheduler.stop` disarms the timer, clears ``next_cycle_at``, sets
  the cancel event observed by the cycle runner's inter-account pause, and
  moves to ``Idle``.  It is idempotent and a no-op from ``Idle``.  An attempt
  already in flight finishes, but its cycle never moves the bot back to
  ``Running`` or ``Waiting``.
* Any exception escaping the cycle runner (or the loader, or the bus) is an
  unrecoverable fault: the bot enters ``Error``, publishes an ``error`` log,
  and :meth:`Scheduler.wait_finished` returns so the process can exit
  non-zero.  ``Error`` cannot be restarted within the same process.

Typical usage::

    scheduler = Scheduler(bus, runner, load, gate, interval_s=settings.cycle_interval_s)
    await scheduler.start()
    await scheduler.wait_finished()
    await scheduler.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from checkinbot.core import events
from checkinbot.core.events import CredentialStatus, LogLevel, StatusUpdate
from checkinbot.core.exceptions import OrchestratorError
from checkinbot.core.models import BotState
from checkinbot.credentials.gate import Clock, CredentialGate, utcnow
from checkinbot.credentials.loader import mask_credential
from checkinbot.orchestrator.bus import EventBus
from checkinbot.orchestrator.cycle import CycleReport, CycleRunner

__all__ = ["Scheduler", "CredentialSource", "DEFAULT_INTERVAL_S"]

logger = logging.getLogger(__name__)

#: 24 hours.
DEFAULT_INTERVAL_S: float = 24 * 60 * 60

#: Loads the ordered credential set; must not raise.
CredentialSource = Callable[[], Sequence[str]]


class Scheduler:
    """Owns bot state, the cycle timer, and the loaded credential set.

    Args:
        bus: Event bus receiving lifecycle events.
        runner: Executes one cycle.
        load_credentials: Credential source, called at start (and, while the
            loaded set is empty, before each timer-fired cycle).
        gate: Used for the start-up ``credentialStatus`` report.
        interval_s: Delay between the end of one cycle and the next.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        bus: EventBus,
        runner: CycleRunner,
        load_credentials: CredentialSource,
        gate: CredentialGate,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
        clock: Clock = utcnow,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s!r}.")
        self._bus = bus
        self._runner = runner
        self._load_credentials = load_credentials
        self._gate = gate
        self._interval_s = interval_s
        self._clock = clock

        self._state = BotState.IDLE
        self._credentials: tuple[str, ...] = ()
        self._next_cycle_at: datetime | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._cycle_task: asyncio.Task[CycleReport | None] | None = None
        self._cancel = asyncio.Event()
        self._finished = asyncio.Event()
        self._once = False
        self._fault: BaseException | None = None
        self._last_report: CycleReport | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> BotState:
        return self._state

    @property
    def next_cycle_at(self) -> datetime | None:
        return self._next_cycle_at

    @property
    def credential_count(self) -> int:
        return len(self._credentials)

    @property
    def pending_timer_count(self) -> int:
        """Number of armed cycle timers (0 or 1)."""
        return 0 if self._timer is None or self._timer.cancelled() else 1

    @property
    def fault(self) -> BaseException | None:
        """The unrecoverable fault that moved the bot to ``Error``, if any."""
        return self._fault

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self, *, once: bool = False) -> None:
        """Load credentials and run the first cycle immediately.

        Returns once the first cycle has completed and (unless *once*) the
        next one is scheduled.

        Args:
            once: Stop after the first cycle instead of scheduling another.

        Raises:
            OrchestratorError: If the bot is not ``Idle`` or has faulted.
        """
        if self._fault is not None:
            raise OrchestratorError("Bot has faulted; restart the process to run again.")
        if self._state is not BotState.IDLE:
            raise OrchestratorError(f"start() requires Idle, bot is {self._state}.")

        # A cycle interrupted by a previous stop may still be finishing its
        # in-flight attempt; never let two cycles overlap.
        if self._cycle_task is not None and not self._cycle_task.done():
            await self._cycle_task
            if self._fault is not None or self._state is not BotState.IDLE:
                raise OrchestratorError(
                    f"start() requires Idle, bot is {self._state}."
                )

        self._cancel = asyncio.Event()
        self._finished = asyncio.Event()
        self._once = once

        self._bus.log(LogLevel.INFO, "Initializing check-in bot...")
        self._transition(BotState.INITIALIZING)
        try:
            self._load()
        except Exception as exc:
            self._fail(exc)
            return

        if self._credentials:
            self._bus.log(LogLevel.INFO, "Ready to start first check-in cycle.")
        else:
            self._bus.log(
                LogLevel.WARN,
                "No valid tokens loaded. The bot will wait and retry loading on the next cycle.",
            )
        self._cycle_task = asyncio.create_task(self._run_cycle(), name="checkinbot-cycle")
        await self._cycle_task

    def stop(self) -> None:
        """Disarm the timer, clear ``next_cycle_at``, and move to ``Idle``.

        Safe to call from any state, any number of times.
        """
        self._cancel.set()
        had_timer = self._disarm_timer()
        self._next_cycle_at = None

        if self._state is not BotState.IDLE:
            self._transition(BotState.IDLE)
            if had_timer:
                self._bus.log(LogLevel.INFO, "Bot scheduling stopped.")
        self._finished.set()

    async def wait_finished(self) -> None:
        """Block until :meth:`stop` is called or the bot faults."""
        await self._finished.wait()

    async def shutdown(self) -> None:
        """Stop, then wait for any in-flight cycle to wind down.

        A faulted bot is left in ``Error`` so the process exits non-zero.
        """
        if self._fault is None:
            self.stop()
        task = self._cycle_task
        if task is not None and not task.done():
            logger.debug("Waiting for the in-flight cycle to finish.")
            await task
        if self._last_report is not None:
            logger.info("Last cycle: %s", self._last_report.format_cycle_report())

    # ------------------------------------------------------------------
    # Cycle execution
    # ------------------------------------------------------------------

    async def _run_cycle(self, *, reload: bool = False) -> CycleReport | None:
        # Bound to this cycle; a later start() installs a fresh event.
        cancel = self._cancel
        if cancel.is_set():
            return None
        try:
            if reload:
                self._bus.log(LogLevel.INFO, "Retrying credential load...")
                self._load()

            self._next_cycle_at = None
            self._transition(BotState.RUNNING)
            report = await self._runner.run_cycle(self._credentials, cancel)
            self._last_report = report

            if cancel.is_set():
                logger.info("Cycle ended after a stop request; not rescheduling.")
                return report
            if self._once:
                self.stop()
                return report

            self._schedule_next()
            return report
        except Exception as exc:
            self._fail(exc)
            return None

    def _load(self) -> None:
        self._credentials = tuple(self._load_credentials())
        self._publish_status()
        for index, credential in enumerate(self._credentials):
            self._bus.publish(
                CredentialStatus(
                    index=index,
                    masked_identifier=mask_credential(credential),
                    state=self._gate.evaluate(credential, index),
                )
            )

    def _schedule_next(self) -> None:
        self._next_cycle_at = self._clock() + timedelta(seconds=self._interval_s)
        self._transition(BotState.WAITING)
        self._bus.log(
            LogLevel.WAIT,
            "Scheduling next check-in cycle for: "
            f"{self._next_cycle_at.astimezone():%Y-%m-%d %H:%M:%S}",
        )
        self._arm_timer(self._interval_s)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _arm_timer(self, delay_s: float) -> None:
        self._disarm_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay_s, self._on_timer)
        logger.debug("Cycle timer armed for %.0f s.", delay_s)

    def _disarm_timer(self) -> bool:
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        logger.debug("Cycle timer disarmed.")
        return True

    def _on_timer(self) -> None:
        self._timer = None
        if self._cancel.is_set() or self._state is not BotState.WAITING:
            return
        self._cycle_task = asyncio.create_task(
            self._run_cycle(reload=not self._credentials),
            name="checkinbot-cycle",
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _transition(self, new_state: BotState) -> None:
        old_state = self._state
        self._state = new_state
        logger.info(
            "Bot state %s → %s",
            old_state,
            new_state,
            extra={"event": events.BOT_STATE_CHANGE},
        )
        self._publish_status()
        self._bus.log(LogLevel.INFO, f"Bot status changed to: {new_state}")

    def _publish_status(self) -> None:
        self._bus.publish(
            StatusUpdate(
                bot_state=self._state,
                credential_count=len(self._credentials),
                next_cycle_at=self._next_cycle_at,
            )
        )

    def _fail(self, exc: Exception) -> None:
        logger.error("Unrecoverable orchestration fault: %s", exc, exc_info=exc)
        self._fault = exc
        self._cancel.set()
        self._disarm_timer()
        self._next_cycle_at = None
        try:
            self._transition(BotState.ERROR)
            self._bus.log(LogLevel.ERROR, f"Unrecoverable fault: {exc}. Bot halted.")
        except Exception:
            logger.exception("Could not publish the Error state.")
        self._finished.set()
