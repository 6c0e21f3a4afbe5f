"""Single check-in cycle: gate → attempt → classify → publish, per credential.

:class:`CycleRunner` processes every loaded credential **once, in load
order**.  Order matters: the load index is the only stable identity the
dashboard correlates results with.  Credentials are processed serially with a
fixed pause between consecutive accounts (a rate-limit courtesy toward the
remote service); they are never processed in parallel.

For each credential the runner publishes, in order:

1. a ``credentialStatus`` event with the gate's verdict,
2. exactly one ``checkinResult`` event — either a *skip* (gate said
   ``Expired``/``Invalid``; no remote attempt is made) or the classified
   outcome of one remote attempt.

After the last credential (or after a stop request ends the cycle early) one
``cycleComplete`` event is published.  An empty credential set produces a
``warn`` log and an immediate ``cycleComplete``.

Per-credential failures never abort the cycle.  The runner does not
schedule anything; the scheduler decides what happens after a cycle.

Typical usage::

    runner = CycleRunner(bus, gate, classifier, client.attempt,
                         account_delay_s=settings.account_delay_s)
    report = await runner.run_cycle(credentials, cancel=stop_event)
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from checkinbot.client.classifier import OutcomeClassifier
from checkinbot.client.http_client import TransportFailure
from checkinbot.core import events
from checkinbot.core.events import CheckinResult, CredentialStatus, CycleComplete, LogLevel
from checkinbot.core.logging_config import CYCLE_ID_CTX
from checkinbot.credentials.gate import CredentialGate
from checkinbot.credentials.loader import mask_credential
from checkinbot.orchestrator.bus import EventBus

__all__ = ["AttemptFn", "CycleReport", "CycleRunner"]

logger = logging.getLogger(__name__)

#: Remote-attempt collaborator: returns a decoded reply or a TransportFailure.
AttemptFn = Callable[[str], Awaitable[Any]]


@dataclass
class CycleReport:
    """Counters for one cycle.

    Attributes:
        total: Credentials handed to the cycle.
        processed: Credentials that produced a ``checkinResult``.
        accepted: Attempts that earned a reward.
        already_done: Attempts answered with "already checked in".
        failed: Attempts rejected or lost to transport errors.
        skipped: Credentials short-circuited by the gate.
        rewards: Sum of rewards earned.
        aborted: ``True`` when a stop request ended the cycle early.
        duration_s: Wall-clock duration of the cycle.
    """

    total: int
    processed: int = 0
    accepted: int = 0
    already_done: int = 0
    failed: int = 0
    skipped: int = 0
    rewards: int = 0
    aborted: bool = False
    duration_s: float = 0.0

    def format_cycle_report(self) -> str:
        status = "ABORTED" if self.aborted else "complete"
        return (
            f"Cycle {status} in {self.duration_s:.1f}s — "
            f"{self.processed}/{self.total} processed | "
            f"accepted={self.accepted} already_done={self.already_done} "
            f"failed={self.failed} skipped={self.skipped} rewards={self.rewards}"
        )


class CycleRunner:
    """Drives one pass over the credential set.

    Args:
        bus: Event bus receiving every step's events.
        gate: Offline credential usability check.
        classifier: Turns raw replies into outcomes.
        attempt: Remote-attempt collaborator.
        account_delay_s: Pause between consecutive accounts, in seconds.
    """

    def __init__(
        self,
        bus: EventBus,
        gate: CredentialGate,
        classifier: OutcomeClassifier,
        attempt: AttemptFn,
        *,
        account_delay_s: float = 3.0,
    ) -> None:
        if account_delay_s < 0:
            raise ValueError(f"account_delay_s must be ≥ 0, got {account_delay_s!r}.")
        self._bus = bus
        self._gate = gate
        self._classifier = classifier
        self._attempt = attempt
        self._account_delay_s = account_delay_s

    async def run_cycle(
        self,
        credentials: Sequence[str],
        cancel: asyncio.Event | None = None,
    ) -> CycleReport:
        """Process every credential once and publish the results.

        Args:
            credentials: Credentials in load order.
            cancel: Set by the scheduler's stop; observed at every
                inter-account pause.  An attempt already in flight is
                allowed to finish.

        Returns:
            A :class:`CycleReport` summarising the cycle.
        """
        token = CYCLE_ID_CTX.set(uuid.uuid4().hex[:8])
        t0 = time.monotonic()
        report = CycleReport(total=len(credentials))
        try:
            logger.info(
                "Cycle starting — %d credential(s).",
                report.total,
                extra={"event": events.CYCLE_START},
            )
            self._bus.log(LogLevel.INFO, "Starting check-in cycle...")

            if not credentials:
                self._bus.log(LogLevel.WARN, "No tokens loaded, skipping check-in cycle.")
            else:
                self._bus.log(LogLevel.INFO, f"Processing {report.total} account(s)...")
                await self._process_all(credentials, cancel, report)

            report.duration_s = time.monotonic() - t0
            self._bus.publish(
                CycleComplete(
                    processed=report.processed,
                    total=report.total,
                    aborted=report.aborted,
                )
            )
            if report.aborted:
                logger.info(
                    "%s", report.format_cycle_report(), extra={"event": events.CYCLE_ABORT}
                )
                self._bus.log(LogLevel.WARN, "Check-in cycle stopped early.")
            else:
                logger.info(
                    "%s", report.format_cycle_report(), extra={"event": events.CYCLE_COMPLETE}
                )
                self._bus.log(LogLevel.INFO, "Check-in cycle finished.")
            return report
        finally:
            CYCLE_ID_CTX.reset(token)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _process_all(
        self,
        credentials: Sequence[str],
        cancel: asyncio.Event | None,
        report: CycleReport,
    ) -> None:
        last = len(credentials) - 1
        for index, credential in enumerate(credentials):
            if cancel is not None and cancel.is_set():
                report.aborted = True
                return

            await self._process_one(index, credential, report)

            if index < last:
                self._bus.log(
                    LogLevel.INFO,
                    f"Waiting {self._account_delay_s:g}s before next account...",
                )
                if await self._pause(cancel):
                    report.aborted = True
                    return

    async def _process_one(self, index: int, credential: str, report: CycleReport) -> None:
        masked = mask_credential(credential)
        self._bus.log(LogLevel.INFO, f"--- Processing Account {index + 1} ({masked}) ---")

        state = self._gate.evaluate(credential, index)
        self._bus.publish(CredentialStatus(index=index, masked_identifier=masked, state=state))

        if not state.usable:
            self._bus.log(
                LogLevel.ERROR,
                f"[Account {index + 1}] Token is {state.value.lower()}. Skipping.",
            )
            self._bus.publish(
                CheckinResult(
                    index=index,
                    accepted=False,
                    detail=state.value.lower(),
                    skipped=True,
                )
            )
            report.processed += 1
            report.skipped += 1
            return

        self._bus.log(LogLevel.INFO, f"[Account {index + 1}] Attempting check-in...")
        try:
            reply = await self._attempt(credential)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Attempt collaborator raised for account %d; treating as transport failure.",
                index + 1,
                exc_info=True,
            )
            reply = TransportFailure(reason=f"{type(exc).__name__}: {exc}")

        outcome = self._classifier.classify(reply, index)
        self._bus.publish(
            CheckinResult(
                index=index,
                accepted=outcome.accepted,
                detail=outcome.detail,
                reward_amount=outcome.reward_amount,
                already_done=outcome.already_done,
            )
        )

        report.processed += 1
        report.rewards += outcome.reward_amount
        if not outcome.accepted:
            report.failed += 1
        elif outcome.already_done:
            report.already_done += 1
        else:
            report.accepted += 1

    async def _pause(self, cancel: asyncio.Event | None) -> bool:
        """Wait the inter-account delay.  Returns ``True`` if stopped meanwhile."""
        if cancel is None:
            await asyncio.sleep(self._account_delay_s)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self._account_delay_s)
        except TimeoutError:
            return False
        return True
