"""Event-derived status view for presentation.

:class:`StatusProjection` folds bus events into a single current
:class:`~checkinbot.core.models.StatusSnapshot`.  The fold is a pure
function of the ordered event stream: it never reads the clock or any other
ambient state (event timestamps travel inside the events), so two
projections fed the same events from process start reach identical
snapshots.

The snapshot is frozen and **replaced** on every fold, never edited in place.
Readers (the dashboard's render tick) may grab :attr:`StatusProjection.snapshot`
at any time without coordinating with publishers.  Each read is a deep copy,
so a reader editing the mappings inside its snapshot cannot reach the live
state.

Fold rules
----------
``statusUpdate``
    Overwrites ``bot_state`` / ``credential_count`` / ``next_cycle_at``;
    per-credential entries at or beyond the new count are dropped.
``credentialStatus``
    Sets ``per_credential[index]`` and ``masked_identifiers[index]``; marks
    the index ``pending`` if it has no result yet.
``checkinResult``
    Updates ``per_credential[index]`` (skips carry the gate verdict; attempts
    imply ``Valid``), ``last_result[index]``, and ``total_rewards``.
``cycleComplete``
    Sets ``last_cycle_at``.
``log``
    Appends to ``recent_logs``, keeping the newest ``log_history`` entries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from checkinbot.core.events import (
    BaseEvent,
    CheckinResult,
    CredentialStatus,
    CycleComplete,
    LogEvent,
    StatusUpdate,
)
from checkinbot.core.models import CheckinStatus, CredentialState, StatusSnapshot
from checkinbot.orchestrator.bus import EventBus, Subscription

__all__ = ["StatusProjection"]

logger = logging.getLogger(__name__)

_SKIP_STATES: dict[str, CredentialState] = {
    CredentialState.EXPIRED.value.lower(): CredentialState.EXPIRED,
    CredentialState.INVALID.value.lower(): CredentialState.INVALID,
}


def _result_status(event: CheckinResult) -> CheckinStatus:
    if event.skipped:
        return CheckinStatus.SKIPPED
    if not event.accepted:
        return CheckinStatus.FAILED
    if event.already_done:
        return CheckinStatus.DONE_TODAY
    return CheckinStatus.CHECKED


class StatusProjection:
    """Single-writer fold of bus events into a :class:`StatusSnapshot`.

    Args:
        log_history: Number of most recent ``log`` events kept.
    """

    def __init__(self, *, log_history: int = 100) -> None:
        if log_history < 1:
            raise ValueError(f"log_history must be ≥ 1, got {log_history!r}.")
        self._log_history = log_history
        self._snapshot = StatusSnapshot()

    @property
    def snapshot(self) -> StatusSnapshot:
        """A private copy of the current snapshot (safe to hold across folds)."""
        return self._snapshot.model_copy(deep=True)

    def attach(self, bus: EventBus) -> Subscription:
        """Subscribe :meth:`fold` to every event on *bus*."""
        return bus.subscribe(self.fold)

    @classmethod
    def replay(cls, stream: Iterable[BaseEvent], *, log_history: int = 100) -> StatusSnapshot:
        """Fold *stream* into a fresh projection and return the final snapshot."""
        projection = cls(log_history=log_history)
        for event in stream:
            projection.fold(event)
        return projection.snapshot

    def fold(self, event: BaseEvent) -> StatusSnapshot:
        """Apply *event* and return the new snapshot."""
        current = self._snapshot

        if isinstance(event, StatusUpdate):
            count = event.credential_count
            updated = current.model_copy(
                update={
                    "bot_state": event.bot_state,
                    "credential_count": count,
                    "next_cycle_at": event.next_cycle_at,
                    "per_credential": {
                        i: s for i, s in current.per_credential.items() if i < count
                    },
                    "masked_identifiers": {
                        i: m for i, m in current.masked_identifiers.items() if i < count
                    },
                    "last_result": {
                        i: r for i, r in current.last_result.items() if i < count
                    },
                }
            )
        elif isinstance(event, CredentialStatus):
            last_result = dict(current.last_result)
            last_result.setdefault(event.index, CheckinStatus.PENDING)
            updated = current.model_copy(
                update={
                    "per_credential": {**current.per_credential, event.index: event.state},
                    "masked_identifiers": {
                        **current.masked_identifiers,
                        event.index: event.masked_identifier,
                    },
                    "last_result": last_result,
                }
            )
        elif isinstance(event, CheckinResult):
            if event.skipped:
                state = _SKIP_STATES.get(event.detail.lower(), CredentialState.INVALID)
            else:
                state = CredentialState.VALID
            updated = current.model_copy(
                update={
                    "per_credential": {**current.per_credential, event.index: state},
                    "last_result": {
                        **current.last_result,
                        event.index: _result_status(event),
                    },
                    "total_rewards": current.total_rewards + event.reward_amount,
                }
            )
        elif isinstance(event, CycleComplete):
            updated = current.model_copy(update={"last_cycle_at": event.at})
        elif isinstance(event, LogEvent):
            entry = (event.at, str(event.level), event.message)
            logs = (*current.recent_logs, entry)[-self._log_history :]
            updated = current.model_copy(update={"recent_logs": logs})
        else:
            logger.debug("Ignoring unknown event type %s.", type(event).__name__)
            return self.snapshot

        self._snapshot = updated
        return self.snapshot
