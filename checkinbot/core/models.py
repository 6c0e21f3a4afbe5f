"""Checkinbot core domain models.

This module defines the value types shared by the credential gate, the
outcome classifier, the orchestrator, and the status projection:

* :class:`CredentialState` — usability verdict for one credential.
* :class:`BotState` — lifecycle state owned by the scheduler.
* :class:`CheckinStatus` — per-credential result of the latest cycle.
* :class:`Outcome` — classified result of one remote check-in attempt.
* :class:`StatusSnapshot` — the derived view the dashboard renders from.

All models are **frozen**.  A snapshot is never edited in place; the
projection replaces it wholesale on every event, so readers can hold a
reference without coordination.

Typical usage::

    from checkinbot.core.models import Outcome

    outcome = Outcome(accepted=True, already_done=False, reward_amount=10,
                      detail="+10 points")
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "CredentialState",
    "BotState",
    "CheckinStatus",
    "Outcome",
    "StatusSnapshot",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CredentialState(StrEnum):
    """Usability of a credential as decided by the credential gate."""

    UNKNOWN = "Unknown"
    VALID = "Valid"
    EXPIRED = "Expired"
    INVALID = "Invalid"

    @property
    def usable(self) -> bool:
        return self is CredentialState.VALID


class BotState(StrEnum):
    """Scheduler lifecycle state.  Exactly one is active at any instant."""

    IDLE = "Idle"
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    WAITING = "Waiting"
    ERROR = "Error"


class CheckinStatus(StrEnum):
    """Per-credential result of the most recent cycle, for display."""

    PENDING = "pending"
    CHECKED = "checked"
    DONE_TODAY = "doneToday"
    FAILED = "failed"
    SKIPPED = "skipped"


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


class Outcome(BaseModel):
    """Classified result of one check-in attempt for one credential.

    Attributes:
        accepted: The remote service answered with its success code.
        already_done: The account had already checked in today.
        reward_amount: Points awarded by this attempt (non-negative).
        detail: Short human-readable description.

    Raises:
        pydantic.ValidationError: If ``already_done`` or ``not accepted``
            is combined with a non-zero reward.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    already_done: bool = False
    reward_amount: int = Field(default=0, ge=0)
    detail: str = ""

    @model_validator(mode="after")
    def _reward_only_when_earned(self) -> Outcome:
        if self.already_done and self.reward_amount != 0:
            raise ValueError("already_done outcome must carry reward_amount == 0")
        if not self.accepted and self.reward_amount != 0:
            raise ValueError("rejected outcome must carry reward_amount == 0")
        return self


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class StatusSnapshot(BaseModel):
    """Immutable view of bot and per-credential status.

    Built exclusively by
    :class:`~checkinbot.orchestrator.projection.StatusProjection` folding
    events; every field here is recoverable by replaying the event stream.

    Attributes:
        bot_state: Latest lifecycle state reported by the scheduler.
        credential_count: Number of loaded credentials.
        per_credential: Gate verdict per credential index.
        masked_identifiers: Display-safe identifier per credential index.
        last_result: Result of the latest attempt per credential index.
        next_cycle_at: When the next cycle is due; ``None`` unless waiting.
        last_cycle_at: Emission time of the latest ``cycleComplete`` event.
        total_rewards: Sum of rewards accepted since process start.
        recent_logs: Bounded tail of ``(at, level, message)`` log entries.
    """

    model_config = ConfigDict(frozen=True)

    bot_state: BotState = BotState.IDLE
    credential_count: int = 0
    per_credential: dict[int, CredentialState] = Field(default_factory=dict)
    masked_identifiers: dict[int, str] = Field(default_factory=dict)
    last_result: dict[int, CheckinStatus] = Field(default_factory=dict)
    next_cycle_at: datetime | None = None
    last_cycle_at: datetime | None = None
    total_rewards: int = 0
    recent_logs: tuple[tuple[datetime, str, str], ...] = ()
