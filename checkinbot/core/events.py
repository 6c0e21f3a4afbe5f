"""Event types published on the Checkinbot event bus.

The event set is **closed**: orchestration components publish only the kinds
defined here, and presentation subscribes only to these kinds.  Every event is
a frozen pydantic model carrying a ``kind`` discriminator and an emission
timestamp ``at``.  Events are never mutated after emission, and the status
projection derives all of its state from them, so the timestamp travels with
the event rather than being read from the clock at fold time.

Kinds
-----
``log``
    ``{level, message}`` — a user-visible message with a stable level.
``statusUpdate``
    ``{bot_state, credential_count, next_cycle_at}`` — lifecycle snapshot,
    published by the scheduler on every state transition.
``credentialStatus``
    ``{index, masked_identifier, state}`` — gate verdict for one credential.
``checkinResult``
    ``{index, accepted, detail, reward_amount, already_done, skipped}`` —
    one per credential per cycle.
``cycleComplete``
    ``{processed, total, aborted}`` — exactly one per cycle.

Usage example::

    from checkinbot.core.events import LogEvent, LogLevel

    bus.publish(LogEvent(level=LogLevel.WARN, message="No credentials loaded."))

The module also defines the ``event`` names attached to stdlib log records
via ``extra={"event": ...}`` so operator logs stay greppable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from checkinbot.core.models import BotState, CredentialState

__all__ = [
    "LogLevel",
    "EventKind",
    "BaseEvent",
    "LogEvent",
    "StatusUpdate",
    "CredentialStatus",
    "CheckinResult",
    "CycleComplete",
    "Event",
    # stdlib log record event names
    "CYCLE_START",
    "CYCLE_COMPLETE",
    "CYCLE_ABORT",
    "BOT_STATE_CHANGE",
    "BUS_LOG",
    "SUBSCRIBER_ERROR",
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LogLevel(StrEnum):
    """Stable severity tags presentation uses to style ``log`` events."""

    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"
    WAIT = "wait"


class EventKind(StrEnum):
    LOG = "log"
    STATUS_UPDATE = "statusUpdate"
    CREDENTIAL_STATUS = "credentialStatus"
    CHECKIN_RESULT = "checkinResult"
    CYCLE_COMPLETE = "cycleComplete"


# ---------------------------------------------------------------------------
# Event models
# ---------------------------------------------------------------------------


class BaseEvent(BaseModel):
    """Common shape of every event: frozen, timestamped."""

    model_config = ConfigDict(frozen=True)

    at: datetime = Field(default_factory=_utcnow)


class LogEvent(BaseEvent):
    kind: Literal["log"] = "log"
    level: LogLevel
    message: str


class StatusUpdate(BaseEvent):
    kind: Literal["statusUpdate"] = "statusUpdate"
    bot_state: BotState
    credential_count: int = Field(ge=0)
    next_cycle_at: datetime | None = None


class CredentialStatus(BaseEvent):
    kind: Literal["credentialStatus"] = "credentialStatus"
    index: int = Field(ge=0)
    masked_identifier: str
    state: CredentialState


class CheckinResult(BaseEvent):
    """Result of one cycle step.

    ``skipped`` marks a step short-circuited by the credential gate; no
    remote attempt was made and ``detail`` names the gate verdict.
    """

    kind: Literal["checkinResult"] = "checkinResult"
    index: int = Field(ge=0)
    accepted: bool
    detail: str
    reward_amount: int = Field(default=0, ge=0)
    already_done: bool = False
    skipped: bool = False


class CycleComplete(BaseEvent):
    kind: Literal["cycleComplete"] = "cycleComplete"
    processed: int = Field(ge=0)
    total: int = Field(ge=0)
    aborted: bool = False


Event = Annotated[
    LogEvent | StatusUpdate | CredentialStatus | CheckinResult | CycleComplete,
    Field(discriminator="kind"),
]

# ---------------------------------------------------------------------------
# stdlib log record event names
# ---------------------------------------------------------------------------

#: Emitted once at the start of every cycle.
CYCLE_START: str = "CYCLE_START"

#: Emitted once when a cycle finishes all of its credentials.
CYCLE_COMPLETE: str = "CYCLE_COMPLETE"

#: Emitted when a stop request ends a cycle early.
CYCLE_ABORT: str = "CYCLE_ABORT"

#: Emitted on every scheduler state transition.
BOT_STATE_CHANGE: str = "BOT_STATE_CHANGE"

#: Attached to stdlib records mirrored from bus ``log`` events.
BUS_LOG: str = "BUS_LOG"

#: A bus subscriber raised during delivery; delivery continued.
SUBSCRIBER_ERROR: str = "SUBSCRIBER_ERROR"
