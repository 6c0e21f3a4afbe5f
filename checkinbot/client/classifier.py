"""Classify a raw check-in reply into an :class:`~checkinbot.core.models.Outcome`.

Decision table, evaluated in order:

1. No reply, a :class:`~checkinbot.client.http_client.TransportFailure`, or a
   malformed reply (not an object, no integer ``code``, non-integer or
   negative reward) → rejected, ``detail="transport error"``, ``error`` log.
2. ``code != 200`` → rejected, ``detail`` carries code and message,
   ``error`` log.
3. ``code == 200`` and reward > 0 → accepted, ``detail="+N points"``,
   ``success`` log.
4. ``code == 200`` and reward == 0 → accepted and already done,
   ``detail="already checked in"``, ``warn`` log.

The remote service reports "already checked in today" as a successful reply
with a zero reward, not as an error code, so row 4 is a success.

Reward location: ``debug.task.rewardPoint``, falling back to a top-level
``reward``; absent means 0.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

from checkinbot.client.http_client import TransportFailure
from checkinbot.core.events import LogLevel
from checkinbot.core.models import Outcome

if TYPE_CHECKING:
    from checkinbot.orchestrator.bus import EventBus

__all__ = ["OutcomeClassifier", "SUCCESS_CODE", "MalformedReply"]

logger = logging.getLogger(__name__)

#: Application-level success code carried in the reply's ``code`` field.
SUCCESS_CODE: Final[int] = 200

TRANSPORT_ERROR_DETAIL: Final[str] = "transport error"
ALREADY_DONE_DETAIL: Final[str] = "already checked in"


class MalformedReply(ValueError):
    """Internal: the reply does not have the expected shape."""


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _extract_reward(reply: Mapping[str, Any]) -> int:
    debug = reply.get("debug")
    task = debug.get("task") if isinstance(debug, Mapping) else None
    if isinstance(task, Mapping) and task.get("rewardPoint") is not None:
        reward = task["rewardPoint"]
    else:
        reward = reply.get("reward", 0)
        if reward is None:
            reward = 0

    if not _is_int(reward) or reward < 0:
        raise MalformedReply(f"unusable reward value {reward!r}")
    return reward


class OutcomeClassifier:
    """Turn collaborator replies into outcomes and user-visible log events.

    Args:
        bus: Event bus receiving one ``log`` event per classification.
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus

    def classify(self, reply: Any, index: int | None = None) -> Outcome:
        """Classify *reply* (a decoded JSON value or a transport marker)."""
        label = f"[Account {index + 1}]" if index is not None else "[Account ?]"

        if reply is None or isinstance(reply, TransportFailure):
            reason = reply.reason if reply is not None else "no reply received"
            return self._transport_error(label, reason)

        if not isinstance(reply, Mapping) or not _is_int(reply.get("code")):
            logger.debug("%s unexpected reply shape: %r", label, reply)
            return self._transport_error(label, "unexpected reply structure")

        code: int = reply["code"]
        message = reply.get("message") or "No message provided."

        if code != SUCCESS_CODE:
            self._bus.log(
                LogLevel.ERROR,
                f"{label} Check-in failed! API code: {code}, message: {message}",
            )
            return Outcome(accepted=False, detail=f"API error ({code}): {message}")

        try:
            reward = _extract_reward(reply)
        except MalformedReply as exc:
            return self._transport_error(label, str(exc))

        if reward > 0:
            self._bus.log(
                LogLevel.SUCCESS, f"{label} Check-in successful! Reward: {reward} points"
            )
            return Outcome(accepted=True, reward_amount=reward, detail=f"+{reward} points")

        self._bus.log(LogLevel.WARN, f"{label} Already checked in today.")
        return Outcome(accepted=True, already_done=True, detail=ALREADY_DONE_DETAIL)

    def _transport_error(self, label: str, reason: str) -> Outcome:
        self._bus.log(LogLevel.ERROR, f"{label} Request error during check-in: {reason}")
        return Outcome(accepted=False, detail=TRANSPORT_ERROR_DETAIL)
