"""Offline usability check for credentials.

A credential is a JWT whose payload carries an ``exp`` claim (seconds since
the epoch).  :class:`CredentialGate` decodes the payload **without verifying
the signature** — it has no key, and it only needs the validity window — so
an unusable credential can be skipped before any network attempt is spent
on it.

Verdicts:

* ``Invalid`` — empty, undecodable, or no finite numeric ``exp`` claim.
* ``Expired`` — ``now >= exp`` (the expiry instant itself counts as expired).
* ``Valid`` — otherwise.

:meth:`CredentialGate.evaluate` never raises.  Unusable credentials produce a
``warn`` or ``error`` log event naming the account number, never the
credential itself.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import jwt

from checkinbot.core.events import LogLevel
from checkinbot.core.models import CredentialState

if TYPE_CHECKING:
    from checkinbot.orchestrator.bus import EventBus

__all__ = ["CredentialGate", "Clock", "utcnow"]

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class CredentialGate:
    """Decide whether a credential is worth a remote attempt.

    Args:
        bus: Event bus receiving diagnostics for unusable credentials.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(self, bus: EventBus, clock: Clock = utcnow) -> None:
        self._bus = bus
        self._clock = clock

    def evaluate(self, credential: str | None, index: int | None = None) -> CredentialState:
        """Return the :class:`CredentialState` of *credential*.

        Args:
            credential: Raw credential string.
            index: Zero-based load index, used only to label diagnostics.
        """
        label = f"[Account {index + 1}]" if index is not None else "[Account ?]"

        if not credential:
            self._bus.log(LogLevel.WARN, f"{label} Provided token is empty.")
            return CredentialState.INVALID

        try:
            claims = jwt.decode(credential, options={"verify_signature": False})
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            logger.debug("%s token decode failed: %s", label, type(exc).__name__)
            self._bus.log(LogLevel.ERROR, f"{label} Failed to decode token: {exc}")
            return CredentialState.INVALID

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, int | float) or not math.isfinite(exp):
            self._bus.log(
                LogLevel.WARN, f"{label} Token decoded but lacks a valid 'exp' claim."
            )
            return CredentialState.INVALID

        if self._clock().timestamp() >= exp:
            self._bus.log(LogLevel.WARN, f"{label} Token is expired.")
            return CredentialState.EXPIRED

        return CredentialState.VALID
