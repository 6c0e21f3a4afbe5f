"""Checkinbot exception taxonomy.

Every custom exception inherits from :class:`CheckinBotError`.  Most failure
modes of a check-in cycle are *not* exceptions at all — an unusable
credential, a transport failure, or an application-level rejection is
recovered locally and surfaced as a failed
:class:`~checkinbot.core.models.Outcome` plus a ``log`` event.  Exceptions
are reserved for the boundaries where something must actually unwind:

    Layer hierarchy
    ---------------
    CheckinBotError
    ├── ConfigError
    ├── TransportError
    └── OrchestratorError

Usage:

    from checkinbot.core.exceptions import TransportError

    raise TransportError("Connection refused", status_code=None) from exc
"""

from __future__ import annotations

import logging

__all__ = [
    "CheckinBotError",
    "ConfigError",
    "TransportError",
    "OrchestratorError",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class CheckinBotError(Exception):
    """Root exception for all Checkinbot errors.

    Catch this to handle any application-level error uniformly.  Prefer
    catching layer-specific subclasses wherever possible.
    """


# ---------------------------------------------------------------------------
# Config layer
# ---------------------------------------------------------------------------


class ConfigError(CheckinBotError):
    """Raised when the application configuration is invalid or incomplete.

    Examples:
        - An environment variable holds an out-of-range value
          (e.g. a negative inter-account delay).
        - A CLI override names an unknown log level.
    """


# ---------------------------------------------------------------------------
# Transport layer
# ---------------------------------------------------------------------------


class TransportError(CheckinBotError):
    """Raised inside the HTTP collaborator when no usable reply was received.

    Covers network errors, timeouts, non-2xx HTTP statuses, and bodies that
    are not JSON.  Never escapes
    :meth:`~checkinbot.client.http_client.CheckinClient.attempt`; it is
    converted to a :class:`~checkinbot.client.http_client.TransportFailure`
    marker at that boundary.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Transport error{detail}: {message}")


# ---------------------------------------------------------------------------
# Orchestrator layer
# ---------------------------------------------------------------------------


class OrchestratorError(CheckinBotError):
    """Raised for unrecoverable faults in the scheduling machinery itself.

    Examples:
        - :meth:`~checkinbot.orchestrator.scheduler.Scheduler.start` called
          while the bot is not idle.
        - The cycle runner or event bus raised mid-cycle; the scheduler has
          entered ``Error`` and the process must terminate non-zero.
    """
