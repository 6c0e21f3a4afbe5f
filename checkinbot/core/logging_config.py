"""Checkinbot logging configuration.

Call ``configure_logging()`` once at process startup (e.g. in ``__main__``).
Every other module must define its own logger at module scope:

    import logging
    logger = logging.getLogger(__name__)

Supported environment variables (read at call time):
    LOG_LEVEL   DEBUG | INFO | WARNING | ERROR   (default: INFO)
    LOG_FORMAT  text | json                      (default: text)

These stdlib records are the *operator* log.  The user-visible log is the
stream of ``log`` events on the event bus; :class:`LogEventBridge` mirrors
that stream into stdlib logging so headless runs lose nothing.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Protocol

from checkinbot.core import events
from checkinbot.core.events import EventKind, LogEvent, LogLevel

__all__ = [
    "configure_logging",
    "JsonFormatter",
    "CYCLE_ID_CTX",
    "CycleContextFilter",
    "LogEventBridge",
]

# ---------------------------------------------------------------------------
# Cycle-scoped context variable
# ---------------------------------------------------------------------------

#: Async-safe context variable that holds the current check-in cycle
#: identifier.  Set to a short hex string (``uuid4().hex[:8]``) for the
#: duration of :meth:`~checkinbot.orchestrator.cycle.CycleRunner.run_cycle`.
#: Defaults to ``"-"`` outside of any cycle (startup, teardown, tests).
CYCLE_ID_CTX: ContextVar[str] = ContextVar("cycle_id", default="-")

logger = logging.getLogger(__name__)

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_FORMATS = {"text", "json"}

# ``%(cycle_id)s`` is injected by :class:`CycleContextFilter`.
_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(cycle_id)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CycleContextFilter(logging.Filter):
    """Inject the current cycle ID into every log record.

    Installed on every handler by :func:`configure_logging`, so it runs just
    before formatting and the ``%(cycle_id)s`` token always resolves.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.cycle_id = CYCLE_ID_CTX.get("-")
        return True


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    *,
    force: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure the root logger for the entire process.

    Args:
        level: Logging level string (DEBUG/INFO/WARNING/ERROR/CRITICAL).
            Falls back to ``$LOG_LEVEL`` env var, then "INFO".
        fmt: Output format ("text" or "json").
            Falls back to ``$LOG_FORMAT`` env var, then "text".
        force: If True, reconfigure even if logging has already been set up.
        log_file: When given, records are appended to this file instead of
            being written to stderr.  Used while the dashboard owns the
            terminal.

    Raises:
        ValueError: If *level* or *fmt* contain an unrecognised value.
    """
    resolved_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    resolved_fmt = (fmt or os.environ.get("LOG_FORMAT", "text")).lower()

    if resolved_level not in _VALID_LEVELS:
        raise ValueError(
            f"Unknown LOG_LEVEL {resolved_level!r}. "
            f"Must be one of: {', '.join(sorted(_VALID_LEVELS))}"
        )
    if resolved_fmt not in _VALID_FORMATS:
        raise ValueError(
            f"Unknown LOG_FORMAT {resolved_fmt!r}. "
            f"Must be one of: {', '.join(sorted(_VALID_FORMATS))}"
        )

    root = logging.getLogger()

    if root.handlers and not force:
        # Already configured (e.g. by pytest's log_cli); only adjust the level.
        root.setLevel(resolved_level)
        return

    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved_level)
    handler.addFilter(CycleContextFilter())

    if resolved_fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=_TEXT_FORMAT, datefmt=_DATE_FORMAT))

    root.setLevel(resolved_level)
    root.addHandler(handler)

    # Quieten noisy third-party libraries to WARNING unless DEBUG is active.
    if resolved_level != "DEBUG":
        for noisy in ("httpx", "httpcore", "asyncio"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log record.

    Output shape (all fields always present)::

        {
            "ts":      "2026-10-18T12:34:56.789Z",
            "level":   "INFO",
            "logger":  "checkinbot.orchestrator.scheduler",
            "message": "Bot status changed to: Waiting",
            "extra":   {"cycle_id": "a3f2b1c0", "event": "BOT_STATE_CHANGE"}
        }

    Optional fields (present only when applicable)::

        "exc_info": "<traceback string>"
    """

    # Fields that belong to LogRecord but should NOT appear under "extra".
    _RECORD_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "taskName",
            "thread",
            "threadName",
        }
    )

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        """Serialise *record* to a JSON string."""
        record.message = record.getMessage()

        ts = (
            datetime.fromtimestamp(record.created, tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.")
            + f"{int(record.msecs):03d}Z"
        )

        payload: dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        payload["extra"] = {
            k: v for k, v in record.__dict__.items() if k not in self._RECORD_ATTRS
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exc_info"] = record.exc_text

        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        try:
            return json.dumps(payload, default=str)
        except Exception:  # pragma: no cover
            return json.dumps(
                {
                    "ts": ts,
                    "level": "ERROR",
                    "logger": __name__,
                    "message": "JsonFormatter serialisation error",
                    "exc_info": traceback.format_exc(),
                    "extra": {},
                }
            )


# ---------------------------------------------------------------------------
# Bus → stdlib bridge
# ---------------------------------------------------------------------------


class _Subscribable(Protocol):
    def subscribe(self, handler: Any, kinds: Any = None) -> Any: ...


_LEVEL_MAP: dict[LogLevel, int] = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WAIT: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogEventBridge:
    """Bus subscriber that mirrors ``log`` events into stdlib logging.

    Records go to the ``checkinbot.events`` logger with the original level
    tag preserved under ``extra.level_tag``.
    """

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logging.getLogger("checkinbot.events")

    def attach(self, bus: _Subscribable) -> Any:
        """Subscribe to ``log`` events on *bus*; returns the subscription."""
        return bus.subscribe(self, kinds={EventKind.LOG})

    def __call__(self, event: LogEvent) -> None:
        self._logger.log(
            _LEVEL_MAP[event.level],
            "%s",
            event.message,
            extra={"event": events.BUS_LOG, "level_tag": str(event.level)},
        )
