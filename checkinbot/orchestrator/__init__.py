"""Event bus, cycle runner, scheduler state machine, and status projection.

Public API
----------
* :class:`~checkinbot.orchestrator.bus.EventBus` — ordered synchronous
  publish/subscribe channel between orchestration and presentation.
* :class:`~checkinbot.orchestrator.cycle.CycleRunner` — one serial pass over
  every credential.
* :class:`~checkinbot.orchestrator.scheduler.Scheduler` — bot lifecycle
  state machine and cycle timer.
* :class:`~checkinbot.orchestrator.projection.StatusProjection` — pure fold
  of events into the dashboard snapshot.
* :func:`~checkinbot.orchestrator.runner.run_bot` — process entry-point.
"""

from checkinbot.orchestrator.bus import EventBus, Subscription
from checkinbot.orchestrator.cycle import CycleReport, CycleRunner
from checkinbot.orchestrator.projection import StatusProjection
from checkinbot.orchestrator.runner import run_bot
from checkinbot.orchestrator.scheduler import DEFAULT_INTERVAL_S, Scheduler

__all__ = [
    "EventBus",
    "Subscription",
    "CycleReport",
    "CycleRunner",
    "StatusProjection",
    "Scheduler",
    "DEFAULT_INTERVAL_S",
    "run_bot",
]
