"""Ordered, synchronous publish/subscribe channel.

The :class:`EventBus` connects orchestration (the only publishers) to
presentation (the only external subscribers).  It owns no business data —
only a subscriber list and the delivery order.

Delivery contract
-----------------
* :meth:`EventBus.publish` delivers the event to every matching subscriber,
  in registration order, before it returns.
* A publish issued *from inside a handler* is queued and delivered after the
  current publish has reached every subscriber, so each publish completes
  fully before the next begins.
* A subscriber that raises is logged via :meth:`logging.Logger.exception`
  and skipped; remaining subscribers still receive the event.

Handlers run on the publisher's stack and must return quickly.  A handler
that needs slow work should hand off (e.g. put the event on an
:class:`asyncio.Queue`) rather than block the publisher.

Typical usage::

    from checkinbot.core.events import EventKind
    from checkinbot.orchestrator.bus import EventBus

    bus = EventBus()
    sub = bus.subscribe(print, kinds={EventKind.LOG})
    bus.log(LogLevel.INFO, "hello")
    bus.unsubscribe(sub)
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from checkinbot.core import events
from checkinbot.core.events import BaseEvent, EventKind, LogEvent, LogLevel

__all__ = ["EventBus", "Handler", "Subscription"]

logger = logging.getLogger(__name__)

Handler = Callable[[BaseEvent], None]

_ids = itertools.count(1)


@dataclass(frozen=True)
class Subscription:
    """Token returned by :meth:`EventBus.subscribe`; pass it to unsubscribe.

    Attributes:
        id: Process-unique subscription number.
        handler: The registered callable.
        kinds: Event kinds delivered to *handler*; ``None`` means all.
    """

    id: int
    handler: Handler = field(compare=False)
    kinds: frozenset[str] | None = field(default=None, compare=False)

    def accepts(self, event: BaseEvent) -> bool:
        return self.kinds is None or getattr(event, "kind", None) in self.kinds


class EventBus:
    """Fan-out publish point with registration-ordered, synchronous delivery."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._pending: deque[BaseEvent] = deque()
        self._delivering = False

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def subscribe(
        self,
        handler: Handler,
        kinds: Iterable[EventKind | str] | None = None,
    ) -> Subscription:
        """Register *handler*, optionally filtered to the given event kinds.

        Args:
            handler: Callable invoked with each delivered event.
            kinds: Event kinds to deliver.  ``None`` delivers every kind.

        Returns:
            A :class:`Subscription` usable with :meth:`unsubscribe`.
        """
        kind_filter = None if kinds is None else frozenset(str(k) for k in kinds)
        sub = Subscription(id=next(_ids), handler=handler, kinds=kind_filter)
        self._subscriptions.append(sub)
        logger.debug("Subscriber %d registered (kinds=%s).", sub.id, kind_filter or "all")
        return sub

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove *subscription*.  Returns ``False`` if it was not registered."""
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        logger.debug("Subscriber %d removed.", subscription.id)
        return True

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, event: BaseEvent) -> None:
        """Deliver *event* to every matching subscriber before returning.

        When called re-entrantly from a handler the event is queued and
        delivered by the outermost ``publish`` call once the current event
        has reached all subscribers.
        """
        self._pending.append(event)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._delivering = False

    def log(self, level: LogLevel, message: str) -> None:
        """Convenience wrapper: publish a :class:`LogEvent`."""
        self.publish(LogEvent(level=level, message=message))

    def _deliver(self, event: BaseEvent) -> None:
        # Snapshot the list so handlers may (un)subscribe during delivery.
        for sub in tuple(self._subscriptions):
            if not sub.accepts(event):
                continue
            try:
                sub.handler(event)
            except Exception:
                logger.exception(
                    "Subscriber %d raised while handling %s; continuing delivery.",
                    sub.id,
                    getattr(event, "kind", type(event).__name__),
                    extra={"event": events.SUBSCRIBER_ERROR},
                )
