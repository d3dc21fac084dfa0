import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List

from tournament_engine.schemas.event_schemas import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]

# Subscribing to this name receives every event
ALL_EVENTS = "*"


class EventDispatcher:
    """Delivers committed domain events to subscribers.

    A failing subscriber is logged and skipped; it never undoes the
    transaction that produced the event.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._handlers.get(name, []):
            self._handlers[name].remove(handler)

    def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            logger.debug("Dispatching %s for tournament %s", event.name, event.tournament_id)
            for handler in self._handlers.get(event.name, []) + self._handlers.get(ALL_EVENTS, []):
                try:
                    handler(event)
                except Exception:
                    logger.exception("Subscriber %r failed on %s", handler, event.name)


class EventRecorder:
    """Subscriber that keeps every event it receives, in order."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    @property
    def names(self) -> List[str]:
        return [e.name for e in self.events]
