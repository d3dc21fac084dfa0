from dataclasses import dataclass, field
from typing import Optional

from tournament_engine.core.clock import Clock, system_clock
from tournament_engine.services.events import EventDispatcher
from tournament_engine.services.locks import TournamentLocks, default_locks

default_dispatcher = EventDispatcher()


@dataclass
class EngineContext:
    """Who is acting, what time it is, and where events and locks live."""

    actor_id: Optional[int] = None
    clock: Clock = system_clock
    dispatcher: EventDispatcher = field(default_factory=lambda: default_dispatcher)
    locks: TournamentLocks = field(default_factory=lambda: default_locks)

    def now(self):
        return self.clock.now()
