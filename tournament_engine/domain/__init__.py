"""State machines of the engine.

Functions here mutate in-memory entities and return the domain events the
transition produced. They never touch a session; the services apply them
inside one transaction per call.
"""
from datetime import datetime
from typing import Optional

from tournament_engine.schemas.event_schemas import DomainEvent


def make_event(name: str, tournament_id: int, now: datetime, actor_id: Optional[int] = None, **payload) -> DomainEvent:
    return DomainEvent(name=name, tournament_id=tournament_id, occurred_at=now, actor_id=actor_id, payload=payload)
