from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

PARTICIPANT_REGISTERED = "participant.registered"
PARTICIPANT_CONFIRMED = "participant.confirmed"
PARTICIPANT_WAITLISTED = "participant.waitlisted"
PARTICIPANT_REJECTED = "participant.rejected"
PARTICIPANT_WITHDRAWN = "participant.withdrawn"
PARTICIPANT_DISQUALIFIED = "participant.disqualified"
PARTICIPANT_ELIMINATED = "participant.eliminated"
PARTICIPANT_FINALIZED = "participant.finalized"

TOURNAMENT_REGISTRATION_OPENED = "tournament.registration_opened"
TOURNAMENT_REGISTRATION_CLOSED = "tournament.registration_closed"
TOURNAMENT_STARTED = "tournament.started"
TOURNAMENT_SEEDS_ASSIGNED = "tournament.seeds_assigned"
TOURNAMENT_CHAMPION_DECIDED = "tournament.champion_decided"
TOURNAMENT_COMPLETED = "tournament.completed"
TOURNAMENT_CANCELLED = "tournament.cancelled"

MATCH_STARTED = "match.started"
MATCH_COMPLETED = "match.completed"
MATCH_WALKOVER = "match.walkover"
MATCH_NO_SHOW = "match.no_show"
MATCH_POSTPONED = "match.postponed"
MATCH_CANCELLED = "match.cancelled"
MATCH_RESCHEDULED = "match.rescheduled"
MATCH_WINNER_ADVANCED = "match.winner_advanced"


class DomainEvent(BaseModel):
    """A fact produced by a state transition, delivered after the transaction commits."""

    name: str
    tournament_id: int
    occurred_at: datetime
    actor_id: Optional[int] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
