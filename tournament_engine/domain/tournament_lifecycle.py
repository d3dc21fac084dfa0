from datetime import datetime
from typing import Any, Dict, List, Optional

from tournament_engine.core.exceptions import (
    CapacityExceeded,
    InsufficientParticipants,
    InvalidStateTransition,
    ParticipantCountUnderflow,
)
from tournament_engine.domain import make_event
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.event_schemas import DomainEvent


def _require_status(tournament: Tournament, allowed: List[TournamentStatus], action: str) -> None:
    if tournament.status not in {s.value for s in allowed}:
        raise InvalidStateTransition(
            f"Cannot {action} tournament {tournament.id} from status '{tournament.status}'",
            {"tournament_id": tournament.id, "status": tournament.status, "action": action},
        )


def open_registration(tournament: Tournament, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    _require_status(tournament, [TournamentStatus.DRAFT], "open registration for")
    tournament.status = TournamentStatus.REGISTRATION_OPEN.value
    if tournament.registration_start_date is None:
        tournament.registration_start_date = now
    tournament.updated_at = now
    return [make_event(event_schemas.TOURNAMENT_REGISTRATION_OPENED, tournament.id, now, actor_id)]


def close_registration(tournament: Tournament, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    _require_status(tournament, [TournamentStatus.REGISTRATION_OPEN], "close registration for")
    tournament.status = TournamentStatus.REGISTRATION_CLOSED.value
    if tournament.registration_end_date is None or tournament.registration_end_date > now:
        tournament.registration_end_date = now
    tournament.updated_at = now
    return [
        make_event(
            event_schemas.TOURNAMENT_REGISTRATION_CLOSED,
            tournament.id,
            now,
            actor_id,
            confirmed_participants=tournament.current_participants,
        )
    ]


def can_start(tournament: Tournament) -> bool:
    return (
        tournament.status == TournamentStatus.REGISTRATION_CLOSED.value
        and tournament.current_participants >= tournament.min_participants
    )


def start(tournament: Tournament, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    _require_status(tournament, [TournamentStatus.REGISTRATION_CLOSED], "start")
    if tournament.current_participants < tournament.min_participants:
        raise InsufficientParticipants(
            f"Tournament {tournament.id} has {tournament.current_participants} confirmed participants, "
            f"{tournament.min_participants} required",
            {
                "tournament_id": tournament.id,
                "current_participants": tournament.current_participants,
                "min_participants": tournament.min_participants,
            },
        )
    tournament.status = TournamentStatus.IN_PROGRESS.value
    if tournament.tournament_start_date is None:
        tournament.tournament_start_date = now
    tournament.updated_at = now
    return [make_event(event_schemas.TOURNAMENT_STARTED, tournament.id, now, actor_id)]


def complete(
    tournament: Tournament, results: Dict[str, Any], now: datetime, actor_id: Optional[int] = None
) -> List[DomainEvent]:
    _require_status(tournament, [TournamentStatus.IN_PROGRESS], "complete")
    tournament.status = TournamentStatus.COMPLETED.value
    tournament.results = results
    tournament.tournament_end_date = now
    tournament.updated_at = now
    return [
        make_event(
            event_schemas.TOURNAMENT_COMPLETED,
            tournament.id,
            now,
            actor_id,
            champion_id=tournament.champion_id,
            results=results,
        )
    ]


def cancel(tournament: Tournament, reason: str, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if tournament.is_terminal:
        raise InvalidStateTransition(
            f"Tournament {tournament.id} is already {tournament.status}",
            {"tournament_id": tournament.id, "status": tournament.status, "action": "cancel"},
        )
    tournament.status = TournamentStatus.CANCELLED.value
    tournament.cancellation_reason = reason
    tournament.updated_at = now
    return [make_event(event_schemas.TOURNAMENT_CANCELLED, tournament.id, now, actor_id, reason=reason)]


def is_within_registration_window(tournament: Tournament, now: datetime) -> bool:
    """An unset bound leaves that side of the window open."""
    if tournament.registration_start_date is not None and now < tournament.registration_start_date:
        return False
    if tournament.registration_end_date is not None and now > tournament.registration_end_date:
        return False
    return True


def has_capacity(tournament: Tournament) -> bool:
    return tournament.current_participants < tournament.max_participants


def can_register(tournament: Tournament, now: datetime) -> bool:
    return (
        tournament.status == TournamentStatus.REGISTRATION_OPEN.value
        and is_within_registration_window(tournament, now)
        and has_capacity(tournament)
    )


def check_participant_delta(tournament: Tournament, delta: int) -> int:
    """Return the counter value after applying ``delta`` or raise without mutating."""
    new_count = tournament.current_participants + delta
    if new_count > tournament.max_participants:
        raise CapacityExceeded(
            f"Tournament {tournament.id} is full ({tournament.current_participants}/{tournament.max_participants})",
            {
                "tournament_id": tournament.id,
                "current_participants": tournament.current_participants,
                "max_participants": tournament.max_participants,
            },
        )
    if new_count < 0:
        raise ParticipantCountUnderflow(
            f"Participant count of tournament {tournament.id} cannot drop below zero",
            {"tournament_id": tournament.id, "current_participants": tournament.current_participants},
        )
    return new_count
