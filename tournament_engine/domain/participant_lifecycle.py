from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from tournament_engine.core.exceptions import (
    AlreadyFinalized,
    CapacityExceeded,
    DuplicateRegistration,
    InvalidParticipantTransition,
    InvalidStateTransition,
    RegistrationClosed,
)
from tournament_engine.domain import make_event
from tournament_engine.domain import tournament_lifecycle
from tournament_engine.domain.eligibility import Entrant, check_eligibility
from tournament_engine.models.participant import (
    ParticipantStatus,
    RegistrationStatus,
    TournamentParticipant,
)
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.event_schemas import DomainEvent
from tournament_engine.schemas.participant_schemas import RegistrationCreate

TRANSITIONS = {
    RegistrationStatus.PENDING.value: {
        RegistrationStatus.CONFIRMED.value,
        RegistrationStatus.REJECTED.value,
        RegistrationStatus.WITHDRAWN.value,
        RegistrationStatus.WAITLISTED.value,
    },
    RegistrationStatus.CONFIRMED.value: {
        RegistrationStatus.WITHDRAWN.value,
        RegistrationStatus.DISQUALIFIED.value,
    },
    RegistrationStatus.WAITLISTED.value: {
        RegistrationStatus.CONFIRMED.value,
        RegistrationStatus.REJECTED.value,
    },
}

# Tournament statuses in which registrations may still be confirmed
CONFIRMABLE_TOURNAMENT_STATUSES = {
    TournamentStatus.REGISTRATION_OPEN.value,
    TournamentStatus.REGISTRATION_CLOSED.value,
}


def can_transition(participant: TournamentParticipant, target: RegistrationStatus) -> bool:
    return target.value in TRANSITIONS.get(participant.registration_status, set())


def _ensure_transition(participant: TournamentParticipant, target: RegistrationStatus) -> None:
    if not can_transition(participant, target):
        previous = participant.registration_status
        raise InvalidParticipantTransition(
            f"Participant {participant.id} cannot move from '{previous}' to '{target.value}'",
            {"participant_id": participant.id, "from": previous, "to": target.value},
        )


def _transition(participant: TournamentParticipant, target: RegistrationStatus) -> str:
    _ensure_transition(participant, target)
    previous = participant.registration_status
    participant.registration_status = target.value
    return previous


def register(
    tournament: Tournament,
    entrant: Entrant,
    registration: RegistrationCreate,
    existing: Optional[TournamentParticipant],
    now: datetime,
) -> TournamentParticipant:
    """Build a pending participant. The caller persists it; the counter is untouched."""
    if tournament.status != TournamentStatus.REGISTRATION_OPEN.value:
        raise RegistrationClosed(
            f"Registration for tournament {tournament.id} is not open (status '{tournament.status}')",
            {"tournament_id": tournament.id, "status": tournament.status},
        )
    if not tournament_lifecycle.is_within_registration_window(tournament, now):
        raise RegistrationClosed(
            f"Registration for tournament {tournament.id} is outside its registration window",
            {
                "tournament_id": tournament.id,
                "registration_start_date": tournament.registration_start_date,
                "registration_end_date": tournament.registration_end_date,
            },
        )
    if not tournament_lifecycle.has_capacity(tournament):
        raise CapacityExceeded(
            f"Tournament {tournament.id} is full",
            {"tournament_id": tournament.id, "max_participants": tournament.max_participants},
        )
    if existing is not None:
        raise DuplicateRegistration(
            f"Entrant is already registered for tournament {tournament.id}",
            {"tournament_id": tournament.id, "participant_id": existing.id},
        )
    check_eligibility(tournament, entrant)

    return TournamentParticipant(
        tournament_id=tournament.id,
        player_id=entrant.player_id,
        team_id=entrant.team_id,
        registration_status=RegistrationStatus.PENDING.value,
        tournament_status=ParticipantStatus.ACTIVE.value,
        registered_at=now,
        special_requirements=registration.special_requirements,
        emergency_contact=registration.emergency_contact,
        notes=registration.notes,
    )


def confirm(
    participant: TournamentParticipant, tournament: Tournament, now: datetime, actor_id: Optional[int] = None
) -> List[DomainEvent]:
    """Mark the registration confirmed.

    Only pre-checks capacity; the counter itself is moved by the caller with
    the conditional update so a lost race still fails cleanly.
    """
    if tournament.status not in CONFIRMABLE_TOURNAMENT_STATUSES:
        raise InvalidStateTransition(
            f"Registrations of tournament {tournament.id} cannot be confirmed in status '{tournament.status}'",
            {"tournament_id": tournament.id, "status": tournament.status},
        )
    _ensure_transition(participant, RegistrationStatus.CONFIRMED)
    tournament_lifecycle.check_participant_delta(tournament, 1)
    previous = _transition(participant, RegistrationStatus.CONFIRMED)
    participant.confirmed_at = now
    return [
        make_event(
            event_schemas.PARTICIPANT_CONFIRMED,
            tournament.id,
            now,
            actor_id,
            participant_id=participant.id,
            previous_status=previous,
        )
    ]


def waitlist(participant: TournamentParticipant, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    _transition(participant, RegistrationStatus.WAITLISTED)
    return [
        make_event(
            event_schemas.PARTICIPANT_WAITLISTED, participant.tournament_id, now, actor_id, participant_id=participant.id
        )
    ]


def reject(participant: TournamentParticipant, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    previous = _transition(participant, RegistrationStatus.REJECTED)
    return [
        make_event(
            event_schemas.PARTICIPANT_REJECTED,
            participant.tournament_id,
            now,
            actor_id,
            participant_id=participant.id,
            previous_status=previous,
        )
    ]


def withdraw(participant: TournamentParticipant, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    """Withdraw the entrant. ``released_slot`` in the event tells whether the counter must drop."""
    previous = _transition(participant, RegistrationStatus.WITHDRAWN)
    participant.tournament_status = ParticipantStatus.WITHDRAWN.value
    participant.seed_number = None
    return [
        make_event(
            event_schemas.PARTICIPANT_WITHDRAWN,
            participant.tournament_id,
            now,
            actor_id,
            participant_id=participant.id,
            previous_status=previous,
            released_slot=previous == RegistrationStatus.CONFIRMED.value,
        )
    ]


def disqualify(participant: TournamentParticipant, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    # The slot stays taken but the seed is released
    _transition(participant, RegistrationStatus.DISQUALIFIED)
    participant.tournament_status = ParticipantStatus.ELIMINATED.value
    participant.seed_number = None
    return [
        make_event(
            event_schemas.PARTICIPANT_DISQUALIFIED,
            participant.tournament_id,
            now,
            actor_id,
            participant_id=participant.id,
        )
    ]


def eliminate(participant: TournamentParticipant, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if participant.tournament_status != ParticipantStatus.ACTIVE.value:
        return []
    participant.tournament_status = ParticipantStatus.ELIMINATED.value
    return [
        make_event(
            event_schemas.PARTICIPANT_ELIMINATED,
            participant.tournament_id,
            now,
            actor_id,
            participant_id=participant.id,
        )
    ]


def record_match_result(
    participant: TournamentParticipant,
    won: bool,
    sets_won: int,
    sets_lost: int,
    games_won: int,
    games_lost: int,
) -> None:
    participant.matches_played += 1
    if won:
        participant.matches_won += 1
    else:
        participant.matches_lost += 1
    participant.sets_won += sets_won
    participant.sets_lost += sets_lost
    participant.games_won += games_won
    participant.games_lost += games_lost


def standing_for_position(position: int) -> ParticipantStatus:
    if position == 1:
        return ParticipantStatus.CHAMPION
    if position == 2:
        return ParticipantStatus.FINALIST
    if position in (3, 4):
        return ParticipantStatus.SEMIFINALIST
    return ParticipantStatus.ELIMINATED


def set_final_standing(
    participant: TournamentParticipant,
    position: int,
    prize_money: Decimal,
    now: datetime,
    actor_id: Optional[int] = None,
) -> List[DomainEvent]:
    if participant.registration_status != RegistrationStatus.CONFIRMED.value:
        raise InvalidParticipantTransition(
            f"Only confirmed participants can hold a final standing (participant {participant.id} "
            f"is '{participant.registration_status}')",
            {"participant_id": participant.id, "registration_status": participant.registration_status},
        )
    if participant.final_position is not None:
        if participant.final_position == position:
            participant.prize_money = prize_money
            return []
        raise AlreadyFinalized(
            f"Participant {participant.id} already finished at position {participant.final_position}",
            {"participant_id": participant.id, "final_position": participant.final_position, "requested": position},
        )
    participant.tournament_status = standing_for_position(position).value
    participant.final_position = position
    participant.prize_money = prize_money
    return [
        make_event(
            event_schemas.PARTICIPANT_FINALIZED,
            participant.tournament_id,
            now,
            actor_id,
            participant_id=participant.id,
            position=position,
            tournament_status=participant.tournament_status,
        )
    ]


def record_entry_fee_payment(
    participant: TournamentParticipant, method: str, reference: Optional[str], now: datetime
) -> None:
    if participant.entry_fee_paid:
        raise InvalidParticipantTransition(
            f"Entry fee of participant {participant.id} is already recorded as paid",
            {"participant_id": participant.id, "payment_reference": participant.payment_reference},
        )
    participant.entry_fee_paid = True
    participant.payment_date = now
    participant.payment_method = method
    participant.payment_reference = reference
