import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tournament_engine.core.exceptions import DuplicateRegistration, NotFound
from tournament_engine.domain import make_event
from tournament_engine.domain import participant_lifecycle
from tournament_engine.domain.eligibility import Entrant
from tournament_engine.models.participant import TournamentParticipant
from tournament_engine.schemas import event_schemas, participant_schemas
from tournament_engine.services import repositories, seeding_service, tournament_service
from tournament_engine.services.context import EngineContext
from tournament_engine.services.unit_of_work import tournament_transaction

logger = logging.getLogger(__name__)


def _entrant(db: Session, registration: participant_schemas.RegistrationCreate, ctx: EngineContext) -> Entrant:
    today = ctx.clock.today()
    if registration.player_id is not None:
        return Entrant.from_player(repositories.get_player(db, registration.player_id), today)
    return Entrant.from_team(repositories.get_team(db, registration.team_id), today)


def register(
    db: Session,
    tournament_id: int,
    registration: participant_schemas.RegistrationCreate,
    ctx: EngineContext,
) -> TournamentParticipant:
    """Create a pending registration. Capacity is only consumed on confirmation."""
    now = ctx.now()
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        entrant = _entrant(db, registration, ctx)
        existing = repositories.find_registration(
            db, tournament_id, player_id=registration.player_id, team_id=registration.team_id
        )
        participant = participant_lifecycle.register(tournament, entrant, registration, existing, now)
        db.add(participant)
        try:
            db.flush()
        except IntegrityError:
            raise DuplicateRegistration(
                f"Entrant is already registered for tournament {tournament_id}",
                {"tournament_id": tournament_id, "player_id": registration.player_id, "team_id": registration.team_id},
            ) from None
        outbox.append(
            make_event(
                event_schemas.PARTICIPANT_REGISTERED,
                tournament_id,
                now,
                ctx.actor_id,
                participant_id=participant.id,
                player_id=participant.player_id,
                team_id=participant.team_id,
            )
        )
    logger.info("Registered participant %s in tournament %s", participant.id, tournament_id)
    return participant


def get_participant(db: Session, tournament_id: int, participant_id: int) -> TournamentParticipant:
    participant = repositories.get_participant(db, participant_id)
    if participant.tournament_id != tournament_id:
        raise NotFound("Participant", participant_id)
    return participant


def list_participants(
    db: Session, tournament_id: int, registration_status: Optional[str] = None
) -> List[TournamentParticipant]:
    repositories.get_tournament(db, tournament_id)
    return repositories.list_participants(db, tournament_id, registration_status)


def confirm(db: Session, tournament_id: int, participant_id: int, ctx: EngineContext) -> TournamentParticipant:
    """Confirm a registration and take one slot.

    If the tournament is full the participant stays where it was and
    CapacityExceeded propagates; callers typically waitlist it.
    """
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        events = participant_lifecycle.confirm(participant, tournament, ctx.now(), ctx.actor_id)
        tournament_service.adjust_participant_count(db, tournament, 1)
        outbox += events
    logger.info(
        "Confirmed participant %s in tournament %s (%s/%s)",
        participant_id,
        tournament_id,
        tournament.current_participants,
        tournament.max_participants,
    )
    return participant


def waitlist(db: Session, tournament_id: int, participant_id: int, ctx: EngineContext) -> TournamentParticipant:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        outbox += participant_lifecycle.waitlist(participant, ctx.now(), ctx.actor_id)
    logger.info("Waitlisted participant %s in tournament %s", participant_id, tournament_id)
    return participant


def reject(db: Session, tournament_id: int, participant_id: int, ctx: EngineContext) -> TournamentParticipant:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        outbox += participant_lifecycle.reject(participant, ctx.now(), ctx.actor_id)
    logger.info("Rejected participant %s in tournament %s", participant_id, tournament_id)
    return participant


def withdraw(db: Session, tournament_id: int, participant_id: int, ctx: EngineContext) -> TournamentParticipant:
    """Withdraw a registration, freeing its slot if it held one."""
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        released_seed = participant.seed_number
        events = participant_lifecycle.withdraw(participant, ctx.now(), ctx.actor_id)
        if events[0].payload["released_slot"]:
            tournament_service.adjust_participant_count(db, tournament, -1)
        if released_seed is not None:
            seeding_service.close_seed_gap(db, tournament_id, released_seed)
        outbox += events
    logger.info("Participant %s withdrew from tournament %s", participant_id, tournament_id)
    return participant


def disqualify(db: Session, tournament_id: int, participant_id: int, ctx: EngineContext) -> TournamentParticipant:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        released_seed = participant.seed_number
        outbox += participant_lifecycle.disqualify(participant, ctx.now(), ctx.actor_id)
        if released_seed is not None:
            seeding_service.close_seed_gap(db, tournament_id, released_seed)
    logger.info("Disqualified participant %s in tournament %s", participant_id, tournament_id)
    return participant


def record_payment(
    db: Session,
    tournament_id: int,
    participant_id: int,
    payment: participant_schemas.PaymentRecord,
    ctx: EngineContext,
) -> TournamentParticipant:
    with tournament_transaction(db, tournament_id, ctx):
        participant = repositories.get_tournament_participant(db, tournament_id, participant_id)
        participant_lifecycle.record_entry_fee_payment(
            participant, payment.payment_method, payment.payment_reference, ctx.now()
        )
    logger.info("Recorded entry fee payment for participant %s", participant_id)
    return participant
