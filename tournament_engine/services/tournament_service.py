import logging
import re
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from tournament_engine.core.config import settings
from tournament_engine.core.exceptions import CapacityExceeded, InvalidStateTransition
from tournament_engine.domain import participant_lifecycle
from tournament_engine.domain import tournament_lifecycle
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas import tournament_schemas
from tournament_engine.services import repositories
from tournament_engine.services.context import EngineContext
from tournament_engine.services.unit_of_work import tournament_transaction

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "tournament"


def unique_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug, suffix = base, 1
    # Soft-deleted tournaments keep their slug
    while db.query(Tournament.id).filter(Tournament.slug == slug).first() is not None:
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug


def create_tournament(
    db: Session,
    tournament: tournament_schemas.TournamentCreate,
    ctx: EngineContext,
    organizer_id: Optional[int] = None,
) -> Tournament:
    now = ctx.now()
    db_tournament = Tournament(
        **tournament.model_dump(exclude={"settings"}),
        settings=tournament.settings.model_dump(exclude_none=True),
        slug=unique_slug(db, tournament.name),
        status=TournamentStatus.DRAFT.value,
        current_participants=0,
        organizer_id=organizer_id if organizer_id is not None else ctx.actor_id,
        created_at=now,
        updated_at=now,
    )
    db.add(db_tournament)
    db.commit()
    db.refresh(db_tournament)
    logger.info("Created tournament %s (%s)", db_tournament.id, db_tournament.slug)
    return db_tournament


def get_tournament(db: Session, tournament_id: int) -> Tournament:
    return repositories.get_tournament(db, tournament_id)


def get_tournament_by_slug(db: Session, slug: str) -> Tournament:
    return repositories.get_tournament_by_slug(db, slug)


def list_tournaments(
    db: Session,
    filters: Optional[tournament_schemas.TournamentFilter] = None,
    ctx: Optional[EngineContext] = None,
) -> List[Tournament]:
    now = ctx.now() if ctx is not None else None
    return repositories.list_tournaments(db, filters, now)


def open_registration(db: Session, tournament_id: int, ctx: EngineContext) -> Tournament:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        outbox += tournament_lifecycle.open_registration(tournament, ctx.now(), ctx.actor_id)
    logger.info("Opened registration for tournament %s", tournament_id)
    return tournament


def close_registration(db: Session, tournament_id: int, ctx: EngineContext) -> Tournament:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        outbox += tournament_lifecycle.close_registration(tournament, ctx.now(), ctx.actor_id)
    logger.info("Closed registration for tournament %s", tournament_id)
    return tournament


def can_register(db: Session, tournament_id: int, ctx: EngineContext) -> bool:
    tournament = repositories.get_tournament(db, tournament_id)
    return tournament_lifecycle.can_register(tournament, ctx.now())


def start_tournament(db: Session, tournament_id: int, ctx: EngineContext) -> Tournament:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        outbox += tournament_lifecycle.start(tournament, ctx.now(), ctx.actor_id)
    logger.info("Started tournament %s", tournament_id)
    return tournament


def complete_tournament(
    db: Session,
    tournament_id: int,
    results: tournament_schemas.TournamentResults,
    ctx: EngineContext,
) -> Tournament:
    """Apply the final standings and close the tournament."""
    now = ctx.now()
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        completion = tournament_lifecycle.complete(
            tournament, results.model_dump(mode="json"), now, ctx.actor_id
        )
        for standing in results.standings:
            participant = repositories.get_tournament_participant(db, tournament_id, standing.participant_id)
            outbox += participant_lifecycle.set_final_standing(
                participant, standing.position, standing.prize_money, now, ctx.actor_id
            )
        outbox += completion
    logger.info("Completed tournament %s with %d standing(s)", tournament_id, len(results.standings))
    return tournament


def cancel_tournament(db: Session, tournament_id: int, reason: str, ctx: EngineContext) -> Tournament:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        outbox += tournament_lifecycle.cancel(tournament, reason, ctx.now(), ctx.actor_id)
    logger.info("Cancelled tournament %s: %s", tournament_id, reason)
    return tournament


def soft_delete_tournament(db: Session, tournament_id: int, ctx: EngineContext) -> None:
    with tournament_transaction(db, tournament_id, ctx):
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        if tournament.status == TournamentStatus.IN_PROGRESS.value:
            raise InvalidStateTransition(
                f"Tournament {tournament_id} is in progress and cannot be deleted",
                {"tournament_id": tournament_id, "status": tournament.status, "action": "delete"},
            )
        tournament.deleted_at = ctx.now()
    logger.info("Soft-deleted tournament %s", tournament_id)


def adjust_participant_count(db: Session, tournament: Tournament, delta: int) -> int:
    """Move the confirmed-participant counter by ``delta`` inside the caller's transaction.

    The UPDATE only matches while the new value stays within
    ``[0, max_participants]``, so a concurrent writer can never push it out of
    bounds. A miss is re-checked against a fresh read: a real overflow raises
    CapacityExceeded (or ParticipantCountUnderflow), anything else is retried.
    """
    new_value = Tournament.current_participants + delta
    statement = (
        update(Tournament)
        .where(
            Tournament.id == tournament.id,
            new_value >= 0,
            new_value <= Tournament.max_participants,
        )
        .values(current_participants=new_value)
        .execution_options(synchronize_session=False)
    )
    attempts = max(1, settings.CAPACITY_RETRY_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            result = db.execute(statement)
        except OperationalError:
            if attempt == attempts:
                raise
            logger.warning(
                "Participant counter update for tournament %s failed (attempt %d/%d), retrying",
                tournament.id,
                attempt,
                attempts,
            )
            continue
        db.expire(tournament, ["current_participants", "max_participants"])
        if result.rowcount == 1:
            return tournament.current_participants
        tournament_lifecycle.check_participant_delta(tournament, delta)
        logger.warning(
            "Participant counter of tournament %s changed underneath (attempt %d/%d), retrying",
            tournament.id,
            attempt,
            attempts,
        )
    raise CapacityExceeded(
        f"Could not reserve a slot in tournament {tournament.id}",
        {"tournament_id": tournament.id, "attempts": attempts},
    )
