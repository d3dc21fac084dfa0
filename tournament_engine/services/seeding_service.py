import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from tournament_engine.core.exceptions import InvalidStateTransition
from tournament_engine.domain import make_event
from tournament_engine.domain import seeding
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas import event_schemas
from tournament_engine.services import repositories
from tournament_engine.services.context import EngineContext
from tournament_engine.services.unit_of_work import tournament_transaction

logger = logging.getLogger(__name__)

SEEDABLE_STATUSES = {
    TournamentStatus.DRAFT.value,
    TournamentStatus.REGISTRATION_OPEN.value,
    TournamentStatus.REGISTRATION_CLOSED.value,
}


def _require_seedable(tournament: Tournament) -> None:
    if tournament.status not in SEEDABLE_STATUSES:
        raise InvalidStateTransition(
            f"Seeds of tournament {tournament.id} are fixed once it is '{tournament.status}'",
            {"tournament_id": tournament.id, "status": tournament.status, "action": "seed"},
        )


def _apply(db: Session, tournament: Tournament, mapping: Dict[int, int], ctx: EngineContext):
    participants = repositories.list_participants(db, tournament.id)
    for participant in participants:
        participant.seed_number = None
    # Clear first so the (tournament, seed) unique constraint never sees two holders
    db.flush()
    for participant in participants:
        if participant.id in mapping:
            participant.seed_number = mapping[participant.id]
    tournament.updated_at = ctx.now()
    return make_event(
        event_schemas.TOURNAMENT_SEEDS_ASSIGNED,
        tournament.id,
        ctx.now(),
        ctx.actor_id,
        seeds={str(pid): seed for pid, seed in sorted(mapping.items(), key=lambda item: item[1])},
    )


def auto_assign_seeds(db: Session, tournament_id: int, ctx: EngineContext) -> Dict[int, int]:
    """Seed confirmed participants 1..N by descending rating; everyone else loses their seed."""
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        _require_seedable(tournament)
        mapping = seeding.rank_by_rating(repositories.list_confirmed(db, tournament_id))
        outbox.append(_apply(db, tournament, mapping, ctx))
    logger.info("Auto-seeded %d participant(s) in tournament %s", len(mapping), tournament_id)
    return mapping


def assign_seeds(db: Session, tournament_id: int, mapping: Dict[int, int], ctx: EngineContext) -> Dict[int, int]:
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        _require_seedable(tournament)
        confirmed = repositories.list_confirmed(db, tournament_id)
        seeding.validate_mapping(mapping, [p.id for p in confirmed])
        outbox.append(_apply(db, tournament, mapping, ctx))
    logger.info("Assigned %d seed(s) in tournament %s", len(mapping), tournament_id)
    return dict(mapping)


def available_seeds(db: Session, tournament_id: int) -> List[int]:
    repositories.get_tournament(db, tournament_id)
    confirmed = repositories.list_confirmed(db, tournament_id)
    used = [p.seed_number for p in confirmed if p.seed_number is not None]
    return seeding.available_seeds(used, len(confirmed))


def close_seed_gap(db: Session, tournament_id: int, released_seed: int) -> None:
    """Shift every seed above ``released_seed`` down by one, inside the caller's transaction."""
    db.flush()
    above = (
        p
        for p in repositories.list_participants(db, tournament_id)
        if p.seed_number is not None and p.seed_number > released_seed
    )
    for participant in sorted(above, key=lambda p: p.seed_number):
        participant.seed_number -= 1
        db.flush()
