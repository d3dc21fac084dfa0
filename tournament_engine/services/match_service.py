import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy.orm import Session

from tournament_engine.core.exceptions import BracketInconsistency, InvalidStateTransition
from tournament_engine.domain import match_lifecycle, progression
from tournament_engine.models.match import MatchStatus, TournamentMatch
from tournament_engine.models.match_event import MatchEvent
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas import match_schemas
from tournament_engine.schemas.event_schemas import DomainEvent
from tournament_engine.services import repositories
from tournament_engine.services.context import EngineContext
from tournament_engine.services.unit_of_work import tournament_transaction

logger = logging.getLogger(__name__)


def _require_in_progress(tournament: Tournament, action: str) -> None:
    if tournament.status != TournamentStatus.IN_PROGRESS.value:
        raise InvalidStateTransition(
            f"Cannot {action} a match while tournament {tournament.id} is '{tournament.status}'",
            {"tournament_id": tournament.id, "status": tournament.status, "action": action},
        )


def _require_not_terminal(tournament: Tournament, action: str) -> None:
    if tournament.is_terminal:
        raise InvalidStateTransition(
            f"Cannot {action} a match of tournament {tournament.id}, which is '{tournament.status}'",
            {"tournament_id": tournament.id, "status": tournament.status, "action": action},
        )


@contextmanager
def _match_transaction(db: Session, match_id: int, ctx: EngineContext):
    tournament_id = repositories.get_match(db, match_id).tournament_id
    with tournament_transaction(db, tournament_id, ctx) as outbox:
        match = repositories.get_match(db, match_id, for_update=True)
        tournament = repositories.get_tournament(db, tournament_id, for_update=True)
        yield match, tournament, outbox


def _after_decision(db: Session, match: TournamentMatch, tournament: Tournament, ctx: EngineContext) -> List[DomainEvent]:
    """Bookkeeping that follows a decided match: eliminations, crowning, propagation."""
    now = ctx.now()
    # Stats written through the relationships must hit the database before fresh reads
    db.flush()
    winner = repositories.get_participant(db, match.winner_id)
    loser = repositories.get_participant(db, match.loser_id) if match.loser_id is not None else None
    decides_title = progression.is_title_match(match, repositories.list_matches(db, tournament.id))
    loser_losses = repositories.count_losses(db, tournament.id, loser.id) if loser is not None else 0
    events = progression.settle_outcome(
        match, tournament, winner, loser, now, ctx.actor_id, decides_title=decides_title, loser_losses=loser_losses
    )
    successor = repositories.find_match(db, match.next_match_id)
    events += progression.propagate(match, successor, now, ctx.actor_id)
    return events


def _check_slot(db: Session, tournament_id: int, participant_id: Optional[int]) -> None:
    if participant_id is None:
        return
    participant = repositories.get_participant(db, participant_id)
    if participant.tournament_id != tournament_id:
        raise BracketInconsistency(
            f"Participant {participant_id} does not belong to tournament {tournament_id}",
            {"participant_id": participant_id, "tournament_id": tournament_id},
        )


def create_match(db: Session, data: match_schemas.MatchCreate, ctx: EngineContext) -> TournamentMatch:
    """Persist one match of a generated bracket, checking its slots and successor link."""
    now = ctx.now()
    with tournament_transaction(db, data.tournament_id, ctx):
        tournament = repositories.get_tournament(db, data.tournament_id, for_update=True)
        _require_not_terminal(tournament, "create")
        _check_slot(db, tournament.id, data.participant1_id)
        _check_slot(db, tournament.id, data.participant2_id)
        if data.next_match_id is not None:
            successor = repositories.find_match(db, data.next_match_id)
            if successor is None:
                raise BracketInconsistency(
                    f"Successor match {data.next_match_id} does not exist",
                    {"next_match_id": data.next_match_id},
                )
            progression.validate_link(tournament.id, data.round_number, data.next_match_position, successor)

        match = TournamentMatch(**data.model_dump(), status=MatchStatus.SCHEDULED.value)
        db.add(match)
        db.flush()
        match_lifecycle.record_event(
            match,
            "match_created",
            f"Round {match.round_number} match created",
            now,
            ctx.actor_id,
            participant1_id=match.participant1_id,
            participant2_id=match.participant2_id,
        )
    logger.info("Created match %s in round %s of tournament %s", match.id, data.round_number, data.tournament_id)
    return match


def get_match(db: Session, match_id: int) -> TournamentMatch:
    return repositories.get_match(db, match_id)


def list_matches(db: Session, tournament_id: int, round_number: Optional[int] = None) -> List[TournamentMatch]:
    repositories.get_tournament(db, tournament_id)
    return repositories.list_matches(db, tournament_id, round_number)


def list_events(db: Session, match_id: int) -> List[MatchEvent]:
    repositories.get_match(db, match_id)
    return db.query(MatchEvent).filter(MatchEvent.match_id == match_id).order_by(MatchEvent.id).all()


def mark_ready(db: Session, match_id: int, ctx: EngineContext) -> TournamentMatch:
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        _require_not_terminal(tournament, "prepare")
        outbox += match_lifecycle.mark_ready(match, ctx.now(), ctx.actor_id)
    logger.info("Match %s is ready to start", match_id)
    return match


def start_match(db: Session, match_id: int, ctx: EngineContext) -> TournamentMatch:
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        _require_in_progress(tournament, "start")
        outbox += match_lifecycle.start(match, ctx.now(), ctx.actor_id)
    logger.info("Started match %s", match_id)
    return match


def complete_match(
    db: Session, match_id: int, result: match_schemas.MatchResultSubmit, ctx: EngineContext
) -> TournamentMatch:
    """Record the result, update both participants and advance the winner, all in one commit.

    Submitting the same result again changes nothing.
    """
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        if not match.is_decided:
            _require_in_progress(tournament, "complete")
        events = match_lifecycle.complete(match, result.score, result.winner_id, ctx.now(), ctx.actor_id)
        if events:
            outbox += events
            outbox += _after_decision(db, match, tournament, ctx)
    logger.info("Completed match %s, winner %s (%s)", match_id, match.winner_id, match.final_score)
    return match


def walkover(db: Session, match_id: int, request: match_schemas.WalkoverRequest, ctx: EngineContext) -> TournamentMatch:
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        if not match.is_decided:
            _require_in_progress(tournament, "award a walkover for")
        events = match_lifecycle.walkover(match, request.winner_id, request.reason, ctx.now(), ctx.actor_id)
        if events:
            outbox += events
            outbox += _after_decision(db, match, tournament, ctx)
    logger.info("Match %s awarded to %s by walkover", match_id, request.winner_id)
    return match


def no_show(db: Session, match_id: int, request: match_schemas.NoShowRequest, ctx: EngineContext) -> TournamentMatch:
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        if not match.is_decided:
            _require_in_progress(tournament, "record a no-show for")
        events = match_lifecycle.no_show(
            match, request.absent_participant_id, request.reason, ctx.now(), ctx.actor_id
        )
        if events:
            outbox += events
            outbox += _after_decision(db, match, tournament, ctx)
    logger.info("Participant %s did not show up for match %s", request.absent_participant_id, match_id)
    return match


def postpone(db: Session, match_id: int, reason: Optional[str], ctx: EngineContext) -> TournamentMatch:
    reason = reason or "Postponed"
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        _require_not_terminal(tournament, "postpone")
        outbox += match_lifecycle.postpone(match, reason, ctx.now(), ctx.actor_id)
    logger.info("Postponed match %s: %s", match_id, reason)
    return match


def cancel(db: Session, match_id: int, reason: Optional[str], ctx: EngineContext) -> TournamentMatch:
    reason = reason or "Cancelled"
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        outbox += match_lifecycle.cancel(match, reason, ctx.now(), ctx.actor_id)
    logger.info("Cancelled match %s: %s", match_id, reason)
    return match


def reschedule(
    db: Session, match_id: int, request: match_schemas.RescheduleRequest, ctx: EngineContext
) -> TournamentMatch:
    with _match_transaction(db, match_id, ctx) as (match, tournament, outbox):
        _require_not_terminal(tournament, "reschedule")
        outbox += match_lifecycle.reschedule(
            match, request.scheduled_at, request.court_number, ctx.now(), ctx.actor_id
        )
    logger.info("Rescheduled match %s to %s", match_id, request.scheduled_at)
    return match
