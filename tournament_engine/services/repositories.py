"""Lookups by id.

Every decision read goes through here with ``populate_existing`` so a value
cached in the session's identity map is never trusted over the database.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, not_, or_
from sqlalchemy.orm import Session

from tournament_engine.core.clock import system_clock
from tournament_engine.core.exceptions import NotFound
from tournament_engine.models.match import DECIDED_MATCH_STATUSES, TournamentMatch
from tournament_engine.models.participant import RegistrationStatus, TournamentParticipant
from tournament_engine.models.player import Player
from tournament_engine.models.team import Team
from tournament_engine.models.tournament import Tournament, TournamentStatus
from tournament_engine.schemas.tournament_schemas import TournamentFilter


def _get(db: Session, model, entity_id: int, for_update: bool = False):
    # FOR UPDATE is a no-op on SQLite; the tournament lock covers it there
    return db.get(model, entity_id, populate_existing=True, with_for_update=for_update)


def get_tournament(db: Session, tournament_id: int, for_update: bool = False) -> Tournament:
    tournament = _get(db, Tournament, tournament_id, for_update)
    if tournament is None or tournament.deleted_at is not None:
        raise NotFound("Tournament", tournament_id)
    return tournament


def get_tournament_by_slug(db: Session, slug: str) -> Tournament:
    tournament = (
        db.query(Tournament)
        .filter(Tournament.slug == slug, Tournament.deleted_at.is_(None))
        .populate_existing()
        .first()
    )
    if tournament is None:
        raise NotFound("Tournament", slug)
    return tournament


def list_tournaments(
    db: Session, filters: Optional[TournamentFilter] = None, now: Optional[datetime] = None
) -> List[Tournament]:
    filters = filters or TournamentFilter()
    query = db.query(Tournament).filter(Tournament.deleted_at.is_(None))
    if filters.status:
        query = query.filter(Tournament.status == filters.status)
    if filters.type:
        query = query.filter(Tournament.type == filters.type)
    if filters.format:
        query = query.filter(Tournament.format == filters.format)
    if filters.organizer_id is not None:
        query = query.filter(Tournament.organizer_id == filters.organizer_id)
    if filters.venue:
        query = query.filter(Tournament.venue.ilike(f"%{filters.venue}%"))
    if filters.date_from is not None:
        query = query.filter(Tournament.tournament_start_date >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Tournament.tournament_start_date <= filters.date_to)
    if filters.has_open_registration is not None:
        open_now = _open_for_registration(now or system_clock.now())
        query = query.filter(open_now if filters.has_open_registration else not_(open_now))

    column = getattr(Tournament, filters.sort_by)
    order = column.asc() if filters.sort_direction == "asc" else column.desc()
    return query.order_by(order, Tournament.id).offset(filters.skip).limit(filters.limit).all()


def _open_for_registration(now: datetime):
    # tournament_lifecycle.can_register expressed in SQL
    return and_(
        Tournament.status == TournamentStatus.REGISTRATION_OPEN.value,
        Tournament.current_participants < Tournament.max_participants,
        or_(Tournament.registration_start_date.is_(None), Tournament.registration_start_date <= now),
        or_(Tournament.registration_end_date.is_(None), Tournament.registration_end_date >= now),
    )


def get_participant(db: Session, participant_id: int, for_update: bool = False) -> TournamentParticipant:
    participant = _get(db, TournamentParticipant, participant_id, for_update)
    if participant is None:
        raise NotFound("Participant", participant_id)
    return participant


def get_tournament_participant(db: Session, tournament_id: int, participant_id: int) -> TournamentParticipant:
    participant = get_participant(db, participant_id, for_update=True)
    if participant.tournament_id != tournament_id:
        raise NotFound("Participant", participant_id)
    return participant


def find_registration(
    db: Session, tournament_id: int, player_id: Optional[int] = None, team_id: Optional[int] = None
) -> Optional[TournamentParticipant]:
    query = db.query(TournamentParticipant).filter(TournamentParticipant.tournament_id == tournament_id)
    if player_id is not None:
        query = query.filter(TournamentParticipant.player_id == player_id)
    else:
        query = query.filter(TournamentParticipant.team_id == team_id)
    return query.first()


def list_participants(
    db: Session, tournament_id: int, registration_status: Optional[str] = None
) -> List[TournamentParticipant]:
    query = db.query(TournamentParticipant).filter(TournamentParticipant.tournament_id == tournament_id)
    if registration_status:
        query = query.filter(TournamentParticipant.registration_status == registration_status)
    return query.populate_existing().order_by(TournamentParticipant.id).all()


def list_confirmed(db: Session, tournament_id: int) -> List[TournamentParticipant]:
    return list_participants(db, tournament_id, RegistrationStatus.CONFIRMED.value)


def get_match(db: Session, match_id: int, for_update: bool = False) -> TournamentMatch:
    match = _get(db, TournamentMatch, match_id, for_update)
    if match is None:
        raise NotFound("Match", match_id)
    return match


def find_match(db: Session, match_id: Optional[int]) -> Optional[TournamentMatch]:
    if match_id is None:
        return None
    return _get(db, TournamentMatch, match_id, for_update=True)


def list_matches(db: Session, tournament_id: int, round_number: Optional[int] = None) -> List[TournamentMatch]:
    query = db.query(TournamentMatch).filter(TournamentMatch.tournament_id == tournament_id)
    if round_number is not None:
        query = query.filter(TournamentMatch.round_number == round_number)
    return query.order_by(TournamentMatch.round_number, TournamentMatch.id).all()


def count_losses(db: Session, tournament_id: int, participant_id: int) -> int:
    return (
        db.query(func.count(TournamentMatch.id))
        .filter(
            TournamentMatch.tournament_id == tournament_id,
            TournamentMatch.loser_id == participant_id,
            TournamentMatch.status.in_(DECIDED_MATCH_STATUSES),
        )
        .scalar()
    )


def get_player(db: Session, player_id: int) -> Player:
    player = db.get(Player, player_id)
    if player is None:
        raise NotFound("Player", player_id)
    return player


def get_team(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if team is None:
        raise NotFound("Team", team_id)
    return team
