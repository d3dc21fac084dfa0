from datetime import date, datetime
from typing import List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tournament_engine.core.clock import FixedClock
from tournament_engine.core.database import init_db
from tournament_engine.models.player import Player
from tournament_engine.models.team import Team
from tournament_engine.models.tournament import Tournament
from tournament_engine.schemas.match_schemas import MatchCreate
from tournament_engine.schemas.participant_schemas import RegistrationCreate
from tournament_engine.schemas.tournament_schemas import TournamentCreate
from tournament_engine.services import match_service, participant_service, tournament_service
from tournament_engine.services.context import EngineContext
from tournament_engine.services.events import ALL_EVENTS, EventDispatcher, EventRecorder
from tournament_engine.services.locks import TournamentLocks

START = datetime(2024, 6, 1, 9, 0)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'tournaments_test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def ctx(clock, recorder):
    dispatcher = EventDispatcher()
    dispatcher.subscribe(ALL_EVENTS, recorder)
    return EngineContext(actor_id=7, clock=clock, dispatcher=dispatcher, locks=TournamentLocks())


class Factory:
    """Builds persisted players, tournaments and brackets through the services."""

    def __init__(self, db, ctx):
        self.db = db
        self.ctx = ctx
        self._players = 0

    def player(self, name: Optional[str] = None, gender: str = "male", skill_rating: int = 1000,
               date_of_birth: Optional[date] = None) -> Player:
        self._players += 1
        player = Player(
            name=name or f"Player {self._players}",
            gender=gender,
            skill_rating=skill_rating,
            date_of_birth=date_of_birth,
        )
        self.db.add(player)
        self.db.commit()
        return player

    def team(self, player1: Player, player2: Player, team_type: str = "mixed_doubles", team_rating: int = 1000) -> Team:
        team = Team(
            name=f"{player1.name} / {player2.name}",
            team_type=team_type,
            team_rating=team_rating,
            player1_id=player1.id,
            player2_id=player2.id,
        )
        self.db.add(team)
        self.db.commit()
        return team

    def tournament(self, **overrides) -> Tournament:
        data = {
            "name": "Summer Open",
            "type": "men_singles",
            "format": "single_elimination",
            "min_participants": 2,
            "max_participants": 8,
        }
        data.update(overrides)
        return tournament_service.create_tournament(self.db, TournamentCreate(**data), self.ctx)

    def open_tournament(self, **overrides) -> Tournament:
        tournament = self.tournament(**overrides)
        return tournament_service.open_registration(self.db, tournament.id, self.ctx)

    def register(self, tournament: Tournament, player: Optional[Player] = None, team: Optional[Team] = None):
        if team is not None:
            registration = RegistrationCreate(team_id=team.id)
        else:
            registration = RegistrationCreate(player_id=(player or self.player()).id)
        return participant_service.register(self.db, tournament.id, registration, self.ctx)

    def confirmed(self, tournament: Tournament, ratings: Sequence[int]) -> List:
        participants = []
        for rating in ratings:
            participant = self.register(tournament, self.player(skill_rating=rating))
            participants.append(participant_service.confirm(self.db, tournament.id, participant.id, self.ctx))
        return participants

    def running_tournament(self, ratings: Sequence[int] = (1000, 1000, 1000, 1000), **overrides):
        tournament = self.open_tournament(**overrides)
        participants = self.confirmed(tournament, ratings)
        tournament_service.close_registration(self.db, tournament.id, self.ctx)
        tournament_service.start_tournament(self.db, tournament.id, self.ctx)
        return tournament, participants

    def match(self, tournament: Tournament, round_number: int = 1, **fields):
        data = MatchCreate(tournament_id=tournament.id, round_number=round_number, **fields)
        return match_service.create_match(self.db, data, self.ctx)

    def bracket_of_four(self, tournament: Tournament, participants: Sequence):
        """Two semifinals feeding one final. Returns (semi1, semi2, final)."""
        final = self.match(tournament, round_number=2, round_name="Final", match_number="F1")
        semi1 = self.match(
            tournament,
            round_number=1,
            round_name="Semifinals",
            match_number="SF1",
            participant1_id=participants[0].id,
            participant2_id=participants[3].id,
            next_match_id=final.id,
            next_match_position="participant1",
        )
        semi2 = self.match(
            tournament,
            round_number=1,
            round_name="Semifinals",
            match_number="SF2",
            participant1_id=participants[1].id,
            participant2_id=participants[2].id,
            next_match_id=final.id,
            next_match_position="participant2",
        )
        return semi1, semi2, final


@pytest.fixture
def factory(db, ctx):
    return Factory(db, ctx)
