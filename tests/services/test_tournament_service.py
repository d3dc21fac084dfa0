from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Update

from tournament_engine.core.exceptions import (
    CapacityExceeded,
    InsufficientParticipants,
    InvalidStateTransition,
    NotFound,
    ParticipantCountUnderflow,
    RegistrationClosed,
)
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.tournament_schemas import FinalStanding, TournamentFilter, TournamentResults
from tournament_engine.services import participant_service, repositories, tournament_service


class TestCreateTournament:

    def test_created_as_draft(self, factory, ctx):
        tournament = factory.tournament(name="Summer Open 2024!", entry_fee=Decimal("25.00"),
                                        settings={"min_skill_level": 900})
        assert tournament.id is not None
        assert tournament.status == "draft"
        assert tournament.slug == "summer-open-2024"
        assert tournament.current_participants == 0
        assert tournament.organizer_id == ctx.actor_id
        assert tournament.eligibility.min_skill_level == 900
        assert tournament.created_at == ctx.now()

    def test_slug_collisions_get_suffix(self, factory):
        first = factory.tournament(name="City Cup")
        second = factory.tournament(name="City  Cup")
        third = factory.tournament(name="city-cup")
        assert [first.slug, second.slug, third.slug] == ["city-cup", "city-cup-2", "city-cup-3"]

    def test_min_must_be_below_max(self, factory):
        with pytest.raises(ValueError):
            factory.tournament(min_participants=8, max_participants=8)

    def test_lookup_by_slug(self, factory, db):
        tournament = factory.tournament(name="Autumn Classic")
        assert tournament_service.get_tournament_by_slug(db, "autumn-classic").id == tournament.id

    def test_soft_delete_hides_tournament(self, factory, db, ctx):
        tournament = factory.tournament()
        tournament_service.soft_delete_tournament(db, tournament.id, ctx)
        with pytest.raises(NotFound):
            tournament_service.get_tournament(db, tournament.id)
        assert tournament.id not in [t.id for t in tournament_service.list_tournaments(db)]

    def test_cannot_delete_running_tournament(self, factory, db, ctx):
        tournament, _ = factory.running_tournament()
        with pytest.raises(InvalidStateTransition):
            tournament_service.soft_delete_tournament(db, tournament.id, ctx)


class TestListTournaments:

    def test_filters(self, factory, db, ctx):
        singles = factory.open_tournament(name="Singles Cup", venue="Harbour Courts")
        doubles = factory.tournament(name="Doubles Cup", type="men_doubles", venue="Lakeside Club")
        other_organizer = factory.tournament(name="Guest Cup")
        other_organizer.organizer_id = 99
        db.commit()

        def ids(**criteria):
            return [t.id for t in tournament_service.list_tournaments(db, TournamentFilter(**criteria), ctx)]

        assert ids(type="men_doubles") == [doubles.id]
        assert ids(has_open_registration=True) == [singles.id]
        assert singles.id not in ids(has_open_registration=False)
        assert other_organizer.id not in ids(organizer_id=ctx.actor_id)
        assert ids(organizer_id=99) == [other_organizer.id]
        assert ids(venue="lakeside") == [doubles.id]

    def test_open_registration_respects_window(self, factory, db, ctx, clock):
        tournament = factory.open_tournament(registration_end_date=clock.now() + timedelta(days=1))
        criteria = TournamentFilter(has_open_registration=True)
        assert [t.id for t in tournament_service.list_tournaments(db, criteria, ctx)] == [tournament.id]
        clock.advance(timedelta(days=2))
        assert tournament_service.list_tournaments(db, criteria, ctx) == []

    def test_sorting_and_paging(self, factory, db, ctx):
        created = [factory.tournament(name=name) for name in ("Gamma Open", "Alpha Open", "Beta Open")]
        by_name = TournamentFilter(sort_by="name", sort_direction="asc")
        names = [t.name for t in tournament_service.list_tournaments(db, by_name, ctx)]
        assert names == ["Alpha Open", "Beta Open", "Gamma Open"]
        page = TournamentFilter(sort_by="name", sort_direction="asc", skip=1, limit=1)
        assert [t.id for t in tournament_service.list_tournaments(db, page, ctx)] == [created[2].id]

class TestLifecycle:

    def test_full_happy_path_emits_events(self, factory, db, ctx, recorder):
        tournament, participants = factory.running_tournament(ratings=(1000, 1100))
        assert tournament_service.get_tournament(db, tournament.id).status == "in_progress"

        results = TournamentResults(
            standings=[
                FinalStanding(participant_id=participants[1].id, position=1, prize_money=Decimal("300")),
                FinalStanding(participant_id=participants[0].id, position=2, prize_money=Decimal("100")),
            ]
        )
        completed = tournament_service.complete_tournament(db, tournament.id, results, ctx)
        assert completed.status == "completed"
        assert completed.tournament_end_date == ctx.now()
        assert completed.results["standings"][0]["position"] == 1
        champion = repositories.get_participant(db, participants[1].id)
        assert champion.tournament_status == "champion"
        assert champion.prize_money == Decimal("300")

        assert recorder.names[:2] == [event_schemas.TOURNAMENT_REGISTRATION_OPENED, event_schemas.PARTICIPANT_REGISTERED]
        assert event_schemas.TOURNAMENT_STARTED in recorder.names
        assert recorder.names[-1] == event_schemas.TOURNAMENT_COMPLETED

    def test_min_participants_start_scenario(self, factory, db, ctx):
        tournament = factory.open_tournament(min_participants=4, max_participants=8)
        factory.confirmed(tournament, [1000, 1000, 1000])
        tournament_service.close_registration(db, tournament.id, ctx)

        with pytest.raises(InsufficientParticipants):
            tournament_service.start_tournament(db, tournament.id, ctx)
        assert tournament_service.get_tournament(db, tournament.id).status == "registration_closed"

        with pytest.raises(RegistrationClosed):
            factory.register(tournament)
        assert len(participant_service.list_participants(db, tournament.id, "confirmed")) == 3

    def test_start_with_exact_minimum(self, factory, db, ctx):
        tournament = factory.open_tournament(min_participants=4, max_participants=8)
        pending = factory.register(tournament)
        factory.confirmed(tournament, [1000, 1000, 1000])
        tournament_service.close_registration(db, tournament.id, ctx)
        participant_service.confirm(db, tournament.id, pending.id, ctx)

        started = tournament_service.start_tournament(db, tournament.id, ctx)
        assert started.status == "in_progress"
        assert started.current_participants == 4

    def test_status_is_monotonic(self, factory, db, ctx):
        tournament, _ = factory.running_tournament()
        with pytest.raises(InvalidStateTransition):
            tournament_service.open_registration(db, tournament.id, ctx)
        with pytest.raises(InvalidStateTransition):
            tournament_service.close_registration(db, tournament.id, ctx)
        tournament_service.cancel_tournament(db, tournament.id, "Sponsor pulled out", ctx)
        for operation in (tournament_service.start_tournament, tournament_service.open_registration):
            with pytest.raises(InvalidStateTransition):
                operation(db, tournament.id, ctx)
        assert tournament_service.get_tournament(db, tournament.id).status == "cancelled"

    def test_failed_transition_dispatches_nothing(self, factory, db, ctx, recorder):
        tournament = factory.tournament()
        before = list(recorder.names)
        with pytest.raises(InvalidStateTransition):
            tournament_service.start_tournament(db, tournament.id, ctx)
        assert recorder.names == before

    def test_can_register_follows_clock(self, factory, db, ctx, clock):
        tournament = factory.tournament(registration_end_date=clock.now() + timedelta(days=1))
        tournament_service.open_registration(db, tournament.id, ctx)
        assert tournament_service.can_register(db, tournament.id, ctx)
        clock.advance(timedelta(days=2))
        assert not tournament_service.can_register(db, tournament.id, ctx)


class TestAdjustParticipantCount:

    def test_ceiling_leaves_counter_untouched(self, factory, db):
        tournament = factory.open_tournament(min_participants=1, max_participants=2)
        factory.confirmed(tournament, [1000, 1000])
        tournament = repositories.get_tournament(db, tournament.id)
        with pytest.raises(CapacityExceeded):
            tournament_service.adjust_participant_count(db, tournament, 1)
        db.rollback()
        assert repositories.get_tournament(db, tournament.id).current_participants == 2

    def test_floor(self, factory, db):
        tournament = factory.open_tournament()
        with pytest.raises(ParticipantCountUnderflow):
            tournament_service.adjust_participant_count(db, tournament, -1)
        db.rollback()

    def test_stale_read_does_not_overbook(self, factory, db, session_factory, ctx):
        tournament = factory.open_tournament(min_participants=1, max_participants=2)
        factory.confirmed(tournament, [1000])
        other = factory.register(tournament)

        # A second session holds an outdated view of the counter
        stale_session = session_factory()
        try:
            stale = stale_session.get(type(tournament), tournament.id)
            assert stale.current_participants == 1
            participant_service.confirm(db, tournament.id, other.id, ctx)
            with pytest.raises(CapacityExceeded):
                tournament_service.adjust_participant_count(stale_session, stale, 1)
            stale_session.rollback()
        finally:
            stale_session.close()
        assert repositories.get_tournament(db, tournament.id).current_participants == 2

    def test_retries_on_operational_error(self, factory, db, monkeypatch):
        tournament = factory.open_tournament()
        calls = []
        original = db.execute

        def flaky_execute(statement, *args, **kwargs):
            if isinstance(statement, Update):
                calls.append(statement)
            if len(calls) == 1 and isinstance(statement, Update):
                raise OperationalError("UPDATE tournaments", {}, Exception("database is locked"))
            return original(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", flaky_execute)
        assert tournament_service.adjust_participant_count(db, tournament, 1) == 1
        assert len(calls) == 2
        monkeypatch.undo()
        db.commit()
