import threading
from datetime import date, timedelta

import pytest

from tournament_engine.core.exceptions import (
    CapacityExceeded,
    DuplicateRegistration,
    EligibilityViolation,
    InvalidParticipantTransition,
    NotFound,
    RegistrationClosed,
)
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.participant_schemas import PaymentRecord, RegistrationCreate
from tournament_engine.services import participant_service, repositories, seeding_service, tournament_service


def counter(db, tournament_id):
    return repositories.get_tournament(db, tournament_id).current_participants


class TestRegistration:

    def test_register_creates_pending(self, factory, db, recorder):
        tournament = factory.open_tournament()
        participant = factory.register(tournament)
        assert participant.registration_status == "pending"
        assert counter(db, tournament.id) == 0
        assert recorder.events[-1].name == event_schemas.PARTICIPANT_REGISTERED
        assert recorder.events[-1].payload["participant_id"] == participant.id

    def test_duplicate_player(self, factory):
        tournament = factory.open_tournament()
        player = factory.player()
        factory.register(tournament, player)
        with pytest.raises(DuplicateRegistration):
            factory.register(tournament, player)

    def test_unknown_player(self, factory, db, ctx):
        tournament = factory.open_tournament()
        with pytest.raises(NotFound):
            participant_service.register(db, tournament.id, RegistrationCreate(player_id=999), ctx)

    def test_registration_window_enforced(self, factory, db, ctx, clock):
        tournament = factory.tournament(
            registration_start_date=clock.now() + timedelta(days=1),
            registration_end_date=clock.now() + timedelta(days=3),
        )
        tournament_service.open_registration(db, tournament.id, ctx)

        with pytest.raises(RegistrationClosed):
            factory.register(tournament)
        clock.advance(timedelta(days=2))
        assert factory.register(tournament).registration_status == "pending"
        clock.advance(timedelta(days=2))
        with pytest.raises(RegistrationClosed):
            factory.register(tournament)

    def test_eligibility_from_player_record(self, factory, clock):
        tournament = factory.open_tournament(settings={"min_age": 18})
        today = clock.today()
        junior = factory.player(date_of_birth=date(today.year - 15, 1, 1))
        with pytest.raises(EligibilityViolation) as exc_info:
            factory.register(tournament, junior)
        assert exc_info.value.rule == "min_age"

    def test_mixed_doubles_team(self, factory):
        tournament = factory.open_tournament(type="mixed_doubles")
        team = factory.team(factory.player(gender="male"), factory.player(gender="female"))
        participant = factory.register(tournament, team=team)
        assert participant.is_team_participant
        assert participant.team_id == team.id

        solo = factory.player(gender="female")
        with pytest.raises(EligibilityViolation):
            factory.register(tournament, solo)


class TestConfirmation:

    def test_confirm_increments_counter(self, factory, db, ctx):
        tournament = factory.open_tournament()
        participant = factory.register(tournament)
        confirmed = participant_service.confirm(db, tournament.id, participant.id, ctx)
        assert confirmed.registration_status == "confirmed"
        assert confirmed.confirmed_at == ctx.now()
        assert counter(db, tournament.id) == 1

    def test_full_tournament_leaves_participant_pending(self, factory, db, ctx):
        tournament = factory.open_tournament(min_participants=1, max_participants=2)
        late = factory.register(tournament)
        factory.confirmed(tournament, [1000, 1000])

        with pytest.raises(CapacityExceeded):
            participant_service.confirm(db, tournament.id, late.id, ctx)
        assert repositories.get_participant(db, late.id).registration_status == "pending"
        assert counter(db, tournament.id) == 2

        participant_service.waitlist(db, tournament.id, late.id, ctx)
        assert repositories.get_participant(db, late.id).registration_status == "waitlisted"

    def test_waitlisted_confirmed_after_withdrawal(self, factory, db, ctx):
        tournament = factory.open_tournament(min_participants=1, max_participants=2)
        late = factory.register(tournament)
        first, _ = factory.confirmed(tournament, [1000, 1000])
        participant_service.waitlist(db, tournament.id, late.id, ctx)

        participant_service.withdraw(db, tournament.id, first.id, ctx)
        assert counter(db, tournament.id) == 1
        participant_service.confirm(db, tournament.id, late.id, ctx)
        assert counter(db, tournament.id) == 2

    def test_participant_of_other_tournament(self, factory, db, ctx):
        tournament = factory.open_tournament()
        other = factory.open_tournament(name="Other Open")
        participant = factory.register(other)
        with pytest.raises(NotFound):
            participant_service.confirm(db, tournament.id, participant.id, ctx)

    def test_concurrent_confirmations_on_last_slot(self, factory, db, ctx, session_factory):
        tournament = factory.open_tournament(min_participants=1, max_participants=2)
        factory.confirmed(tournament, [1000])
        contenders = [factory.register(tournament).id, factory.register(tournament).id]
        tournament_id = tournament.id

        barrier = threading.Barrier(len(contenders))
        outcomes = {}

        def confirm(participant_id):
            session = session_factory()
            try:
                barrier.wait()
                participant_service.confirm(session, tournament_id, participant_id, ctx)
                outcomes[participant_id] = "confirmed"
            except CapacityExceeded:
                outcomes[participant_id] = "full"
            finally:
                session.close()

        threads = [threading.Thread(target=confirm, args=(pid,)) for pid in contenders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(outcomes.values()) == ["confirmed", "full"]
        assert counter(db, tournament_id) == 2
        statuses = sorted(p.registration_status for p in participant_service.list_participants(db, tournament_id))
        assert statuses == ["confirmed", "confirmed", "pending"]


class TestWithdrawAndDisqualify:

    def test_withdraw_pending_keeps_counter(self, factory, db, ctx):
        tournament = factory.open_tournament()
        factory.confirmed(tournament, [1000])
        pending = factory.register(tournament)
        participant_service.withdraw(db, tournament.id, pending.id, ctx)
        assert counter(db, tournament.id) == 1
        assert repositories.get_participant(db, pending.id).tournament_status == "withdrawn"

    def test_withdraw_closes_seed_gap(self, factory, db, ctx):
        tournament = factory.open_tournament()
        top, second, third = factory.confirmed(tournament, [1900, 1500, 1200])
        seeding_service.auto_assign_seeds(db, tournament.id, ctx)

        participant_service.withdraw(db, tournament.id, top.id, ctx)
        assert repositories.get_participant(db, top.id).seed_number is None
        assert repositories.get_participant(db, second.id).seed_number == 1
        assert repositories.get_participant(db, third.id).seed_number == 2
        assert counter(db, tournament.id) == 2

    def test_disqualify_keeps_slot(self, factory, db, ctx):
        tournament, participants = factory.running_tournament()
        participant_service.disqualify(db, tournament.id, participants[0].id, ctx)
        disqualified = repositories.get_participant(db, participants[0].id)
        assert disqualified.registration_status == "disqualified"
        assert disqualified.tournament_status == "eliminated"
        assert counter(db, tournament.id) == 4

    def test_disqualify_then_withdraw_keeps_seeds_contiguous(self, factory, db, ctx):
        tournament = factory.open_tournament()
        first, second, third, fourth = factory.confirmed(tournament, [2000, 1800, 1600, 1400])
        seeding_service.auto_assign_seeds(db, tournament.id, ctx)
        tournament_service.close_registration(db, tournament.id, ctx)

        participant_service.disqualify(db, tournament.id, third.id, ctx)
        assert repositories.get_participant(db, third.id).seed_number is None
        assert repositories.get_participant(db, fourth.id).seed_number == 3

        participant_service.withdraw(db, tournament.id, second.id, ctx)
        seeds = [repositories.get_participant(db, p.id).seed_number for p in (first, second, third, fourth)]
        assert seeds == [1, None, None, 2]
        assert seeding_service.available_seeds(db, tournament.id) == []
        assert counter(db, tournament.id) == 3

    def test_reject_confirmed_is_illegal(self, factory, db, ctx):
        tournament = factory.open_tournament()
        participant, = factory.confirmed(tournament, [1000])
        with pytest.raises(InvalidParticipantTransition):
            participant_service.reject(db, tournament.id, participant.id, ctx)
        assert repositories.get_participant(db, participant.id).registration_status == "confirmed"

    def test_record_payment(self, factory, db, ctx):
        tournament = factory.open_tournament(entry_fee="20.00")
        participant = factory.register(tournament)
        paid = participant_service.record_payment(
            db, tournament.id, participant.id, PaymentRecord(payment_method="card", payment_reference="R-1"), ctx
        )
        assert paid.entry_fee_paid
        assert paid.payment_method == "card"
        assert paid.payment_date == ctx.now()
