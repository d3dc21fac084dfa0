from datetime import timedelta

import pytest

from tournament_engine.core.exceptions import (
    BracketInconsistency,
    InvalidStateTransition,
    MatchNotReady,
    ResultAlreadyRecorded,
)
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.match_schemas import (
    MatchResultSubmit,
    MatchScore,
    NoShowRequest,
    RescheduleRequest,
    WalkoverRequest,
)
from tournament_engine.services import match_service, repositories, tournament_service


def result(*sets, winner_id=None):
    score = MatchScore(sets=[{"participant1_games": a, "participant2_games": b} for a, b in sets])
    return MatchResultSubmit(score=score, winner_id=winner_id)


def play(db, ctx, match, *sets, winner_id=None):
    match_service.start_match(db, match.id, ctx)
    return match_service.complete_match(db, match.id, result(*sets, winner_id=winner_id), ctx)


@pytest.fixture
def bracket(factory):
    tournament, participants = factory.running_tournament(ratings=(1800, 1600, 1400, 1200))
    semi1, semi2, final = factory.bracket_of_four(tournament, participants)
    return tournament, participants, semi1, semi2, final


class TestCreateMatch:

    def test_successor_must_be_in_later_round(self, factory, bracket):
        tournament, participants, semi1, _, _ = bracket
        with pytest.raises(BracketInconsistency):
            factory.match(tournament, round_number=1, next_match_id=semi1.id, next_match_position="participant1")

    def test_dangling_successor(self, factory, bracket):
        tournament = bracket[0]
        with pytest.raises(BracketInconsistency):
            factory.match(tournament, round_number=1, next_match_id=9999, next_match_position="participant1")

    def test_successor_in_other_tournament(self, factory, bracket):
        final = bracket[4]
        other, _ = factory.running_tournament(name="Other Open")
        with pytest.raises(BracketInconsistency):
            factory.match(other, round_number=1, next_match_id=final.id, next_match_position="participant1")

    def test_slot_from_other_tournament(self, factory, bracket):
        participants = bracket[1]
        other, _ = factory.running_tournament(name="Other Open")
        with pytest.raises(BracketInconsistency):
            factory.match(other, round_number=1, participant1_id=participants[0].id)

    def test_creation_is_audited(self, db, bracket):
        semi1 = bracket[2]
        events = match_service.list_events(db, semi1.id)
        assert [e.event_type for e in events] == ["match_created"]


class TestBracketProgression:

    def test_four_player_bracket_crowns_champion(self, db, ctx, recorder, bracket):
        tournament, participants, semi1, semi2, final = bracket
        top, second, third, fourth = participants

        play(db, ctx, semi1, (6, 3), (6, 2))
        play(db, ctx, semi2, (4, 6), (6, 7))

        final = match_service.get_match(db, final.id)
        assert final.participant1_id == top.id
        assert final.participant2_id == third.id
        assert repositories.get_participant(db, fourth.id).tournament_status == "eliminated"
        assert repositories.get_participant(db, second.id).tournament_status == "eliminated"

        play(db, ctx, final, (7, 6), (3, 6), (6, 4))

        tournament = tournament_service.get_tournament(db, tournament.id)
        assert tournament.champion_id == top.id
        champion = repositories.get_participant(db, top.id)
        finalist = repositories.get_participant(db, third.id)
        assert (champion.tournament_status, champion.final_position) == ("champion", 1)
        assert (finalist.tournament_status, finalist.final_position) == ("finalist", 2)
        assert (champion.matches_played, champion.matches_won) == (2, 2)
        assert (champion.sets_won, champion.sets_lost) == (4, 1)
        assert event_schemas.TOURNAMENT_CHAMPION_DECIDED in recorder.names
        assert recorder.names.count(event_schemas.MATCH_WINNER_ADVANCED) == 2

    @pytest.mark.parametrize("third_place_first", [False, True])
    def test_third_place_playoff_does_not_take_the_title(self, factory, db, ctx, recorder, bracket, third_place_first):
        tournament, participants, semi1, semi2, final = bracket
        top, second, third, fourth = participants
        play(db, ctx, semi1, (6, 3), (6, 2))
        play(db, ctx, semi2, (4, 6), (6, 7))
        third_place = factory.match(
            tournament,
            round_number=2,
            round_name="Third place",
            participant1_id=fourth.id,
            participant2_id=second.id,
        )

        ordered = [(third_place, ((6, 1), (6, 1))), (final, ((7, 6), (6, 4)))]
        if not third_place_first:
            ordered.reverse()
        for match, sets in ordered:
            play(db, ctx, match, *sets)

        assert tournament_service.get_tournament(db, tournament.id).champion_id == top.id
        assert recorder.names.count(event_schemas.TOURNAMENT_CHAMPION_DECIDED) == 1
        playoff_winner = repositories.get_participant(db, fourth.id)
        assert playoff_winner.tournament_status == "eliminated"
        assert playoff_winner.final_position is None
        statuses = [repositories.get_participant(db, p.id).tournament_status for p in participants]
        assert statuses.count("champion") == 1

    def test_double_elimination_needs_two_losses(self, factory, db, ctx, recorder):
        tournament, (first, second) = factory.running_tournament(ratings=(1500, 1400), format="double_elimination")
        opener = factory.match(tournament, round_number=1, participant1_id=first.id, participant2_id=second.id)
        decider = factory.match(
            tournament, round_number=2, round_name="Grand final", participant1_id=first.id, participant2_id=second.id
        )

        play(db, ctx, opener, (6, 2), (6, 2))
        assert repositories.get_participant(db, second.id).tournament_status == "active"
        assert tournament_service.get_tournament(db, tournament.id).champion_id is None

        play(db, ctx, decider, (6, 4), (6, 4))
        runner_up = repositories.get_participant(db, second.id)
        assert runner_up.matches_lost == 2
        assert (runner_up.tournament_status, runner_up.final_position) == ("finalist", 2)
        eliminated = [e.payload["participant_id"] for e in recorder.events
                      if e.name == event_schemas.PARTICIPANT_ELIMINATED]
        assert eliminated == [second.id]
        assert tournament_service.get_tournament(db, tournament.id).champion_id == first.id

    def test_completion_is_idempotent(self, db, ctx, recorder, bracket):
        _, participants, semi1, _, final = bracket
        play(db, ctx, semi1, (6, 3), (6, 2))
        dispatched = len(recorder.events)

        again = match_service.complete_match(db, semi1.id, result((6, 3), (6, 2)), ctx)
        assert again.winner_id == participants[0].id
        assert len(recorder.events) == dispatched
        assert repositories.get_participant(db, participants[0].id).matches_played == 1
        assert match_service.get_match(db, final.id).participant1_id == participants[0].id

    def test_conflicting_result_is_rejected(self, db, ctx, bracket):
        _, participants, semi1, _, _ = bracket
        play(db, ctx, semi1, (6, 3), (6, 2))
        with pytest.raises(ResultAlreadyRecorded):
            match_service.complete_match(db, semi1.id, result((3, 6), (2, 6)), ctx)
        assert match_service.get_match(db, semi1.id).winner_id == participants[0].id

    def test_occupied_slot_rolls_back_whole_result(self, factory, db, ctx, bracket):
        tournament, participants, semi1, _, final = bracket
        # A second feeder wired into the same slot as the first semifinal
        extra = factory.match(
            tournament,
            round_number=1,
            participant1_id=participants[1].id,
            participant2_id=participants[2].id,
            next_match_id=final.id,
            next_match_position="participant1",
        )
        play(db, ctx, semi1, (6, 3), (6, 2))

        match_service.start_match(db, extra.id, ctx)
        with pytest.raises(BracketInconsistency):
            match_service.complete_match(db, extra.id, result((6, 1), (6, 1)), ctx)
        extra = match_service.get_match(db, extra.id)
        assert extra.status == "in_progress"
        assert repositories.get_participant(db, participants[1].id).matches_played == 0

    def test_final_cannot_start_before_feeders(self, db, ctx, bracket):
        final = bracket[4]
        with pytest.raises(MatchNotReady):
            match_service.start_match(db, final.id, ctx)


class TestWalkoverAndNoShow:

    def test_walkover_propagates_without_stats(self, db, ctx, bracket):
        _, participants, _, semi2, final = bracket
        walked = match_service.walkover(
            db, semi2.id, WalkoverRequest(winner_id=participants[2].id, reason="Injury"), ctx
        )
        assert walked.status == "walkover"
        assert walked.loser_id == participants[1].id
        assert match_service.get_match(db, final.id).participant2_id == participants[2].id
        assert repositories.get_participant(db, participants[2].id).matches_played == 0
        assert repositories.get_participant(db, participants[1].id).tournament_status == "eliminated"

        again = match_service.walkover(db, semi2.id, WalkoverRequest(winner_id=participants[2].id), ctx)
        assert again.winner_id == participants[2].id

    def test_no_show(self, db, ctx, bracket):
        _, participants, semi1, _, final = bracket
        match_service.no_show(db, semi1.id, NoShowRequest(absent_participant_id=participants[0].id), ctx)
        decided = match_service.get_match(db, semi1.id)
        assert decided.status == "no_show"
        assert decided.winner_id == participants[3].id
        assert match_service.get_match(db, final.id).participant1_id == participants[3].id


class TestSchedulingAndGuards:

    def test_play_requires_running_tournament(self, factory, db, ctx):
        tournament = factory.open_tournament()
        participants = factory.confirmed(tournament, [1000, 1000])
        match = factory.match(tournament, participant1_id=participants[0].id, participant2_id=participants[1].id)
        with pytest.raises(InvalidStateTransition):
            match_service.start_match(db, match.id, ctx)
        # Preparing the schedule is fine before the start
        assert match_service.mark_ready(db, match.id, ctx).status == "ready_to_start"

    def test_postpone_reschedule_and_cancel(self, db, ctx, clock, bracket):
        semi1 = bracket[2]
        match_service.postpone(db, semi1.id, "Rain", ctx)
        new_time = clock.now() + timedelta(days=1)
        rescheduled = match_service.reschedule(
            db, semi1.id, RescheduleRequest(scheduled_at=new_time, court_number="2"), ctx
        )
        assert rescheduled.status == "scheduled"
        assert rescheduled.scheduled_at == new_time

        cancelled = match_service.cancel(db, semi1.id, None, ctx)
        assert cancelled.status == "cancelled"
        assert cancelled.winner_id is None
        assert [e.event_type for e in match_service.list_events(db, semi1.id)] == [
            "match_created",
            "postponed",
            "rescheduled",
            "cancelled",
        ]

    def test_list_matches_by_round(self, db, bracket):
        tournament = bracket[0]
        assert len(match_service.list_matches(db, tournament.id)) == 3
        assert [m.round_name for m in match_service.list_matches(db, tournament.id, round_number=2)] == ["Final"]
