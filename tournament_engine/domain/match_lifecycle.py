from datetime import datetime
from typing import List, Optional

from tournament_engine.core.exceptions import (
    InvalidResult,
    InvalidStateTransition,
    MatchNotInProgress,
    MatchNotReady,
    ResultAlreadyRecorded,
    UndeterminedResult,
)
from tournament_engine.domain import make_event
from tournament_engine.domain import participant_lifecycle
from tournament_engine.models.match import MatchStatus, TournamentMatch
from tournament_engine.models.match_event import MatchEvent
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.event_schemas import DomainEvent
from tournament_engine.schemas.match_schemas import MatchScore

STARTABLE_STATUSES = {MatchStatus.SCHEDULED.value, MatchStatus.READY_TO_START.value}


def record_event(
    match: TournamentMatch,
    event_type: str,
    description: str,
    now: datetime,
    actor_id: Optional[int] = None,
    **payload,
) -> MatchEvent:
    """Append an entry to the match's audit log."""
    event = MatchEvent(
        event_type=event_type,
        description=description,
        payload=payload or None,
        actor_id=actor_id,
        created_at=now,
    )
    match.events.append(event)
    return event


def _illegal(match: TournamentMatch, action: str) -> InvalidStateTransition:
    return InvalidStateTransition(
        f"Cannot {action} match {match.id} in status '{match.status}'",
        {"match_id": match.id, "status": match.status, "action": action},
    )


def _require_both_participants(match: TournamentMatch) -> None:
    if not match.has_both_participants:
        raise MatchNotReady(
            f"Match {match.id} does not have both participants assigned",
            {
                "match_id": match.id,
                "participant1_id": match.participant1_id,
                "participant2_id": match.participant2_id,
            },
        )


def _require_participant(match: TournamentMatch, participant_id: int, role: str) -> None:
    if participant_id is None or participant_id not in match.participant_ids:
        raise InvalidResult(
            f"{role} {participant_id} is not a participant of match {match.id}",
            {"match_id": match.id, role.lower().replace(" ", "_"): participant_id},
        )


def mark_ready(match: TournamentMatch, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if match.status != MatchStatus.SCHEDULED.value:
        raise _illegal(match, "mark ready")
    _require_both_participants(match)
    match.status = MatchStatus.READY_TO_START.value
    record_event(match, "match_ready", "Match ready to start", now, actor_id)
    return []


def start(match: TournamentMatch, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if match.status not in STARTABLE_STATUSES:
        raise _illegal(match, "start")
    _require_both_participants(match)
    match.status = MatchStatus.IN_PROGRESS.value
    match.started_at = now
    record_event(match, "match_started", "Match started", now, actor_id)
    return [make_event(event_schemas.MATCH_STARTED, match.tournament_id, now, actor_id, match_id=match.id)]


def determine_winner(match: TournamentMatch, score: MatchScore) -> Optional[int]:
    """Winner by sets won, or None on a tie."""
    if score.sets_won_participant1 > score.sets_won_participant2:
        return match.participant1_id
    if score.sets_won_participant2 > score.sets_won_participant1:
        return match.participant2_id
    return None


def _apply_stats(match: TournamentMatch, score: MatchScore) -> None:
    p1_won = match.winner_id == match.participant1_id
    participant_lifecycle.record_match_result(
        match.participant1,
        p1_won,
        score.sets_won_participant1,
        score.sets_won_participant2,
        score.games_won_participant1,
        score.games_won_participant2,
    )
    participant_lifecycle.record_match_result(
        match.participant2,
        not p1_won,
        score.sets_won_participant2,
        score.sets_won_participant1,
        score.games_won_participant2,
        score.games_won_participant1,
    )


def complete(
    match: TournamentMatch,
    score: MatchScore,
    winner_id: Optional[int],
    now: datetime,
    actor_id: Optional[int] = None,
) -> List[DomainEvent]:
    """Record the result of an in-progress match and update both participants' stats.

    Re-completing with the same winner is a no-op so a retried request does not
    double-count; a different winner raises ResultAlreadyRecorded.
    """
    if match.status == MatchStatus.COMPLETED.value:
        resolved = winner_id if winner_id is not None else determine_winner(match, score)
        if resolved == match.winner_id:
            return []
        raise ResultAlreadyRecorded(
            f"Match {match.id} is already completed with winner {match.winner_id}",
            {"match_id": match.id, "winner_id": match.winner_id, "requested_winner_id": resolved},
        )
    if match.status != MatchStatus.IN_PROGRESS.value:
        raise MatchNotInProgress(
            f"Match {match.id} is '{match.status}', only in-progress matches can be completed",
            {"match_id": match.id, "status": match.status},
        )

    if winner_id is None:
        winner_id = determine_winner(match, score)
        if winner_id is None:
            raise UndeterminedResult(
                f"Score of match {match.id} is tied on sets; an explicit winner is required",
                {
                    "match_id": match.id,
                    "sets_won_participant1": score.sets_won_participant1,
                    "sets_won_participant2": score.sets_won_participant2,
                },
            )
    else:
        _require_participant(match, winner_id, "Winner")

    match.status = MatchStatus.COMPLETED.value
    match.winner_id = winner_id
    match.loser_id = match.opponent_of(winner_id)
    match.completed_at = now
    if match.started_at is not None:
        match.duration_minutes = int((now - match.started_at).total_seconds() // 60)
    match.score_data = score.model_dump()
    match.final_score = score.score_string() or f"{score.sets_won_participant1}-{score.sets_won_participant2}"
    match.sets_won_participant1 = score.sets_won_participant1
    match.sets_won_participant2 = score.sets_won_participant2
    match.games_won_participant1 = score.games_won_participant1
    match.games_won_participant2 = score.games_won_participant2
    _apply_stats(match, score)

    record_event(
        match,
        "match_completed",
        "Match completed",
        now,
        actor_id,
        winner_id=match.winner_id,
        loser_id=match.loser_id,
        final_score=match.final_score,
    )
    return [
        make_event(
            event_schemas.MATCH_COMPLETED,
            match.tournament_id,
            now,
            actor_id,
            match_id=match.id,
            winner_id=match.winner_id,
            loser_id=match.loser_id,
            final_score=match.final_score,
        )
    ]


def walkover(
    match: TournamentMatch, winner_id: int, reason: str, now: datetime, actor_id: Optional[int] = None
) -> List[DomainEvent]:
    if match.status == MatchStatus.WALKOVER.value:
        if match.winner_id == winner_id:
            return []
        raise ResultAlreadyRecorded(
            f"Match {match.id} was already awarded to {match.winner_id} by walkover",
            {"match_id": match.id, "winner_id": match.winner_id, "requested_winner_id": winner_id},
        )
    if match.status not in STARTABLE_STATUSES:
        raise _illegal(match, "award a walkover for")
    _require_participant(match, winner_id, "Winner")

    match.status = MatchStatus.WALKOVER.value
    match.winner_id = winner_id
    match.loser_id = match.opponent_of(winner_id)
    match.final_score = reason
    match.notes = reason
    match.completed_at = now
    record_event(match, "walkover", reason, now, actor_id, winner_id=winner_id, loser_id=match.loser_id)
    return [
        make_event(
            event_schemas.MATCH_WALKOVER,
            match.tournament_id,
            now,
            actor_id,
            match_id=match.id,
            winner_id=match.winner_id,
            loser_id=match.loser_id,
            reason=reason,
        )
    ]


def no_show(
    match: TournamentMatch, absent_participant_id: int, reason: str, now: datetime, actor_id: Optional[int] = None
) -> List[DomainEvent]:
    """Award the match to the opponent of a participant who did not turn up."""
    if match.status == MatchStatus.NO_SHOW.value:
        if match.loser_id == absent_participant_id:
            return []
        raise ResultAlreadyRecorded(
            f"Match {match.id} was already decided as a no-show of {match.loser_id}",
            {"match_id": match.id, "loser_id": match.loser_id, "requested_absent_id": absent_participant_id},
        )
    if match.status not in STARTABLE_STATUSES | {MatchStatus.IN_PROGRESS.value}:
        raise _illegal(match, "record a no-show for")
    _require_participant(match, absent_participant_id, "Absent participant")
    winner_id = match.opponent_of(absent_participant_id)
    if winner_id is None:
        raise MatchNotReady(
            f"Match {match.id} has no opponent to award the no-show to",
            {"match_id": match.id, "absent_participant_id": absent_participant_id},
        )

    match.status = MatchStatus.NO_SHOW.value
    match.winner_id = winner_id
    match.loser_id = absent_participant_id
    match.final_score = reason
    match.notes = reason
    match.completed_at = now
    record_event(match, "no_show", reason, now, actor_id, winner_id=winner_id, loser_id=absent_participant_id)
    return [
        make_event(
            event_schemas.MATCH_NO_SHOW,
            match.tournament_id,
            now,
            actor_id,
            match_id=match.id,
            winner_id=winner_id,
            loser_id=absent_participant_id,
            reason=reason,
        )
    ]


def postpone(match: TournamentMatch, reason: str, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if match.status not in STARTABLE_STATUSES:
        raise _illegal(match, "postpone")
    match.status = MatchStatus.POSTPONED.value
    match.notes = reason
    record_event(match, "postponed", reason, now, actor_id)
    return [make_event(event_schemas.MATCH_POSTPONED, match.tournament_id, now, actor_id, match_id=match.id, reason=reason)]


def cancel(match: TournamentMatch, reason: str, now: datetime, actor_id: Optional[int] = None) -> List[DomainEvent]:
    if match.is_terminal:
        raise _illegal(match, "cancel")
    match.status = MatchStatus.CANCELLED.value
    match.notes = reason
    record_event(match, "cancelled", reason, now, actor_id)
    return [make_event(event_schemas.MATCH_CANCELLED, match.tournament_id, now, actor_id, match_id=match.id, reason=reason)]


def reschedule(
    match: TournamentMatch,
    scheduled_at: datetime,
    court_number: Optional[str],
    now: datetime,
    actor_id: Optional[int] = None,
) -> List[DomainEvent]:
    """Move the match to a new time (and court). A postponed match goes back to scheduled."""
    if match.is_terminal:
        raise _illegal(match, "reschedule")
    if match.status == MatchStatus.POSTPONED.value:
        match.status = MatchStatus.SCHEDULED.value
    match.scheduled_at = scheduled_at
    if court_number:
        match.court_number = court_number
    record_event(
        match,
        "rescheduled",
        f"Match rescheduled to {scheduled_at:%Y-%m-%d %H:%M}",
        now,
        actor_id,
        scheduled_at=scheduled_at.isoformat(),
        court_number=match.court_number,
    )
    return [
        make_event(
            event_schemas.MATCH_RESCHEDULED,
            match.tournament_id,
            now,
            actor_id,
            match_id=match.id,
            scheduled_at=scheduled_at.isoformat(),
            court_number=match.court_number,
        )
    ]
