"""Bracket progression: moving a decided match's winner into its successor slot."""
from datetime import datetime
from typing import Iterable, List, Optional

from tournament_engine.core.exceptions import BracketInconsistency
from tournament_engine.domain import make_event
from tournament_engine.domain import participant_lifecycle
from tournament_engine.domain.match_lifecycle import record_event
from tournament_engine.models.match import NextMatchPosition, TournamentMatch
from tournament_engine.models.participant import RegistrationStatus, TournamentParticipant
from tournament_engine.models.tournament import Tournament, TournamentFormat
from tournament_engine.schemas import event_schemas
from tournament_engine.schemas.event_schemas import DomainEvent

# Decided defeats after which an entrant is out of the bracket
LOSSES_TO_ELIMINATION = {
    TournamentFormat.SINGLE_ELIMINATION.value: 1,
    TournamentFormat.DOUBLE_ELIMINATION.value: 2,
}

SLOT_FIELDS = {
    NextMatchPosition.PARTICIPANT1.value: "participant1_id",
    NextMatchPosition.PARTICIPANT2.value: "participant2_id",
}


def slot_field(position: Optional[str]) -> str:
    try:
        return SLOT_FIELDS[position]
    except KeyError:
        raise BracketInconsistency(
            f"Invalid next_match_position '{position}'", {"next_match_position": position}
        ) from None


def validate_link(tournament_id: int, round_number: int, position: Optional[str], successor: TournamentMatch) -> None:
    """A successor must live in the same tournament and a strictly later round."""
    slot_field(position)
    if successor.tournament_id != tournament_id:
        raise BracketInconsistency(
            f"Successor match {successor.id} belongs to tournament {successor.tournament_id}, not {tournament_id}",
            {"next_match_id": successor.id, "tournament_id": tournament_id},
        )
    if successor.round_number <= round_number:
        raise BracketInconsistency(
            f"Successor match {successor.id} is in round {successor.round_number}, "
            f"which does not follow round {round_number}",
            {"next_match_id": successor.id, "round_number": round_number, "successor_round": successor.round_number},
        )


def propagate(
    match: TournamentMatch,
    successor: Optional[TournamentMatch],
    now: datetime,
    actor_id: Optional[int] = None,
) -> List[DomainEvent]:
    """Write ``match.winner_id`` into the successor slot named by ``next_match_position``.

    Idempotent: a slot that already holds the winner is left alone. A slot
    holding someone else means the bracket wiring is broken.
    """
    if match.next_match_id is None:
        return []
    if not match.is_decided or match.winner_id is None:
        raise BracketInconsistency(
            f"Match {match.id} has no decided winner to propagate", {"match_id": match.id, "status": match.status}
        )
    if successor is None or successor.id != match.next_match_id:
        raise BracketInconsistency(
            f"Successor match {match.next_match_id} of match {match.id} not found",
            {"match_id": match.id, "next_match_id": match.next_match_id},
        )
    validate_link(match.tournament_id, match.round_number, match.next_match_position, successor)

    field = slot_field(match.next_match_position)
    current = getattr(successor, field)
    if current == match.winner_id:
        return []
    if current is not None:
        raise BracketInconsistency(
            f"Slot {match.next_match_position} of match {successor.id} already holds participant {current}, "
            f"refusing to overwrite with {match.winner_id}",
            {
                "match_id": match.id,
                "next_match_id": successor.id,
                "slot": match.next_match_position,
                "current": current,
                "winner_id": match.winner_id,
            },
        )
    setattr(successor, field, match.winner_id)
    record_event(
        successor,
        "participant_advanced",
        f"Winner of match {match.id} advanced to {match.next_match_position}",
        now,
        actor_id,
        from_match_id=match.id,
        participant_id=match.winner_id,
        slot=match.next_match_position,
    )
    return [
        make_event(
            event_schemas.MATCH_WINNER_ADVANCED,
            match.tournament_id,
            now,
            actor_id,
            match_id=match.id,
            next_match_id=successor.id,
            slot=match.next_match_position,
            participant_id=match.winner_id,
        )
    ]


def is_title_match(match: TournamentMatch, matches: Iterable[TournamentMatch]) -> bool:
    """Whether deciding ``match`` decides the tournament.

    The title match is the root of the latest round. When that round holds
    several roots, such as a third-place playoff beside the final, only the
    one fed by earlier matches counts.
    """
    if match.next_match_id is not None:
        return False
    matches = list(matches)
    roots = [m for m in matches if m.next_match_id is None]
    top_round = max(m.round_number for m in roots)
    candidates = [m for m in roots if m.round_number == top_round]
    if len(candidates) > 1:
        fed = {m.next_match_id for m in matches}
        candidates = [m for m in candidates if m.id in fed]
    return [m.id for m in candidates] == [match.id]


def settle_outcome(
    match: TournamentMatch,
    tournament: Tournament,
    winner: TournamentParticipant,
    loser: Optional[TournamentParticipant],
    now: datetime,
    actor_id: Optional[int] = None,
    decides_title: bool = True,
    loser_losses: int = 1,
) -> List[DomainEvent]:
    """Eliminate losers who are out of the bracket and crown the winner of the title match.

    ``loser_losses`` counts the loser's decided defeats including this one;
    double elimination knocks an entrant out on the second. The title is
    only awarded once, and a loser who no longer holds a confirmed
    registration (disqualified) keeps its status and gets no standing.
    """
    events: List[DomainEvent] = []
    allowed = LOSSES_TO_ELIMINATION.get(tournament.format)
    if loser is not None and allowed is not None and loser_losses >= allowed:
        events += participant_lifecycle.eliminate(loser, now, actor_id)

    if (
        tournament.is_elimination
        and match.next_match_id is None
        and decides_title
        and tournament.champion_id is None
    ):
        tournament.champion_id = winner.id
        events += participant_lifecycle.set_final_standing(winner, 1, winner.prize_money, now, actor_id)
        if loser is not None and loser.registration_status == RegistrationStatus.CONFIRMED.value:
            events += participant_lifecycle.set_final_standing(loser, 2, loser.prize_money, now, actor_id)
        events.append(
            make_event(
                event_schemas.TOURNAMENT_CHAMPION_DECIDED,
                tournament.id,
                now,
                actor_id,
                match_id=match.id,
                champion_id=winner.id,
            )
        )
    return events
