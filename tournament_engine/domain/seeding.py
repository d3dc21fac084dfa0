"""Deterministic seed assignment for confirmed participants."""
from datetime import datetime
from typing import Dict, List, Sequence

from tournament_engine.core.exceptions import DuplicateSeed, InvalidSeed
from tournament_engine.models.participant import TournamentParticipant


def seeding_order(participants: Sequence[TournamentParticipant]) -> List[TournamentParticipant]:
    """Highest rating first; ties go to the earlier registration, then the lower id."""
    return sorted(
        participants,
        key=lambda p: (-p.rating, p.registered_at or datetime.max, p.id),
    )


def rank_by_rating(participants: Sequence[TournamentParticipant]) -> Dict[int, int]:
    """participant id -> seed for the given (confirmed) participants."""
    return {p.id: seed for seed, p in enumerate(seeding_order(participants), start=1)}


def validate_mapping(mapping: Dict[int, int], confirmed_ids: Sequence[int]) -> None:
    """Check an explicit participant -> seed mapping against the confirmed field.

    Seeds must be unique and cover ``1..k`` without gaps, where ``k`` is the
    number of seeded participants and never exceeds the confirmed count.
    """
    total = len(confirmed_ids)
    confirmed = set(confirmed_ids)
    unknown = [pid for pid in mapping if pid not in confirmed]
    if unknown:
        raise InvalidSeed(
            "Seeds can only be assigned to confirmed participants",
            {"participant_ids": sorted(unknown)},
        )

    seen: Dict[int, int] = {}
    for participant_id, seed in sorted(mapping.items()):
        if seed in seen:
            raise DuplicateSeed(
                f"Seed {seed} is assigned to both participant {seen[seed]} and {participant_id}",
                {"seed": seed, "participant_ids": [seen[seed], participant_id]},
            )
        seen[seed] = participant_id

    out_of_range = sorted(s for s in seen if s < 1 or s > total)
    if out_of_range:
        raise InvalidSeed(
            f"Seeds must lie within 1..{total}",
            {"seeds": out_of_range, "confirmed_participants": total},
        )
    missing = sorted(set(range(1, len(seen) + 1)) - set(seen))
    if missing:
        raise InvalidSeed(
            "Seeds must be contiguous from 1",
            {"missing_seeds": missing},
        )


def available_seeds(used: Sequence[int], total: int) -> List[int]:
    taken = set(used)
    return [seed for seed in range(1, total + 1) if seed not in taken]
