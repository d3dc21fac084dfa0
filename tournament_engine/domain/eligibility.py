"""Eligibility rules applied at registration time."""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from tournament_engine.core.exceptions import EligibilityViolation
from tournament_engine.models.player import Gender, Player
from tournament_engine.models.team import Team
from tournament_engine.models.tournament import Tournament, TournamentType


class Entrant(BaseModel):
    """Eligibility facts about a player or a doubles team."""

    player_id: Optional[int] = None
    team_id: Optional[int] = None
    team_type: Optional[str] = None
    rating: int = 1000
    genders: List[Optional[str]] = Field(default_factory=list)
    ages: List[Optional[int]] = Field(default_factory=list)

    @property
    def is_team(self) -> bool:
        return self.team_id is not None

    @classmethod
    def from_player(cls, player: Player, today: date) -> "Entrant":
        return cls(
            player_id=player.id,
            rating=player.skill_rating,
            genders=[player.gender],
            ages=[player.age_on(today)],
        )

    @classmethod
    def from_team(cls, team: Team, today: date) -> "Entrant":
        return cls(
            team_id=team.id,
            team_type=team.team_type,
            rating=team.team_rating,
            genders=[p.gender for p in team.members],
            ages=[p.age_on(today) for p in team.members],
        )


_MEN_TYPES = {TournamentType.MEN_SINGLES.value, TournamentType.MEN_DOUBLES.value}
_WOMEN_TYPES = {TournamentType.WOMEN_SINGLES.value, TournamentType.WOMEN_DOUBLES.value}


def check_entrant_type(tournament: Tournament, entrant: Entrant) -> None:
    if tournament.is_doubles and not entrant.is_team:
        raise EligibilityViolation("A team is required for doubles tournaments", rule="team_required")
    if not tournament.is_doubles and entrant.is_team:
        raise EligibilityViolation("Teams are not allowed in singles tournaments", rule="team_not_allowed")
    if entrant.is_team and entrant.team_type != tournament.type:
        raise EligibilityViolation(
            f"Team of type '{entrant.team_type}' cannot enter a '{tournament.type}' tournament",
            rule="team_type",
        )


def check_gender(tournament: Tournament, entrant: Entrant) -> None:
    if tournament.type in _MEN_TYPES:
        if any(g != Gender.MALE.value for g in entrant.genders):
            raise EligibilityViolation("Only male players can register for men's tournaments", rule="gender")
    elif tournament.type in _WOMEN_TYPES:
        if any(g != Gender.FEMALE.value for g in entrant.genders):
            raise EligibilityViolation("Only female players can register for women's tournaments", rule="gender")
    elif tournament.type == TournamentType.MIXED_DOUBLES.value:
        if sorted(g or "" for g in entrant.genders) != [Gender.FEMALE.value, Gender.MALE.value]:
            raise EligibilityViolation("Mixed doubles teams need one male and one female player", rule="gender")
    else:
        raise EligibilityViolation(f"Invalid tournament type '{tournament.type}'", rule="tournament_type")


def check_skill(tournament: Tournament, entrant: Entrant) -> None:
    rules = tournament.eligibility
    if rules.min_skill_level is not None and entrant.rating < rules.min_skill_level:
        raise EligibilityViolation(
            "Skill rating is below the tournament minimum",
            rule="min_skill_level",
            details={"rating": entrant.rating, "min_skill_level": rules.min_skill_level},
        )
    if rules.max_skill_level is not None and entrant.rating > rules.max_skill_level:
        raise EligibilityViolation(
            "Skill rating is above the tournament maximum",
            rule="max_skill_level",
            details={"rating": entrant.rating, "max_skill_level": rules.max_skill_level},
        )


def check_age(tournament: Tournament, entrant: Entrant) -> None:
    # Players without a known date of birth are not age-checked
    rules = tournament.eligibility
    for age in entrant.ages:
        if age is None:
            continue
        if rules.min_age is not None and age < rules.min_age:
            raise EligibilityViolation(
                "Player is below the tournament minimum age",
                rule="min_age",
                details={"age": age, "min_age": rules.min_age},
            )
        if rules.max_age is not None and age > rules.max_age:
            raise EligibilityViolation(
                "Player is above the tournament maximum age",
                rule="max_age",
                details={"age": age, "max_age": rules.max_age},
            )


def check_eligibility(tournament: Tournament, entrant: Entrant) -> None:
    check_entrant_type(tournament, entrant)
    check_gender(tournament, entrant)
    check_skill(tournament, entrant)
    check_age(tournament, entrant)
