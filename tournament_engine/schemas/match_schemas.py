from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SetScore(BaseModel):
    participant1_games: int = Field(..., ge=0)
    participant2_games: int = Field(..., ge=0)


class MatchScore(BaseModel):
    """Score payload for a completed match.

    Set and game totals are derived from ``sets`` when they are not given.
    """

    sets: List[SetScore] = Field(default_factory=list)
    sets_won_participant1: Optional[int] = Field(None, ge=0)
    sets_won_participant2: Optional[int] = Field(None, ge=0)
    games_won_participant1: Optional[int] = Field(None, ge=0)
    games_won_participant2: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def derive_totals(self):
        if self.sets_won_participant1 is None:
            self.sets_won_participant1 = sum(1 for s in self.sets if s.participant1_games > s.participant2_games)
        if self.sets_won_participant2 is None:
            self.sets_won_participant2 = sum(1 for s in self.sets if s.participant2_games > s.participant1_games)
        if self.games_won_participant1 is None:
            self.games_won_participant1 = sum(s.participant1_games for s in self.sets)
        if self.games_won_participant2 is None:
            self.games_won_participant2 = sum(s.participant2_games for s in self.sets)
        return self

    def score_string(self) -> str:
        return ", ".join(f"{s.participant1_games}-{s.participant2_games}" for s in self.sets)


class MatchCreate(BaseModel):
    tournament_id: int
    round_number: int = Field(..., ge=1)
    round_name: Optional[str] = None
    match_number: Optional[str] = None
    participant1_id: Optional[int] = None
    participant2_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    court_number: Optional[str] = None
    venue: Optional[str] = None
    match_format: str = "best_of_3"
    next_match_id: Optional[int] = None
    next_match_position: Optional[str] = None

    @model_validator(mode="after")
    def check_slots(self):
        if self.participant1_id is not None and self.participant1_id == self.participant2_id:
            raise ValueError("A match needs two different participants")
        if (self.next_match_id is None) != (self.next_match_position is None):
            raise ValueError("next_match_id and next_match_position must be set together")
        if self.next_match_position not in (None, "participant1", "participant2"):
            raise ValueError("next_match_position must be participant1 or participant2")
        return self


class MatchRead(BaseModel):
    id: int
    tournament_id: int
    participant1_id: Optional[int] = None
    participant2_id: Optional[int] = None
    round_number: int
    round_name: Optional[str] = None
    match_number: Optional[str] = None
    status: str
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    score_data: Optional[Dict[str, Any]] = None
    final_score: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    court_number: Optional[str] = None
    next_match_id: Optional[int] = None
    next_match_position: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class MatchEventRead(BaseModel):
    id: int
    event_type: str
    description: str
    payload: Optional[Dict[str, Any]] = None
    actor_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatchResultSubmit(BaseModel):
    score: MatchScore
    winner_id: Optional[int] = None


class WalkoverRequest(BaseModel):
    winner_id: int
    reason: str = "Walkover"


class NoShowRequest(BaseModel):
    absent_participant_id: int
    reason: str = "No show"


class ReasonRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    scheduled_at: datetime
    court_number: Optional[str] = None
