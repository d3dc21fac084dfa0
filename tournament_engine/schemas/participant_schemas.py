from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RegistrationCreate(BaseModel):
    """Registration payload. Exactly one of player_id / team_id identifies the entrant."""

    player_id: Optional[int] = None
    team_id: Optional[int] = None
    special_requirements: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_entrant(self):
        if (self.player_id is None) == (self.team_id is None):
            raise ValueError("Exactly one of player_id or team_id must be provided")
        return self


class ParticipantRead(BaseModel):
    id: int
    tournament_id: int
    player_id: Optional[int] = None
    team_id: Optional[int] = None
    registration_status: str
    tournament_status: str
    registered_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    seed_number: Optional[int] = None
    matches_played: int
    matches_won: int
    matches_lost: int
    sets_won: int
    sets_lost: int
    games_won: int
    games_lost: int
    final_position: Optional[int] = None
    prize_money: Decimal
    entry_fee_paid: bool
    win_rate: float

    model_config = ConfigDict(from_attributes=True)


class PaymentRecord(BaseModel):
    payment_method: str
    payment_reference: Optional[str] = None


class SeedMapping(BaseModel):
    seeds: Dict[int, int] = Field(..., description="participant id -> seed number")
