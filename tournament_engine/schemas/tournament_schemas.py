from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TournamentSettings(BaseModel):
    """Eligibility rules attached to a tournament. Every bound is optional."""

    min_skill_level: Optional[int] = Field(None, description="Entrants rated below this are rejected.")
    max_skill_level: Optional[int] = Field(None, description="Entrants rated above this are rejected.")
    min_age: Optional[int] = Field(None, ge=0, description="Players younger than this are rejected.")
    max_age: Optional[int] = Field(None, ge=0, description="Players older than this are rejected.")

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def bounds_are_ordered(self):
        if self.min_skill_level is not None and self.max_skill_level is not None:
            if self.min_skill_level > self.max_skill_level:
                raise ValueError("min_skill_level must not exceed max_skill_level")
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age must not exceed max_age")
        return self


class TournamentBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    type: str  # see TournamentType
    format: str = "single_elimination"
    min_participants: int = Field(4, ge=0)
    max_participants: int = Field(32, ge=1)
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    tournament_start_date: Optional[datetime] = None
    tournament_end_date: Optional[datetime] = None
    entry_fee: Decimal = Decimal("0.00")
    settings: TournamentSettings = Field(default_factory=TournamentSettings)
    venue: Optional[str] = None


class TournamentCreate(TournamentBase):
    @model_validator(mode="after")
    def check_invariants(self):
        # Imported here to keep schemas free of model imports at module load
        from tournament_engine.models.tournament import TournamentFormat, TournamentType

        if self.min_participants >= self.max_participants:
            raise ValueError("min_participants must be lower than max_participants")
        if self.type not in {t.value for t in TournamentType}:
            raise ValueError(f"Unknown tournament type: {self.type}")
        if self.format not in {f.value for f in TournamentFormat}:
            raise ValueError(f"Unknown tournament format: {self.format}")
        if (
            self.registration_start_date
            and self.registration_end_date
            and self.registration_end_date < self.registration_start_date
        ):
            raise ValueError("registration_end_date must be after registration_start_date")
        return self


class TournamentRead(TournamentBase):
    id: int
    slug: str
    status: str
    current_participants: int
    organizer_id: Optional[int] = None
    champion_id: Optional[int] = None
    results: Optional[Dict[str, Any]] = None
    cancellation_reason: Optional[str] = None
    available_slots: int
    is_full: bool

    model_config = ConfigDict(from_attributes=True)


class FinalStanding(BaseModel):
    participant_id: int
    position: int = Field(..., ge=1)
    prize_money: Decimal = Decimal("0.00")


class TournamentResults(BaseModel):
    standings: List[FinalStanding] = Field(default_factory=list)
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class TournamentFilter(BaseModel):
    """Listing criteria. Unset fields do not filter."""

    status: Optional[str] = None
    type: Optional[str] = None
    format: Optional[str] = None
    organizer_id: Optional[int] = None
    venue: Optional[str] = Field(None, description="Case-insensitive substring of the venue.")
    has_open_registration: Optional[bool] = None
    date_from: Optional[datetime] = Field(None, description="Earliest tournament_start_date.")
    date_to: Optional[datetime] = Field(None, description="Latest tournament_start_date.")
    sort_by: Literal["created_at", "name", "tournament_start_date"] = "created_at"
    sort_direction: Literal["asc", "desc"] = "desc"
    skip: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=500)
