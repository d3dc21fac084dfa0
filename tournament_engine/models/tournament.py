import enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from tournament_engine.core.database import Base
from tournament_engine.schemas.tournament_schemas import TournamentSettings


class TournamentType(str, enum.Enum):
    MEN_SINGLES = "men_singles"
    WOMEN_SINGLES = "women_singles"
    MEN_DOUBLES = "men_doubles"
    WOMEN_DOUBLES = "women_doubles"
    MIXED_DOUBLES = "mixed_doubles"


DOUBLES_TYPES = {
    TournamentType.MEN_DOUBLES.value,
    TournamentType.WOMEN_DOUBLES.value,
    TournamentType.MIXED_DOUBLES.value,
}


class TournamentFormat(str, enum.Enum):
    SINGLE_ELIMINATION = "single_elimination"
    DOUBLE_ELIMINATION = "double_elimination"
    ROUND_ROBIN = "round_robin"
    SWISS = "swiss"


ELIMINATION_FORMATS = {
    TournamentFormat.SINGLE_ELIMINATION.value,
    TournamentFormat.DOUBLE_ELIMINATION.value,
}


class TournamentStatus(str, enum.Enum):
    DRAFT = "draft"
    REGISTRATION_OPEN = "registration_open"
    REGISTRATION_CLOSED = "registration_closed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_TOURNAMENT_STATUSES = {
    TournamentStatus.COMPLETED.value,
    TournamentStatus.CANCELLED.value,
}


class Tournament(Base):
    __tablename__ = "tournaments"
    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="ck_tournament_count_non_negative"),
        CheckConstraint("current_participants <= max_participants", name="ck_tournament_count_ceiling"),
        CheckConstraint("min_participants < max_participants", name="ck_tournament_min_below_max"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)  # one of TournamentType
    format = Column(String, nullable=False, default=TournamentFormat.SINGLE_ELIMINATION.value)
    status = Column(String, nullable=False, default=TournamentStatus.DRAFT.value, index=True)

    min_participants = Column(Integer, nullable=False, default=4)
    max_participants = Column(Integer, nullable=False, default=32)
    current_participants = Column(Integer, nullable=False, default=0)

    registration_start_date = Column(DateTime, nullable=True)
    registration_end_date = Column(DateTime, nullable=True)
    tournament_start_date = Column(DateTime, nullable=True)
    tournament_end_date = Column(DateTime, nullable=True)

    entry_fee = Column(Numeric(10, 2), nullable=False, default=0)
    settings = Column(JSON, nullable=True)  # eligibility rules, see TournamentSettings
    venue = Column(String, nullable=True)
    organizer_id = Column(Integer, nullable=True)

    results = Column(JSON, nullable=True)
    champion_id = Column(Integer, nullable=True)  # participant id of the crowned winner
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    participants = relationship("TournamentParticipant", back_populates="tournament", cascade="all, delete-orphan")
    matches = relationship("TournamentMatch", back_populates="tournament", cascade="all, delete-orphan")

    @property
    def eligibility(self) -> TournamentSettings:
        return TournamentSettings.model_validate(self.settings or {})

    @property
    def is_doubles(self) -> bool:
        return self.type in DOUBLES_TYPES

    @property
    def is_elimination(self) -> bool:
        return self.format in ELIMINATION_FORMATS

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TOURNAMENT_STATUSES

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    @property
    def available_slots(self) -> int:
        return max(0, self.max_participants - self.current_participants)

    @property
    def registration_progress(self) -> float:
        if not self.max_participants:
            return 0.0
        return self.current_participants / self.max_participants * 100
