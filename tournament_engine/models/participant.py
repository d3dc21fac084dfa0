import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from tournament_engine.core.database import Base


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    DISQUALIFIED = "disqualified"


class ParticipantStatus(str, enum.Enum):
    ACTIVE = "active"
    ELIMINATED = "eliminated"
    WITHDRAWN = "withdrawn"
    BYE = "bye"
    CHAMPION = "champion"
    FINALIST = "finalist"
    SEMIFINALIST = "semifinalist"


FINAL_STANDING_STATUSES = {
    ParticipantStatus.CHAMPION.value,
    ParticipantStatus.FINALIST.value,
    ParticipantStatus.SEMIFINALIST.value,
}


class TournamentParticipant(Base):
    __tablename__ = "tournament_participants"
    __table_args__ = (
        CheckConstraint(
            "(player_id IS NULL) <> (team_id IS NULL)",
            name="ck_participant_player_xor_team",
        ),
        UniqueConstraint("tournament_id", "player_id", name="uq_participant_tournament_player"),
        UniqueConstraint("tournament_id", "team_id", name="uq_participant_tournament_team"),
        UniqueConstraint("tournament_id", "seed_number", name="uq_participant_tournament_seed"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)

    registration_status = Column(String, nullable=False, default=RegistrationStatus.PENDING.value)
    tournament_status = Column(String, nullable=False, default=ParticipantStatus.ACTIVE.value)
    registered_at = Column(DateTime, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)

    seed_number = Column(Integer, nullable=True)
    current_round = Column(Integer, nullable=False, default=0)

    matches_played = Column(Integer, nullable=False, default=0)
    matches_won = Column(Integer, nullable=False, default=0)
    matches_lost = Column(Integer, nullable=False, default=0)
    sets_won = Column(Integer, nullable=False, default=0)
    sets_lost = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    games_lost = Column(Integer, nullable=False, default=0)

    final_position = Column(Integer, nullable=True)
    prize_money = Column(Numeric(10, 2), nullable=False, default=0)

    entry_fee_paid = Column(Boolean, nullable=False, default=False)
    payment_date = Column(DateTime, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True)

    special_requirements = Column(Text, nullable=True)
    emergency_contact = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    tournament = relationship("Tournament", back_populates="participants")
    player = relationship("Player")
    team = relationship("Team")

    @property
    def is_player_participant(self) -> bool:
        return self.player_id is not None

    @property
    def is_team_participant(self) -> bool:
        return self.team_id is not None

    @property
    def rating(self) -> int:
        """Skill rating used for seeding: the player's, or the team's for doubles."""
        if self.team is not None:
            return self.team.team_rating
        if self.player is not None:
            return self.player.skill_rating
        return 0

    @property
    def win_rate(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.matches_won / self.matches_played * 100
