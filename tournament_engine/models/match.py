import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from tournament_engine.core.database import Base


class MatchStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    READY_TO_START = "ready_to_start"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"
    WALKOVER = "walkover"
    NO_SHOW = "no_show"


# Statuses that carry a final, immutable result
DECIDED_MATCH_STATUSES = {
    MatchStatus.COMPLETED.value,
    MatchStatus.WALKOVER.value,
    MatchStatus.NO_SHOW.value,
}

TERMINAL_MATCH_STATUSES = DECIDED_MATCH_STATUSES | {MatchStatus.CANCELLED.value}


class MatchFormat(str, enum.Enum):
    BEST_OF_1 = "best_of_1"
    BEST_OF_3 = "best_of_3"
    BEST_OF_5 = "best_of_5"


class NextMatchPosition(str, enum.Enum):
    PARTICIPANT1 = "participant1"
    PARTICIPANT2 = "participant2"


class TournamentMatch(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    participant1_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)
    participant2_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)

    match_number = Column(String, nullable=True)  # e.g. "QF1", "SF2", "F1"
    round_number = Column(Integer, nullable=False)
    round_name = Column(String, nullable=True)  # e.g. "Semifinals"

    scheduled_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    court_number = Column(String, nullable=True)
    venue = Column(String, nullable=True)

    status = Column(String, nullable=False, default=MatchStatus.SCHEDULED.value, index=True)
    winner_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)
    loser_id = Column(Integer, ForeignKey("tournament_participants.id"), nullable=True)

    score_data = Column(JSON, nullable=True)
    final_score = Column(String, nullable=True)  # e.g. "6-4, 6-3"
    sets_won_participant1 = Column(Integer, nullable=False, default=0)
    sets_won_participant2 = Column(Integer, nullable=False, default=0)
    games_won_participant1 = Column(Integer, nullable=False, default=0)
    games_won_participant2 = Column(Integer, nullable=False, default=0)
    match_format = Column(String, nullable=False, default=MatchFormat.BEST_OF_3.value)
    notes = Column(Text, nullable=True)

    next_match_id = Column(Integer, ForeignKey("matches.id"), nullable=True)
    next_match_position = Column(String, nullable=True)  # one of NextMatchPosition

    tournament = relationship("Tournament", back_populates="matches")
    participant1 = relationship("TournamentParticipant", foreign_keys=[participant1_id])
    participant2 = relationship("TournamentParticipant", foreign_keys=[participant2_id])
    winner = relationship("TournamentParticipant", foreign_keys=[winner_id])
    loser = relationship("TournamentParticipant", foreign_keys=[loser_id])
    next_match = relationship("TournamentMatch", remote_side=[id])
    events = relationship(
        "MatchEvent",
        back_populates="match",
        order_by="MatchEvent.id",
        cascade="all, delete-orphan",
    )

    @property
    def participant_ids(self):
        return [pid for pid in (self.participant1_id, self.participant2_id) if pid is not None]

    @property
    def has_both_participants(self) -> bool:
        return self.participant1_id is not None and self.participant2_id is not None

    @property
    def is_decided(self) -> bool:
        return self.status in DECIDED_MATCH_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_MATCH_STATUSES

    def opponent_of(self, participant_id):
        if participant_id == self.participant1_id:
            return self.participant2_id
        if participant_id == self.participant2_id:
            return self.participant1_id
        return None
