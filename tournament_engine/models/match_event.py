from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from tournament_engine.core.database import Base


class MatchEvent(Base):
    """Append-only audit record of a match transition. Never updated in place."""

    __tablename__ = "match_events"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)  # e.g. "match_started", "walkover"
    description = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)
    actor_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False)

    match = relationship("TournamentMatch", back_populates="events")
