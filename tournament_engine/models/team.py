from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from tournament_engine.core.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    team_type = Column(String, nullable=False)  # a doubles TournamentType
    team_rating = Column(Integer, nullable=False, default=1000)
    player1_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=False)

    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])

    @property
    def members(self):
        return [p for p in (self.player1, self.player2) if p is not None]
