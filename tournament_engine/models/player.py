import enum

from sqlalchemy import Column, Date, Integer, String

from tournament_engine.core.database import Base


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    gender = Column(String, nullable=True)  # one of Gender
    skill_rating = Column(Integer, nullable=False, default=1000)
    date_of_birth = Column(Date, nullable=True)

    def age_on(self, day):
        if self.date_of_birth is None:
            return None
        born = self.date_of_birth
        return day.year - born.year - ((day.month, day.day) < (born.month, born.day))
