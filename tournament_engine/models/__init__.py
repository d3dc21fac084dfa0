# Import all models here to ensure they are registered with Base
from .player import Player
from .team import Team
from .tournament import Tournament
from .participant import TournamentParticipant
from .match import TournamentMatch
from .match_event import MatchEvent
