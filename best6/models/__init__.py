from best6 import db  # noqa: F401 - imported for model imports

from .leaderboard import LeaderboardRow
from .league import LeagueMemberRow, LeagueRow
from .prediction import PredictionRow
from .profile import Profile
from .round import RoundRow

__all__ = [
    "Profile",
    "PredictionRow",
    "RoundRow",
    "LeagueRow",
    "LeagueMemberRow",
    "LeaderboardRow",
]
