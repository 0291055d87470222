from .leaderboard import YOU_ID, LeaderboardEntry
from .league import League
from .match import MATCH_STATUSES, Match, Score, Team
from .prediction import Prediction
from .round import RoundPick, RoundResult

__all__ = [
    "Prediction",
    "Score",
    "Team",
    "Match",
    "MATCH_STATUSES",
    "RoundPick",
    "RoundResult",
    "League",
    "LeaderboardEntry",
    "YOU_ID",
]
