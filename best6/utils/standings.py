"""
Aggregates and rankings built from finalized rounds.

Every function here is a pure reduction over RoundResult lists; nothing
reads or writes storage.
"""

from datetime import timedelta

from best6.entities import YOU_ID, LeaderboardEntry
from best6.utils.timezone_utils import current_season_year, get_utc_time

WEEK_DAYS = 7
MONTH_DAYS = 30


def _points_since(rounds, cutoff):
    total = 0
    for round_result in rounds:
        created = round_result.created
        if created is not None and created >= cutoff:
            total += round_result.total_points
    return total


def compute_weekly_points(rounds, now=None):
    """Points from rounds created within the last 7 days"""
    now = now or get_utc_time()
    return _points_since(rounds, now - timedelta(days=WEEK_DAYS))


def compute_monthly_points(rounds, now=None):
    """Points from rounds created within the last 30 days"""
    now = now or get_utc_time()
    return _points_since(rounds, now - timedelta(days=MONTH_DAYS))


def compute_season_points(rounds):
    return sum(round_result.total_points for round_result in rounds)


def build_you_entry(rounds, now=None):
    """The local player's leaderboard row, derived from retained rounds"""
    return LeaderboardEntry(
        id=YOU_ID,
        name="You",
        total_points=compute_season_points(rounds),
        weekly_points=compute_weekly_points(rounds, now),
    )


def upsert_you_entry(entries, you):
    """
    Replace the points of the existing "you" row, or prepend a new one.

    Extra fields already on the row (predictions, avatar colour) are kept.
    """
    updated = []
    found = False
    for entry in entries:
        if entry.id == YOU_ID:
            found = True
            entry = LeaderboardEntry(
                id=YOU_ID,
                name=you.name,
                total_points=you.total_points,
                weekly_points=you.weekly_points,
                predictions=entry.predictions,
                avatar_color=entry.avatar_color,
            )
        updated.append(entry)

    if not found:
        updated.insert(0, you)
    return updated


def rank_leaderboard(entries):
    """Sort leaderboard rows: total points, then weekly points, then name"""
    return sorted(
        entries,
        key=lambda entry: (-entry.total_points, -entry.weekly_points, entry.name.lower()),
    )


def rank_matchday(results, actual_first_goal_minute=None):
    """
    Rank (player_id, RoundResult) pairs for a single matchday.

    Equal totals are split by how close the predicted first-goal minute was
    to the actual one. A round without a minute ranks after those with one.
    """

    def tiebreak(item):
        _, round_result = item
        minute = round_result.first_goal_minute
        if minute is None:
            return (1, 0)
        if actual_first_goal_minute is None:
            return (0, 0)
        return (0, abs(minute - actual_first_goal_minute))

    return sorted(results, key=lambda item: (-item[1].total_points, tiebreak(item)))


def season_label(now=None):
    """Human readable season, e.g. 2025-2026"""
    year = current_season_year(now)
    return f"{year}-{year + 1}"
