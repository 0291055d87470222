"""
Scoring Engine for the Best6 prediction game

This module handles point calculations for individual predictions.
For aggregated totals and leaderboards, see best6.utils.standings.
"""

EXACT_SCORE_POINTS = 5
CORRECT_OUTCOME_POINTS = 2

# A single round can never be worth more than this
ROUND_POINTS_CAP = 30


def _scoreline(value):
    """Return (home, away) from a Prediction/Score object or a plain dict"""
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("home"), value.get("away")
    return value.home, value.away


def outcome(home, away):
    """1 for a home win, 0 for a draw, -1 for an away win"""
    return (home > away) - (home < away)


def calculate_points(prediction, result):
    """
    Calculate points for a single prediction.

    Returns:
        5 for the exact scoreline
        2 for the right outcome (home win, draw or away win)
        0 for a wrong outcome, an incomplete guess or no result yet

    Args:
        prediction: Prediction (or {"home", "away"} dict); sides may be None
        result: final Score (or dict), or None when the match is not decided
    """
    scoreline = _scoreline(result)
    if scoreline is None:
        return 0

    guess = _scoreline(prediction)
    if guess is None or guess[0] is None or guess[1] is None:
        return 0

    predicted_home, predicted_away = guess
    actual_home, actual_away = scoreline
    if actual_home is None or actual_away is None:
        return 0

    if predicted_home == actual_home and predicted_away == actual_away:
        return EXACT_SCORE_POINTS

    if outcome(predicted_home, predicted_away) == outcome(actual_home, actual_away):
        return CORRECT_OUTCOME_POINTS

    return 0


def cap_points(points):
    """Clamp a round total to the per-round cap"""
    return min(ROUND_POINTS_CAP, points)
