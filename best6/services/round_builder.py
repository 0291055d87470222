"""
Round Builder

Turns one matchday's predictions into a finalized, scored RoundResult.
"""

import logging
import uuid

from best6.entities import Prediction, RoundPick, RoundResult
from best6.errors import TieBreakerValidationError
from best6.utils.scoring import calculate_points, cap_points
from best6.utils.timezone_utils import get_utc_time, to_iso

logger = logging.getLogger(__name__)

MIN_FIRST_GOAL_MINUTE = 1
MAX_FIRST_GOAL_MINUTE = 120


def validate_first_goal_minute(value):
    """
    Validate the tie-breaker input and return it as an int.

    Accepts an int or a numeric string. Raises TieBreakerValidationError
    for anything else or for a minute outside 1-120.
    """
    if isinstance(value, bool):
        raise TieBreakerValidationError()

    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise TieBreakerValidationError() from None
    elif not isinstance(value, int):
        raise TieBreakerValidationError()

    if value < MIN_FIRST_GOAL_MINUTE or value > MAX_FIRST_GOAL_MINUTE:
        raise TieBreakerValidationError()

    return value


def clamp_first_goal_minute(value):
    """Clamp a stepper value to the valid tie-breaker range"""
    return min(MAX_FIRST_GOAL_MINUTE, max(MIN_FIRST_GOAL_MINUTE, int(value)))


def generate_round_id(now=None):
    """Time-derived unique round id"""
    now = now or get_utc_time()
    return f"round-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"


def build_round(matches, predictions, first_goal_minute, matchday=None, now=None):
    """
    Build a RoundResult for a matchday.

    Every match contributes a pick. Missing predictions count as 0-0 and a
    half-entered one has its empty side set to 0. The caller must validate
    first_goal_minute before calling.

    Args:
        matches: list of Match for the matchday
        predictions: dict of match id -> Prediction
        first_goal_minute: validated tie-breaker minute
        matchday: matchday number (defaults to the first match's)
        now: creation time (defaults to current UTC time)
    """
    now = now or get_utc_time()

    picks = []
    for match in matches:
        prediction = predictions.get(match.id) or Prediction(home=0, away=0)
        safe_prediction = prediction.filled()
        result = match.result
        picks.append(
            RoundPick(
                match_id=match.id,
                prediction=safe_prediction,
                result=result,
                points=calculate_points(safe_prediction, result),
            )
        )

    if matchday is None:
        matchday = next(
            (match.matchday for match in matches if match.matchday is not None), 0
        )

    raw_total = sum(pick.points for pick in picks)
    round_result = RoundResult(
        id=generate_round_id(now),
        created_at=to_iso(now),
        matchday=matchday,
        picks=picks,
        total_points=cap_points(raw_total),
        first_goal_minute=first_goal_minute,
    )

    logger.debug(
        f"Built round {round_result.id} for matchday {matchday}: "
        f"{raw_total} raw points, {round_result.total_points} counted"
    )
    return round_result


def cap_round_points(rounds):
    """
    Re-apply the points cap to stored rounds.

    Returns:
        (rounds, changed) where changed is True if any total was lowered
    """
    changed = False
    capped = []
    for round_result in rounds:
        total = cap_points(round_result.total_points)
        if total != round_result.total_points:
            changed = True
            round_result = RoundResult(
                id=round_result.id,
                created_at=round_result.created_at,
                matchday=round_result.matchday,
                picks=round_result.picks,
                total_points=total,
                first_goal_minute=round_result.first_goal_minute,
            )
        capped.append(round_result)
    return capped, changed
