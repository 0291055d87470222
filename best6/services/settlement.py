"""
Round Settlement

EDITING -> LOCKED state machine for one matchday. While editing, the player
steps predictions and the first-goal minute; saving scores the round,
persists it and hands the pushes to the reconciler.
"""

import logging

from best6.entities import Prediction
from best6.errors import RoundLockedError
from best6.services.round_builder import (
    MIN_FIRST_GOAL_MINUTE,
    build_round,
    cap_round_points,
    clamp_first_goal_minute,
    validate_first_goal_minute,
)
from best6.utils.scoring import calculate_points
from best6.utils.standings import build_you_entry, upsert_you_entry
from best6.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

EDITING = "EDITING"
LOCKED = "LOCKED"


def recompute_leaderboard(store, now=None):
    """Rewrite the "you" entry from the retained rounds and return it"""
    rounds = store.load_rounds()
    you = build_you_entry(rounds, now)
    store.save_leaderboard(upsert_you_entry(store.load_leaderboard(), you))
    return you


def migrate_round_caps(store, reconciler=None, now=None):
    """
    Re-cap rounds stored before the points cap existed.

    Returns True when anything was rewritten.
    """
    rounds, changed = cap_round_points(store.load_rounds())
    if not changed:
        return False

    store.save_rounds(rounds)
    recompute_leaderboard(store, now)
    logger.info("Re-capped stored round totals")
    if reconciler is not None:
        reconciler.schedule("rounds")
        reconciler.schedule("leaderboard")
    return True


class RoundSettlement:
    """Editing and saving of one matchday's predictions"""

    def __init__(self, store, reconciler, matches, matchday=None, now=None):
        self.store = store
        self.reconciler = reconciler
        self.matches = list(matches)
        self.matchday = matchday
        self._now = now
        self.state = EDITING
        self.first_goal_minute = MIN_FIRST_GOAL_MINUTE
        self.predictions = store.load_predictions()
        self.saved_round = None

    def __repr__(self):
        return f"<RoundSettlement matchday={self.matchday} state={self.state}>"

    def now(self):
        return self._now or get_utc_time()

    @property
    def is_locked(self):
        return self.state == LOCKED

    def _match(self, match_id):
        for match in self.matches:
            if match.id == match_id:
                return match
        raise KeyError(match_id)

    def is_match_locked(self, match):
        """A pick can't change once saved or once its match has kicked off"""
        return (
            self.is_locked
            or match.is_finished
            or match.is_live
            or match.has_started(self.now())
        )

    def adjust_prediction(self, match_id, side, delta):
        """Step one side of a prediction, clamped to 0-9"""
        match = self._match(match_id)
        if self.is_match_locked(match):
            raise RoundLockedError(f"Predictions for match {match_id} are locked")

        current = self.predictions.get(match_id)
        if current is None:
            current = Prediction()
        self.predictions[match_id] = current.adjusted(side, delta)
        return self.predictions[match_id]

    def set_first_goal_minute(self, value):
        if self.is_locked:
            raise RoundLockedError()
        self.first_goal_minute = clamp_first_goal_minute(value)
        return self.first_goal_minute

    def preview_points(self):
        """Points the entered predictions would earn against known results"""
        total = 0
        for match in self.matches:
            prediction = self.predictions.get(match.id)
            if prediction is not None:
                total += calculate_points(prediction, match.result)
        return total

    def save(self, first_goal_minute=None):
        """
        Finalize the round and return it.

        The tie-breaker is validated before anything is written; an invalid
        minute leaves the state machine and the store untouched.
        """
        if self.is_locked:
            raise RoundLockedError()

        if first_goal_minute is None:
            first_goal_minute = self.first_goal_minute
        minute = validate_first_goal_minute(first_goal_minute)

        now = self.now()
        self.store.save_predictions(self.predictions)
        self.reconciler.schedule("predictions")

        round_result = build_round(
            self.matches, self.predictions, minute, matchday=self.matchday, now=now
        )
        self.store.save_round_result(round_result)
        recompute_leaderboard(self.store, now)
        self.reconciler.schedule("rounds")
        self.reconciler.schedule("leaderboard")

        self.first_goal_minute = minute
        self.saved_round = round_result
        self.state = LOCKED
        logger.info(
            f"Round {round_result.id} saved for matchday {round_result.matchday} "
            f"with {round_result.total_points} points"
        )
        return round_result

    def unlock(self):
        """Back to editing; the saved round stays persisted"""
        self.state = EDITING
