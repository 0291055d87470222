from datetime import timedelta
from unittest import mock

import pytest

from best6.entities import LeaderboardEntry, Prediction, RoundResult
from best6.errors import RoundLockedError, TieBreakerValidationError
from best6.services.settlement import (
    EDITING,
    LOCKED,
    RoundSettlement,
    migrate_round_caps,
    recompute_leaderboard,
)
from best6.utils.timezone_utils import to_iso
from tests.conftest import make_match


@pytest.fixture
def matches(now):
    return [
        make_match(1, kickoff=now - timedelta(hours=3), status="FINISHED", home=2, away=1),
        make_match(2, kickoff=now - timedelta(hours=3), status="FINISHED", home=0, away=0),
        make_match(3, kickoff=now + timedelta(hours=2)),
    ]


@pytest.fixture
def fake_reconciler():
    return mock.Mock()


def test_save_scores_persists_and_schedules_pushes(store, fake_reconciler, matches, now):
    store.save_predictions({1: Prediction(2, 1), 2: Prediction(1, 1)})
    settlement = RoundSettlement(store, fake_reconciler, matches, matchday=19, now=now)
    settlement.adjust_prediction(3, "home", 1)

    round_result = settlement.save(first_goal_minute="23")

    assert settlement.state == LOCKED
    assert round_result.total_points == 7
    assert round_result.first_goal_minute == 23
    assert store.load_rounds() == [round_result]
    assert store.load_predictions()[3] == Prediction(1, None)
    you = store.load_leaderboard()[0]
    assert (you.id, you.total_points, you.weekly_points) == ("you", 7, 7)
    assert [c.args[0] for c in fake_reconciler.schedule.call_args_list] == [
        "predictions",
        "rounds",
        "leaderboard",
    ]


def test_invalid_tie_breaker_touches_nothing(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    settlement.adjust_prediction(3, "away", 2)

    with pytest.raises(TieBreakerValidationError):
        settlement.save(first_goal_minute=0)

    assert settlement.state == EDITING
    assert store.load_rounds() == []
    assert store.load_predictions() == {}
    assert store.load_leaderboard() == []
    fake_reconciler.schedule.assert_not_called()


def test_saving_while_locked_is_rejected(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    settlement.save(45)

    with pytest.raises(RoundLockedError):
        settlement.save(45)
    with pytest.raises(RoundLockedError):
        settlement.adjust_prediction(3, "home", 1)
    with pytest.raises(RoundLockedError):
        settlement.set_first_goal_minute(10)
    assert len(store.load_rounds()) == 1


def test_resave_after_unlock_supersedes_matchday(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, matchday=19, now=now)
    first = settlement.save(10)
    settlement.unlock()
    assert settlement.state == EDITING
    assert store.load_rounds() == [first]

    settlement.adjust_prediction(3, "home", 2)
    second = settlement.save(11)

    assert [r.id for r in store.load_rounds()] == [second.id]
    assert store.load_leaderboard()[0].total_points == second.total_points


def test_resaving_a_matchday_keeps_the_latest_minute(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, matchday=12, now=now)
    settlement.save(47)
    settlement.unlock()
    settlement.save(60)

    rounds = store.load_rounds()
    assert len(rounds) == 1
    assert (rounds[0].matchday, rounds[0].first_goal_minute) == (12, 60)


def test_started_or_finished_matches_are_locked(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    with pytest.raises(RoundLockedError):
        settlement.adjust_prediction(1, "home", 1)

    live = make_match(4, kickoff=now + timedelta(hours=1), status="IN_PLAY")
    settlement = RoundSettlement(store, fake_reconciler, [live], now=now)
    with pytest.raises(RoundLockedError):
        settlement.adjust_prediction(4, "home", 1)


def test_adjust_prediction_clamps(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    assert settlement.adjust_prediction(3, "home", -1) == Prediction(0, None)
    for _ in range(12):
        settlement.adjust_prediction(3, "away", 1)
    assert settlement.predictions[3] == Prediction(0, 9)


def test_first_goal_minute_stepper_clamps(store, fake_reconciler, matches, now):
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    assert settlement.first_goal_minute == 1
    assert settlement.set_first_goal_minute(0) == 1
    assert settlement.set_first_goal_minute(500) == 120
    round_result = settlement.save()
    assert round_result.first_goal_minute == 120


def test_preview_points(store, fake_reconciler, matches, now):
    store.save_predictions({1: Prediction(2, 1), 2: Prediction(0, 1), 3: Prediction(1, 0)})
    settlement = RoundSettlement(store, fake_reconciler, matches, now=now)
    assert settlement.preview_points() == 5


def test_end_to_end_with_database_backend(store, backend, reconciler, matches, now):
    store.set_user_id("player-1")
    store.save_predictions({1: Prediction(2, 1)})
    settlement = RoundSettlement(store, reconciler, matches, matchday=19, now=now)

    round_result = settlement.save(60)

    rows = backend.fetch_rounds("player-1")
    assert [(row["id"], row["total_points"]) for row in rows] == [(round_result.id, 10)]
    assert backend.fetch_leaderboard("player-1")["total_points"] == 10
    assert {row["match_id"] for row in backend.fetch_predictions("player-1")} == {1}


def test_recompute_leaderboard(store, now):
    store.save_rounds(
        [
            RoundResult(id="a", created_at=to_iso(now), matchday=2, total_points=6),
            RoundResult(
                id="b",
                created_at=to_iso(now - timedelta(days=20)),
                matchday=1,
                total_points=4,
            ),
        ]
    )
    store.save_leaderboard([LeaderboardEntry(id="p1", name="Jo", total_points=99)])

    you = recompute_leaderboard(store, now)

    assert (you.total_points, you.weekly_points) == (10, 6)
    assert [e.id for e in store.load_leaderboard()] == ["you", "p1"]


def test_migrate_round_caps(store, fake_reconciler, now):
    store.save_rounds(
        [RoundResult(id="a", created_at=to_iso(now), matchday=2, total_points=42)]
    )

    assert migrate_round_caps(store, fake_reconciler, now) is True
    assert store.load_rounds()[0].total_points == 30
    assert store.load_leaderboard()[0].total_points == 30
    assert fake_reconciler.schedule.call_count == 2

    assert migrate_round_caps(store, fake_reconciler, now) is False
    assert fake_reconciler.schedule.call_count == 2
