import random
from unittest import mock

import pytest

from best6.entities import League
from best6.errors import ValidationError
from best6.services.leagues import (
    JOINED_LEAGUE_MEMBERS,
    create_league,
    generate_league_code,
    join_league,
)


def test_create_league_defaults(store, now):
    reconciler = mock.Mock()
    league = create_league(store, reconciler, "  Sunday Club ", now=now, rng=random.Random(3))

    assert league.name == "Sunday Club"
    assert league.members == 1
    assert league.id == f"league-{int(now.timestamp() * 1000)}"
    assert league.code.startswith("B6-")
    assert 100 <= int(league.code[3:]) <= 999
    assert store.load_leagues() == [league]
    reconciler.schedule.assert_called_once_with("leagues")


def test_create_league_prepends_and_keeps_code(store, now):
    store.save_leagues([League(id="old", name="Old", code="B6-100", members=3)])
    league = create_league(store, None, "New", code="FRIENDS")
    assert [item.code for item in store.load_leagues()] == ["FRIENDS", "B6-100"]
    assert league.code == "FRIENDS"


def test_create_league_requires_name(store):
    reconciler = mock.Mock()
    with pytest.raises(ValidationError):
        create_league(store, reconciler, "   ")
    assert store.load_leagues() == []
    reconciler.schedule.assert_not_called()


def test_join_league(store):
    reconciler = mock.Mock()
    league = join_league(store, reconciler, " B6-777 ")

    assert league.name == "League B6-777"
    assert league.code == "B6-777"
    assert league.members == JOINED_LEAGUE_MEMBERS
    reconciler.schedule.assert_called_once_with("leagues")


def test_join_existing_code_replaces_entry(store):
    store.save_leagues(
        [
            League(id="a", name="Mine", code="B6-200", members=1),
            League(id="b", name="Other", code="B6-777", members=5),
        ]
    )
    join_league(store, None, "B6-777")
    codes = [league.code for league in store.load_leagues()]
    assert codes == ["B6-777", "B6-200"]


def test_join_requires_code(store):
    with pytest.raises(ValidationError):
        join_league(store, None, "")


def test_generate_league_code_range():
    rng = random.Random(0)
    for _ in range(50):
        code = generate_league_code(rng)
        assert 100 <= int(code.split("-")[1]) <= 999


def test_leagues_sync_to_backend(store, backend, reconciler):
    store.set_user_id("u1")
    create_league(store, reconciler, "Office", code="B6-321")

    memberships = backend.fetch_memberships("u1")
    assert [(row["name"], row["code"], row["members"]) for row in memberships] == [
        ("Office", "B6-321", 1)
    ]
