import random
from datetime import timedelta
from unittest import mock

import pytest
import requests

from best6.entities import Match, Prediction, Score, Team
from best6.errors import FixtureFetchCancelled, FixtureFetchError, MatchParseError
from best6.utils.fixtures import (
    MISSING_KEY_MESSAGE,
    NO_MATCHES_MESSAGE,
    CancellationToken,
    FixtureService,
    FixtureSource,
    fold_status,
    parse_match,
    parse_matches,
    sample_matches,
    select_round_fixtures,
)
from best6.utils.scoring import calculate_points
from tests.conftest import make_match


def _response(status_code=200, payload=None, headers=None):
    response = mock.Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _source(*responses, api_key="key"):
    session = mock.Mock()
    session.headers = {}
    session.get.side_effect = list(responses)
    source = FixtureSource(api_key, competition="PL", session=session)
    source.retry_base_delay = 0
    return source


def _raw(match_id, utc_date="2025-12-30T15:00:00Z", status="TIMED", **extra):
    raw = {
        "id": match_id,
        "utcDate": utc_date,
        "status": status,
        "matchday": 19,
        "homeTeam": {"id": 57, "name": "Arsenal", "shortName": "Arsenal", "crest": "a.png"},
        "awayTeam": {"id": 61, "name": "Chelsea", "crest": "c.png"},
        "score": {"fullTime": {"home": None, "away": None}},
    }
    raw.update(extra)
    return raw


class TestParsing:
    def test_parse_full_payload(self):
        match = parse_match(
            _raw(9, status="FINISHED", score={"fullTime": {"home": 3, "away": 1}})
        )
        assert match == Match(
            id=9,
            utc_date="2025-12-30T15:00:00Z",
            status="FINISHED",
            matchday=19,
            home_team=Team(id="57", name="Arsenal", short_name="Arsenal", crest="a.png"),
            away_team=Team(id="61", name="Chelsea", crest="c.png"),
            full_time=Score(3, 1),
        )
        assert match.result == Score(3, 1)

    def test_missing_optional_fields_default(self):
        match = parse_match({"id": "12", "utcDate": "2025-12-30T15:00:00Z"})
        assert match.id == 12
        assert match.status == "SCHEDULED"
        assert match.matchday is None
        assert (match.home_team.id, match.home_team.name) == ("HOME", "Home")
        assert (match.away_team.id, match.away_team.name) == ("AWAY", "Away")
        assert match.result is None

    def test_non_integer_score_sides_are_unknown(self):
        match = parse_match(
            _raw(5, status="FINISHED", score={"fullTime": {"home": "2", "away": 1}})
        )
        assert match.full_time == Score(home=None, away=1)
        assert match.result is None
        assert calculate_points(Prediction(2, 1), match.result) == 0

        assert parse_match(_raw(6, score="n/a")).full_time == Score(None, None)

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            "match",
            {"utcDate": "2025-12-30T15:00:00Z"},
            {"id": "abc", "utcDate": "2025-12-30T15:00:00Z"},
            {"id": 1},
            {"id": 1, "utcDate": "yesterday"},
        ],
    )
    def test_invalid_payloads_raise(self, raw):
        with pytest.raises(MatchParseError):
            parse_match(raw)

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("FINISHED", "FINISHED"),
            ("AWARDED", "FINISHED"),
            ("POSTPONED", "FINISHED"),
            ("IN_PLAY", "IN_PLAY"),
            ("PAUSED", "IN_PLAY"),
            ("TIMED", "SCHEDULED"),
            ("SUSPENDED", "SCHEDULED"),
            (None, "SCHEDULED"),
        ],
    )
    def test_fold_status(self, status, expected):
        assert fold_status(status) == expected

    def test_parse_matches_skips_bad_items(self):
        matches = parse_matches([_raw(1), {"id": None}, "x", _raw(2)])
        assert [match.id for match in matches] == [1, 2]


def test_select_round_fixtures(now):
    matches = [
        make_match(i, kickoff=now + timedelta(hours=10 - i)) for i in range(1, 9)
    ] + [make_match(20, kickoff=now + timedelta(days=2))]

    selected = select_round_fixtures(matches, "2025-12-30", rng=random.Random(1))

    assert len(selected) == 6
    assert 20 not in [match.id for match in selected]
    kickoffs = [match.kickoff for match in selected]
    assert kickoffs == sorted(kickoffs)


def test_select_round_fixtures_without_date_or_matches():
    assert select_round_fixtures([], "2025-12-30") == []
    matches = [make_match(1), make_match(2)]
    assert {m.id for m in select_round_fixtures(matches)} == {1, 2}


def test_sample_matches(now):
    matches = sample_matches(now)
    assert [match.id for match in matches] == [101, 102, 103, 104, 105, 106]
    assert all(match.matchday == 12 for match in matches)
    assert matches[0].kickoff == now + timedelta(hours=1)
    assert matches[0].home_team.name == "Arsenal"


class TestFixtureSource:
    def test_fetch_matchday(self):
        source = _source(_response(payload={"matches": [_raw(1), _raw(2)]}))

        matches = source.fetch_matchday(19)

        assert [match.id for match in matches] == [1, 2]
        source.session.get.assert_called_once_with(
            "https://api.football-data.org/v4/competitions/PL/matches",
            params={"matchday": 19},
            timeout=30,
        )
        assert source.session.headers["X-Auth-Token"] == "key"

    def test_missing_api_key(self):
        source = _source(api_key=None)
        with pytest.raises(FixtureFetchError) as exc_info:
            source.fetch_matchday(19)
        assert exc_info.value.message == MISSING_KEY_MESSAGE
        source.session.get.assert_not_called()

    def test_non_2xx_status(self):
        source = _source(_response(403))
        with pytest.raises(FixtureFetchError) as exc_info:
            source.fetch_matchday(19)
        assert exc_info.value.message == "Fixtures request failed (403)."

    def test_retries_rate_limit_and_server_errors(self):
        source = _source(
            _response(429, headers={"Retry-After": "0"}),
            _response(503),
            _response(payload={"matches": [_raw(1)]}),
        )
        assert [match.id for match in source.fetch_matchday(19)] == [1]
        assert source.session.get.call_count == 3

    def test_gives_up_after_retries(self):
        source = _source(_response(500), _response(500), _response(502))
        with pytest.raises(FixtureFetchError) as exc_info:
            source.fetch_matchday(19)
        assert exc_info.value.message == "Fixtures request failed (502)."

    def test_connection_errors(self):
        error = requests.exceptions.ConnectionError("down")
        source = _source(error, error, error)
        with pytest.raises(FixtureFetchError) as exc_info:
            source.fetch_matchday(19)
        assert exc_info.value.message == "Unable to fetch fixtures."

    def test_cancelled_before_request(self):
        token = CancellationToken()
        token.cancel()
        source = _source(_response(payload={"matches": []}))
        with pytest.raises(FixtureFetchCancelled):
            source.fetch_matchday(19, cancel_token=token)
        source.session.get.assert_not_called()

    def test_standings(self):
        payload = {
            "standings": [
                {
                    "table": [
                        {"position": 1, "team": {"id": 57}},
                        {"position": 2, "team": {"id": 64}},
                        {"position": 3, "team": {}},
                    ]
                }
            ]
        }
        source = _source(_response(payload=payload))

        assert source.fetch_standings(season=2025) == {"57": 1, "64": 2}
        assert source.session.get.call_args.kwargs["params"] == {"season": 2025}

    def test_standings_without_table(self):
        source = _source(_response(payload={"standings": []}))
        assert source.fetch_standings(season=2025) == {}

    def test_recent_form(self):
        fixtures = [
            {"homeTeam": {"id": 57}, "awayTeam": {"id": 1}, "score": {"winner": "HOME_TEAM"}},
            {"homeTeam": {"id": 2}, "awayTeam": {"id": 57}, "score": {"winner": "HOME_TEAM"}},
            {"homeTeam": {"id": 3}, "awayTeam": {"id": 57}, "score": {"winner": "AWAY_TEAM"}},
            {"homeTeam": {"id": 57}, "awayTeam": {"id": 4}, "score": {"winner": "DRAW"}},
            {"homeTeam": {"id": 57}, "awayTeam": {"id": 5}, "score": {}},
        ]
        source = _source(_response(payload={"matches": fixtures}))

        assert source.fetch_recent_form(57) == ["W", "L", "W", "D", "D"]
        assert source.session.get.call_args.kwargs["params"] == {
            "status": "FINISHED",
            "limit": 5,
        }

    def test_recent_form_error_message(self):
        source = _source(_response(404))
        with pytest.raises(FixtureFetchError) as exc_info:
            source.fetch_recent_form(57)
        assert exc_info.value.message == "Recent form request failed (404)."

    def test_head_to_head(self):
        def fixture(away_id, date, home=1, away=0):
            return {
                "homeTeam": {"id": 57, "name": "Arsenal"},
                "awayTeam": {"id": away_id, "name": f"Team {away_id}"},
                "utcDate": date,
                "score": {"fullTime": {"home": home, "away": away}},
            }

        fixtures = [
            fixture(61, "2024-01-01T15:00:00Z"),
            fixture(99, "2025-01-01T15:00:00Z"),
            fixture(61, "2025-05-01T15:00:00Z", 2, 2),
            fixture(61, "2023-01-01T15:00:00Z"),
            fixture(61, "2022-01-01T15:00:00Z"),
        ]
        source = _source(_response(payload={"matches": fixtures}))
        match = parse_match(_raw(1))

        meetings = source.fetch_head_to_head(match)

        assert [m["date"][:4] for m in meetings] == ["2025", "2024", "2023"]
        assert meetings[0] == {
            "home": "Arsenal",
            "away": "Team 61",
            "homeScore": 2,
            "awayScore": 2,
            "date": "2025-05-01T15:00:00Z",
        }


class TestFixtureService:
    def test_load_round_caches_selection(self, store):
        raws = [_raw(i, utc_date=f"2025-12-30T{10 + i}:00:00Z") for i in range(1, 9)]
        source = _source(_response(payload={"matches": raws}))
        service = FixtureService(source, store, rng=random.Random(2))

        matches, error = service.load_round(19, "2025-12-30")

        assert error is None
        assert len(matches) == 6
        assert store.load_matches() == matches

    def test_no_matches_on_date_falls_back_to_sample(self, store, now):
        source = _source(_response(payload={"matches": [_raw(1)]}))
        service = FixtureService(source, store)

        matches, error = service.load_round(19, "2026-01-05", now=now)

        assert error == NO_MATCHES_MESSAGE
        assert [match.id for match in matches] == [101, 102, 103, 104, 105, 106]

    def test_fetch_error_falls_back_to_cache(self, store):
        cached = [make_match(7), make_match(8)]
        store.save_matches(cached)
        service = FixtureService(_source(_response(500), _response(500), _response(500)), store)

        matches, error = service.load_round(19)

        assert matches == cached
        assert error == "Fixtures request failed (500)."

    def test_missing_key_banner(self, store):
        service = FixtureService(_source(api_key=""), store)
        matches, error = service.load_round(19)
        assert error == MISSING_KEY_MESSAGE
        assert len(matches) == 6

    def test_cancellation_propagates(self, store):
        token = CancellationToken()
        token.cancel()
        service = FixtureService(_source(_response(payload={"matches": []})), store)
        with pytest.raises(FixtureFetchCancelled):
            service.load_round(19, cancel_token=token)
