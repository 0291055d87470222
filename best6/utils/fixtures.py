"""
Fixture source: football-data.org v4.

Read-only client for matchday fixtures, standings and recent results, the
parser from the external payload to Match, and the service that picks a
round's fixtures and falls back to cached or sample matches on failure.
"""

import logging
import random
import threading
import time
from datetime import timedelta
from functools import wraps

import requests

from best6.entities import Match, Score, Team
from best6.errors import FixtureFetchCancelled, FixtureFetchError, MatchParseError
from best6.utils.timezone_utils import current_season_year, get_utc_time, parse_iso, to_iso

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.football-data.org/v4"
ROUND_SIZE = 6
NO_MATCHES_MESSAGE = "No matches found for the selected date."
MISSING_KEY_MESSAGE = "Missing API key for fixtures."

FINISHED_STATUSES = ("FINISHED", "AWARDED", "POSTPONED")
LIVE_STATUSES = ("IN_PLAY", "PAUSED")


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff

    Retries on 429 and 5xx responses and on request exceptions. The
    instance attribute retry_base_delay overrides base_delay. After the
    last attempt the final response is returned to the caller.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            delay_base = getattr(self, "retry_base_delay", base_delay)
            cancel_token = kwargs.get("cancel_token")
            response = None

            for attempt in range(max_retries):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                last_attempt = attempt == max_retries - 1

                try:
                    response = func(self, *args, **kwargs)
                except requests.exceptions.RequestException as e:
                    delay = delay_base * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if last_attempt:
                        raise
                    time.sleep(delay)
                    continue

                if response.status_code == 429:  # Too Many Requests
                    retry_after = response.headers.get("Retry-After")
                    delay = (
                        float(retry_after)
                        if retry_after and retry_after.isdigit()
                        else delay_base * (backoff_factor**attempt)
                    )
                    logger.warning(
                        f"Rate limited. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                elif response.status_code >= 500:  # Server errors
                    delay = delay_base * (backoff_factor**attempt)
                    logger.warning(
                        f"Server error {response.status_code}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                else:
                    return response

                if not last_attempt:
                    time.sleep(delay)

            return response

        return wrapper

    return decorator


class CancellationToken:
    """Cooperative cancellation for fixture requests"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise FixtureFetchCancelled()


# Parsing


def fold_status(status):
    """Map the source's status vocabulary onto SCHEDULED / IN_PLAY / FINISHED"""
    if status in FINISHED_STATUSES:
        return "FINISHED"
    if status in LIVE_STATUSES:
        return "IN_PLAY"
    return "SCHEDULED"


def _parse_team(raw, default_id, default_name):
    raw = raw if isinstance(raw, dict) else {}
    team_id = raw.get("id")
    return Team(
        id=str(team_id) if team_id is not None else default_id,
        name=raw.get("name") or default_name,
        short_name=raw.get("shortName") or raw.get("tla"),
        crest=raw.get("crest"),
    )


def _goals(value):
    """Score side as a non-negative int, or None when unknown"""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def parse_match(raw):
    """
    Parse one fixture from the source payload.

    Raises:
        MatchParseError: not an object, no usable id, or no valid utcDate
    """
    if not isinstance(raw, dict):
        raise MatchParseError("Fixture is not an object")

    raw_id = raw.get("id")
    if raw_id is None or isinstance(raw_id, bool):
        raise MatchParseError("Fixture has no id")
    try:
        match_id = int(raw_id)
    except (TypeError, ValueError):
        raise MatchParseError(f"Fixture id {raw_id!r} is not numeric") from None

    utc_date = raw.get("utcDate")
    if not isinstance(utc_date, str) or parse_iso(utc_date) is None:
        raise MatchParseError(f"Fixture {match_id} has no valid utcDate")

    matchday = raw.get("matchday")
    score = raw.get("score") if isinstance(raw.get("score"), dict) else {}
    full_time = score.get("fullTime") if isinstance(score.get("fullTime"), dict) else {}

    return Match(
        id=match_id,
        utc_date=utc_date,
        status=fold_status(raw.get("status")),
        matchday=int(matchday) if isinstance(matchday, int) else None,
        home_team=_parse_team(raw.get("homeTeam"), "HOME", "Home"),
        away_team=_parse_team(raw.get("awayTeam"), "AWAY", "Away"),
        full_time=Score(home=_goals(full_time.get("home")), away=_goals(full_time.get("away"))),
    )


def parse_matches(raws):
    """Parse a list of fixtures, skipping (and logging) malformed ones"""
    matches = []
    for raw in raws or []:
        try:
            matches.append(parse_match(raw))
        except MatchParseError as e:
            logger.warning(f"Skipping fixture: {e.message}")
    return matches


def select_round_fixtures(matches, target_date=None, limit=ROUND_SIZE, rng=None):
    """
    Pick a round: fixtures on target_date (YYYY-MM-DD, UTC), a random
    sample of at most `limit`, ordered by kickoff.
    """
    rng = rng or random
    candidates = [
        match
        for match in matches
        if not target_date or match.utc_date.startswith(target_date)
    ]
    chosen = rng.sample(candidates, min(limit, len(candidates)))
    return sorted(chosen, key=lambda match: match.kickoff)


SAMPLE_FIXTURES = (
    (101, ("57", "Arsenal", "ARS"), ("61", "Chelsea", "CHE")),
    (102, ("64", "Liverpool", "LIV"), ("65", "Manchester City", "MCI")),
    (103, ("81", "Barcelona", "BAR"), ("86", "Real Madrid", "RMA")),
    (104, ("109", "Juventus", "JUV"), ("98", "AC Milan", "MIL")),
    (105, ("524", "PSG", "PSG"), ("5", "Bayern Munich", "BAY")),
    (106, ("73", "Tottenham", "TOT"), ("66", "Manchester United", "MUN")),
)


def sample_matches(now=None):
    """Built-in matchday 12, kicking off hourly from now"""
    now = now or get_utc_time()

    def team(data):
        team_id, name, short_name = data
        return Team(
            id=team_id,
            name=name,
            short_name=short_name,
            crest=f"https://crests.football-data.org/{team_id}.png",
        )

    return [
        Match(
            id=match_id,
            utc_date=to_iso(now + timedelta(hours=offset)),
            status="SCHEDULED",
            matchday=12,
            home_team=team(home),
            away_team=team(away),
        )
        for offset, (match_id, home, away) in enumerate(SAMPLE_FIXTURES, start=1)
    ]


class FixtureSource:
    """
    football-data.org client with rate limiting and retries
    """

    def __init__(
        self,
        api_key,
        base_url=None,
        competition="PL",
        session=None,
        timeout=30,
    ):
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.competition = competition
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Best6-Predictor/1.0"})
        if api_key:
            self.session.headers.update({"X-Auth-Token": api_key})

        # Free tier allows 10 requests per minute
        self.max_requests_per_minute = 10
        self.request_timestamps = []

    @classmethod
    def from_config(cls, config, session=None):
        return cls(
            api_key=config.get("FOOTBALL_DATA_KEY"),
            base_url=config.get("FOOTBALL_DATA_BASE_URL"),
            competition=config.get("COMPETITION_CODE", "PL"),
            session=session,
            timeout=config.get("FIXTURE_TIMEOUT", 30),
        )

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        self.request_timestamps.append(time.time())

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, path, params=None, cancel_token=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        url = f"{self.base_url}{path}"
        logger.debug(f"Fetching {url} {params or ''}")
        return self.session.get(url, params=params, timeout=self.timeout)

    def _get_json(self, path, params=None, cancel_token=None, label="Fixtures"):
        if not self.api_key:
            raise FixtureFetchError(MISSING_KEY_MESSAGE)

        try:
            response = self._make_api_request(path, params=params, cancel_token=cancel_token)
        except requests.exceptions.RequestException as e:
            logger.error(f"{label} request to {path} failed: {e}")
            raise FixtureFetchError() from e

        # A cancelled caller never sees a late response
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        if not 200 <= response.status_code < 300:
            logger.warning(f"{label} request to {path} returned {response.status_code}")
            raise FixtureFetchError(f"{label} request failed ({response.status_code}).")

        try:
            return response.json()
        except ValueError as e:
            raise FixtureFetchError() from e

    def fetch_matchday(self, matchday, cancel_token=None):
        """All fixtures of a matchday, parsed"""
        data = self._get_json(
            f"/competitions/{self.competition}/matches",
            params={"matchday": matchday},
            cancel_token=cancel_token,
        )
        matches = parse_matches((data or {}).get("matches"))
        logger.info(f"Fetched {len(matches)} fixtures for matchday {matchday}")
        return matches

    def fetch_standings(self, season=None, cancel_token=None):
        """League table as {team_id: position}"""
        season = season or current_season_year()
        data = self._get_json(
            f"/competitions/{self.competition}/standings",
            params={"season": season},
            cancel_token=cancel_token,
            label="Standings",
        )
        standings = (data or {}).get("standings") or []
        table = (standings[0].get("table") if standings else None) or []

        positions = {}
        for entry in table:
            team_id = (entry.get("team") or {}).get("id")
            if team_id:
                positions[str(team_id)] = entry.get("position")
        return positions

    def _finished_matches(self, team_id, limit, cancel_token=None, label="Fixtures"):
        data = self._get_json(
            f"/teams/{team_id}/matches",
            params={"status": "FINISHED", "limit": limit},
            cancel_token=cancel_token,
            label=label,
        )
        return (data or {}).get("matches") or []

    def fetch_recent_form(self, team_id, limit=5, cancel_token=None):
        """Last results of a team as "W", "D" or "L", as ordered by the source"""
        team_id = str(team_id)
        form = []
        for fixture in self._finished_matches(team_id, limit, cancel_token, "Recent form"):
            winner = (fixture.get("score") or {}).get("winner")
            home_id = str((fixture.get("homeTeam") or {}).get("id", ""))
            away_id = str((fixture.get("awayTeam") or {}).get("id", ""))
            if winner == "HOME_TEAM":
                form.append("W" if home_id == team_id else "L")
            elif winner == "AWAY_TEAM":
                form.append("W" if away_id == team_id else "L")
            else:
                form.append("D")
        return form

    def fetch_head_to_head(self, match, limit=3, cancel_token=None):
        """Most recent finished meetings between the two teams of a match"""
        away_id = str(match.away_team.id)
        fixtures = [
            fixture
            for fixture in self._finished_matches(
                match.home_team.id, 10, cancel_token, "Head-to-head"
            )
            if away_id
            in (
                str((fixture.get("homeTeam") or {}).get("id")),
                str((fixture.get("awayTeam") or {}).get("id")),
            )
        ]
        fixtures.sort(key=lambda fixture: fixture.get("utcDate") or "", reverse=True)

        meetings = []
        for fixture in fixtures[:limit]:
            full_time = (fixture.get("score") or {}).get("fullTime") or {}
            meetings.append(
                {
                    "home": (fixture.get("homeTeam") or {}).get("name") or "Home",
                    "away": (fixture.get("awayTeam") or {}).get("name") or "Away",
                    "homeScore": _goals(full_time.get("home")),
                    "awayScore": _goals(full_time.get("away")),
                    "date": fixture.get("utcDate") or "",
                }
            )
        return meetings


class FixtureService:
    """Loads a playable round and caches it in the Local Store"""

    def __init__(self, source, store, rng=None):
        self.source = source
        self.store = store
        self.rng = rng

    def load_round(self, matchday, target_date=None, cancel_token=None, now=None):
        """
        Fetch and select the fixtures for a round.

        Returns:
            (matches, error_message). On failure the matches are the cached
            round, or the built-in sample round when nothing is cached, and
            error_message is the banner text to show.
        """
        try:
            fetched = self.source.fetch_matchday(matchday, cancel_token=cancel_token)
        except FixtureFetchCancelled:
            raise
        except FixtureFetchError as e:
            return self._fallback(e.message, now)

        selected = select_round_fixtures(fetched, target_date, rng=self.rng)
        if not selected:
            return self._fallback(NO_MATCHES_MESSAGE, now)

        self.store.save_matches(selected)
        return selected, None

    def _fallback(self, message, now=None):
        cached = self.store.load_matches()
        if cached:
            logger.info(f"Using {len(cached)} cached fixtures: {message}")
            return cached, message
        logger.info(f"Using sample fixtures: {message}")
        return sample_matches(now), message
