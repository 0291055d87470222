"""Private leagues: create one or join by code"""

import logging
import random

from best6.entities import League
from best6.errors import ValidationError
from best6.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

# Shown for a joined league until the next sync reports the real count
JOINED_LEAGUE_MEMBERS = 12


def generate_league_code(rng=None):
    rng = rng or random
    return f"B6-{rng.randint(100, 999)}"


def _league_id(now=None):
    now = now or get_utc_time()
    return f"league-{int(now.timestamp() * 1000)}"


def _prepend(leagues, league):
    """Put the league first, dropping any local entry with the same code"""
    return [league] + [existing for existing in leagues if existing.code != league.code]


def create_league(store, reconciler, name, code=None, now=None, rng=None):
    """
    Create a private league owned by the local player.

    Args:
        name: league name, required
        code: invite code (generated as B6-<3 digits> when blank)
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("League name is required")

    league = League(
        id=_league_id(now),
        name=name,
        code=(code or "").strip() or generate_league_code(rng),
        members=1,
    )
    store.save_leagues(_prepend(store.load_leagues(), league))
    logger.info(f"Created league {league.code}")
    if reconciler is not None:
        reconciler.schedule("leagues")
    return league


def join_league(store, reconciler, code, now=None):
    """Join a league by its invite code"""
    code = (code or "").strip()
    if not code:
        raise ValidationError("League code is required")

    league = League(
        id=_league_id(now),
        name=f"League {code}",
        code=code,
        members=JOINED_LEAGUE_MEMBERS,
    )
    store.save_leagues(_prepend(store.load_leagues(), league))
    logger.info(f"Joined league {code}")
    if reconciler is not None:
        reconciler.schedule("leagues")
    return league
