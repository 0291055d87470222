from datetime import datetime, timedelta, timezone

import pytest

from best6 import create_app, db
from best6.auth import BypassAuthProvider
from best6.entities import Match, Score, Team
from best6.remote import DatabaseBackend
from best6.services.scheduler_service import ImmediateSpawner
from best6.services.sync_service import SyncReconciler
from best6.store import LocalStore, MemoryStorage
from best6.utils.timezone_utils import to_iso

NOW = datetime(2025, 12, 30, 12, 0, tzinfo=timezone.utc)


def make_match(match_id, kickoff=None, status="SCHEDULED", home=None, away=None, matchday=19):
    kickoff = kickoff or NOW + timedelta(hours=match_id % 10 + 1)
    full_time = Score(home=home, away=away) if home is not None or away is not None else None
    return Match(
        id=match_id,
        utc_date=to_iso(kickoff),
        status=status,
        home_team=Team(id=f"{match_id}1", name=f"Home {match_id}"),
        away_team=Team(id=f"{match_id}2", name=f"Away {match_id}"),
        matchday=matchday,
        full_time=full_time,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store():
    return LocalStore(MemoryStorage())


@pytest.fixture
def backend(app):
    return DatabaseBackend(app)


@pytest.fixture
def spawner():
    return ImmediateSpawner()


@pytest.fixture
def reconciler(store, backend, spawner):
    return SyncReconciler(store, backend, BypassAuthProvider(), spawner)
