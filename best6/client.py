"""
Best6 client

One object holding everything a device session needs: the Local Store, the
remote backend, the identity strategy, the background spawner and the
services built on them.
"""

import logging

from best6.auth import make_auth_provider
from best6.remote import make_backend
from best6.services.leagues import create_league, join_league
from best6.services.scheduler_service import make_spawner
from best6.services.settlement import RoundSettlement, migrate_round_caps
from best6.services.sync_service import SyncReconciler
from best6.store import FileStorage, LocalStore
from best6.utils.fixtures import FixtureService, FixtureSource
from best6.utils.timezone_utils import set_app_timezone

logger = logging.getLogger(__name__)


class Best6Client:
    def __init__(self, store, backend, auth, spawner, fixture_source=None, config=None):
        self.config = config or {}
        self.store = store
        self.backend = backend
        self.auth = auth
        self.spawner = spawner
        self.reconciler = SyncReconciler(store, backend, auth, spawner)
        self.fixtures = FixtureService(fixture_source, store) if fixture_source else None

    @classmethod
    def from_config(cls, config, app=None, storage=None, fixture_session=None):
        """
        Build a client from a config mapping (Flask app.config works).

        Args:
            app: Flask app for the in-process database backend
            storage: storage backend (defaults to FileStorage in LOCAL_STORE_DIR)
            fixture_session: requests session for the fixture source
        """
        set_app_timezone(config.get("TIMEZONE"))
        storage = storage or FileStorage(config.get("LOCAL_STORE_DIR"))
        store = LocalStore(storage, prefix=config.get("LOCAL_STORE_PREFIX", "best6:"))
        backend = make_backend(config, app=app, token_store=store)
        auth = make_auth_provider(config, backend)
        return cls(
            store=store,
            backend=backend,
            auth=auth,
            spawner=make_spawner(config),
            fixture_source=FixtureSource.from_config(config, session=fixture_session),
            config=config,
        )

    def start(self):
        """App start: re-cap legacy rounds, then reconcile every collection"""
        migrate_round_caps(self.store, self.reconciler)
        return self.reconciler.bootstrap_sync()

    def load_round(self, matchday=None, target_date=None, cancel_token=None):
        matchday = matchday or self.config.get("CURRENT_MATCHDAY")
        target_date = target_date or self.config.get("FIXTURE_TARGET_DATE")
        return self.fixtures.load_round(matchday, target_date, cancel_token=cancel_token)

    def open_round(self, matches, matchday=None):
        return RoundSettlement(self.store, self.reconciler, matches, matchday=matchday)

    def create_league(self, name, code=None):
        return create_league(self.store, self.reconciler, name, code)

    def join_league(self, code):
        return join_league(self.store, self.reconciler, code)

    def save_profile_name(self, name):
        self.store.save_profile_name((name or "").strip())
        self.reconciler.schedule("profile")

    def sign_up(self, email, password, name=""):
        user_id = self.auth.sign_up(email, password, name)
        if name:
            self.save_profile_name(name)
        return user_id

    def sign_in(self, email, password):
        user_id = self.auth.sign_in(email, password)
        self.reconciler.bootstrap_sync()
        return user_id

    def sign_out(self):
        """Forget local collections and the signed-in identity"""
        self.store.clear_app_data()
        self.auth.sign_out()

    def close(self):
        self.spawner.shutdown()
