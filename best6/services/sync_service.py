"""
Best6 Sync Service

Reconciles the device's Local Store with the Remote Backend, one collection
at a time. On startup every collection is pulled, merged, saved locally and
pushed back; after a local mutation only the affected collection is pushed.
"""

import logging
import threading
import uuid

from best6.entities import YOU_ID, LeaderboardEntry, League, Prediction, RoundResult
from best6.errors import Best6Error

logger = logging.getLogger(__name__)

COLLECTIONS = ("profile", "predictions", "rounds", "leagues", "leaderboard")


# Merge rules


def merge_profile_name(local_name, remote_profile):
    """A non-empty remote name wins"""
    if remote_profile and remote_profile.get("name"):
        return remote_profile["name"]
    return local_name


def merge_predictions(local, remote_rows):
    """Union of match ids; the remote value wins on conflict"""
    merged = dict(local)
    for row in remote_rows:
        merged[int(row["match_id"])] = Prediction(home=row.get("home"), away=row.get("away"))
    return merged


def round_from_row(row):
    """Remote rounds carry no picks"""
    return RoundResult(
        id=str(row["id"]),
        created_at=row["created_at"],
        matchday=int(row.get("matchday") or 0),
        total_points=int(row.get("total_points") or 0),
        picks=[],
        first_goal_minute=row.get("first_goal_minute"),
    )


def merge_rounds(local, remote_rows):
    """
    Union of rounds by id, seeded from local and overwritten by remote.

    The result is ordered newest first.
    """
    merged = {round_result.id: round_result for round_result in local}
    for row in remote_rows:
        remote_round = round_from_row(row)
        merged[remote_round.id] = remote_round
    return sorted(
        merged.values(), key=lambda round_result: round_result.created_at, reverse=True
    )


def merge_leagues(local, remote_memberships):
    """Union of leagues by code; the remote membership wins"""
    merged = {league.code: league for league in local}
    for row in remote_memberships:
        merged[row["code"]] = League(
            id=str(row["league_id"]),
            name=row.get("name") or "",
            code=row["code"],
            members=int(row.get("members") or 0),
        )
    return list(merged.values())


def merge_leaderboard(local, remote_row):
    """
    The remote row replaces the local "you" entry entirely.

    Entries for other players are left untouched.
    """
    if not remote_row:
        return list(local)

    you = LeaderboardEntry(
        id=YOU_ID,
        name="You",
        total_points=int(remote_row.get("total_points") or 0),
        weekly_points=int(remote_row.get("weekly_points") or 0),
    )
    merged = [entry for entry in local if entry.id != YOU_ID]
    position = next(
        (index for index, entry in enumerate(local) if entry.id == YOU_ID), 0
    )
    merged.insert(position, you)
    return merged


class SyncReconciler:
    """
    Pull/merge/push coordinator between the Local Store and the Remote Backend.

    Operations on the same collection are serialized by a per-collection
    lock. Pushes read the Local Store when they run, so a push scheduled
    earlier still sends the latest state.
    """

    def __init__(self, store, backend, auth_provider, spawner=None):
        self.store = store
        self.backend = backend
        self.auth_provider = auth_provider
        self.spawner = spawner
        self._locks = {name: threading.Lock() for name in COLLECTIONS}
        self._user_lock = threading.Lock()

        self._pullers = {
            "profile": self._reconcile_profile,
            "predictions": self._reconcile_predictions,
            "rounds": self._reconcile_rounds,
            "leagues": self._reconcile_leagues,
            "leaderboard": self._reconcile_leaderboard,
        }
        self._pushers = {
            "profile": self._push_profile,
            "predictions": self._push_predictions,
            "rounds": self._push_rounds,
            "leagues": self._push_leagues,
            "leaderboard": self._push_leaderboard,
        }

    def get_or_create_user_id(self):
        """
        Resolve the user id used for every remote row.

        An authenticated identity wins and is persisted; otherwise the stored
        device token is used, minting a new one on first run.
        """
        with self._user_lock:
            auth_id = self.auth_provider.current_user_id() if self.auth_provider else None
            if auth_id:
                if self.store.get_user_id() != auth_id:
                    self.store.set_user_id(auth_id)
                return auth_id

            user_id = self.store.get_user_id()
            if user_id:
                return user_id

            user_id = str(uuid.uuid4())
            self.store.set_user_id(user_id)
            logger.info(f"Created device identity {user_id}")
            return user_id

    # Startup reconciliation

    def bootstrap_sync(self):
        """
        Reconcile every collection in order and return {collection: ok}.

        A failure in one collection (unreachable backend, rejected request or
        bad response) is logged and the next one still runs.
        """
        user_id = self.get_or_create_user_id()
        outcome = {}
        for name in COLLECTIONS:
            try:
                self.reconcile(name, user_id)
                outcome[name] = True
            except Best6Error as e:
                logger.warning(f"Sync of {name} failed: {e.message}")
                outcome[name] = False
        logger.info(
            f"Bootstrap sync for {user_id}: "
            f"{sum(outcome.values())}/{len(COLLECTIONS)} collections reconciled"
        )
        return outcome

    def reconcile(self, collection, user_id=None):
        """Pull, merge, save locally and push one collection"""
        user_id = user_id or self.get_or_create_user_id()
        with self._locks[collection]:
            self._pullers[collection](user_id)
            self._pushers[collection](user_id)

    def _reconcile_profile(self, user_id):
        remote = self.backend.get_profile(user_id)
        name = merge_profile_name(self.store.load_profile_name(), remote)
        self.store.save_profile_name(name)

    def _reconcile_predictions(self, user_id):
        remote = self.backend.fetch_predictions(user_id)
        self.store.save_predictions(merge_predictions(self.store.load_predictions(), remote))

    def _reconcile_rounds(self, user_id):
        remote = self.backend.fetch_rounds(user_id)
        self.store.save_rounds(merge_rounds(self.store.load_rounds(), remote))

    def _reconcile_leagues(self, user_id):
        remote = self.backend.fetch_memberships(user_id)
        self.store.save_leagues(merge_leagues(self.store.load_leagues(), remote))

    def _reconcile_leaderboard(self, user_id):
        remote = self.backend.fetch_leaderboard(user_id)
        self.store.save_leaderboard(merge_leaderboard(self.store.load_leaderboard(), remote))

    # Pushes

    def push(self, collection, user_id=None):
        """Send the local state of one collection to the backend"""
        user_id = user_id or self.get_or_create_user_id()
        with self._locks[collection]:
            self._pushers[collection](user_id)

    def sync_profile(self):
        self.push("profile")

    def sync_predictions(self):
        self.push("predictions")

    def sync_rounds(self):
        self.push("rounds")

    def sync_leagues(self):
        self.push("leagues")

    def sync_leaderboard(self):
        self.push("leaderboard")

    def _push_profile(self, user_id):
        self.backend.upsert_profile(user_id, self.store.load_profile_name())

    def _push_predictions(self, user_id):
        rows = []
        for match_id, prediction in self.store.load_predictions().items():
            filled = prediction.filled()
            rows.append({"match_id": match_id, "home": filled.home, "away": filled.away})
        self.backend.replace_predictions(user_id, rows)
        logger.debug(f"Pushed {len(rows)} predictions for {user_id}")

    def _push_rounds(self, user_id):
        rows = [
            {
                "id": round_result.id,
                "matchday": round_result.matchday,
                "total_points": round_result.total_points,
                "first_goal_minute": round_result.first_goal_minute,
                "created_at": round_result.created_at,
            }
            for round_result in self.store.load_rounds()
        ]
        self.backend.replace_rounds(user_id, rows)
        logger.debug(f"Pushed {len(rows)} rounds for {user_id}")

    def _push_leagues(self, user_id):
        leagues = [
            {"name": league.name, "code": league.code} for league in self.store.load_leagues()
        ]
        self.backend.replace_memberships(user_id, leagues)

    def _push_leaderboard(self, user_id):
        you = next(
            (entry for entry in self.store.load_leaderboard() if entry.id == YOU_ID), None
        )
        if you is None:
            return
        self.backend.upsert_leaderboard(user_id, you.total_points, you.weekly_points)

    # Background pushes

    def schedule(self, collection):
        """Hand a push to the spawner; the caller never waits for it"""
        if collection not in self._pushers:
            raise ValueError(f"Unknown collection: {collection}")
        if self.spawner is None:
            logger.debug(f"No spawner configured; skipping {collection} push")
            return None
        return self.spawner.spawn(f"sync-{collection}", self.push, collection)
