"""
Local Store

Key-addressed persistent state for one device. Every collection loads to an
empty default when its key is missing or its JSON is unreadable; reads never
raise.
"""

import json
import logging
import threading

from best6.entities import LeaderboardEntry, League, Match, Prediction, RoundResult

logger = logging.getLogger(__name__)

COLLECTION_KEYS = {
    "predictions": "predictions",
    "rounds": "rounds",
    "leagues": "leagues",
    "leaderboard": "leaderboard",
    "profile_name": "profileName",
    "matches": "matches",
}
USER_ID_KEY = "userId"
LANGUAGE_KEY = "language"
SYNC_TOKENS_KEY = "syncTokens"


class LocalStore:
    """Typed load/save access to the device's persisted collections"""

    def __init__(self, storage, prefix="best6:"):
        self.storage = storage
        self.prefix = prefix
        self._lock = threading.RLock()

    def _key(self, name):
        return f"{self.prefix}{name}"

    def _read_json(self, name, default, parse):
        try:
            raw = self.storage.get(self._key(name))
            if not raw:
                return default()
            return parse(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Discarding unreadable local data for '{name}': {e}")
            return default()

    def _write_json(self, name, value):
        self.storage.set(self._key(name), json.dumps(value))

    # Predictions

    def load_predictions(self):
        def parse(data):
            return {
                int(match_id): Prediction.from_dict(prediction)
                for match_id, prediction in data.items()
            }

        return self._read_json(COLLECTION_KEYS["predictions"], dict, parse)

    def save_predictions(self, predictions):
        self._write_json(
            COLLECTION_KEYS["predictions"],
            {
                str(match_id): prediction.to_dict()
                for match_id, prediction in predictions.items()
            },
        )

    # Rounds

    def load_rounds(self):
        return self._read_json(
            COLLECTION_KEYS["rounds"],
            list,
            lambda data: [RoundResult.from_dict(item) for item in data],
        )

    def save_rounds(self, rounds):
        self._write_json(
            COLLECTION_KEYS["rounds"], [round_result.to_dict() for round_result in rounds]
        )
        return rounds

    def save_round_result(self, round_result):
        """
        Persist a new round, superseding any round for the same matchday.

        Returns the updated list with the new round first.
        """
        with self._lock:
            rounds = self.load_rounds()
            updated = [round_result] + [
                existing
                for existing in rounds
                if existing.matchday != round_result.matchday
            ]
            self.save_rounds(updated)
        logger.info(
            f"Saved round {round_result.id} for matchday {round_result.matchday} "
            f"({len(rounds) + 1 - len(updated)} superseded)"
        )
        return updated

    # Leagues

    def load_leagues(self):
        return self._read_json(
            COLLECTION_KEYS["leagues"],
            list,
            lambda data: [League.from_dict(item) for item in data],
        )

    def save_leagues(self, leagues):
        self._write_json(
            COLLECTION_KEYS["leagues"], [league.to_dict() for league in leagues]
        )

    # Leaderboard

    def load_leaderboard(self):
        return self._read_json(
            COLLECTION_KEYS["leaderboard"],
            list,
            lambda data: [LeaderboardEntry.from_dict(item) for item in data],
        )

    def save_leaderboard(self, entries):
        self._write_json(
            COLLECTION_KEYS["leaderboard"], [entry.to_dict() for entry in entries]
        )

    # Matches (cache only)

    def load_matches(self):
        return self._read_json(
            COLLECTION_KEYS["matches"],
            list,
            lambda data: [Match.from_dict(item) for item in data],
        )

    def save_matches(self, matches):
        self._write_json(COLLECTION_KEYS["matches"], [match.to_dict() for match in matches])

    # Plain string values

    def load_profile_name(self):
        return self.storage.get(self._key(COLLECTION_KEYS["profile_name"])) or ""

    def save_profile_name(self, name):
        self.storage.set(self._key(COLLECTION_KEYS["profile_name"]), name)

    def load_language(self):
        return self.storage.get(self._key(LANGUAGE_KEY))

    def save_language(self, language):
        self.storage.set(self._key(LANGUAGE_KEY), language)

    def get_user_id(self):
        return self.storage.get(self._key(USER_ID_KEY))

    def set_user_id(self, user_id):
        self.storage.set(self._key(USER_ID_KEY), user_id)

    def get_sync_token(self, user_id):
        tokens = self._read_json(SYNC_TOKENS_KEY, dict, dict)
        return tokens.get(user_id)

    def set_sync_token(self, user_id, token):
        with self._lock:
            tokens = self._read_json(SYNC_TOKENS_KEY, dict, dict)
            tokens[user_id] = token
            self._write_json(SYNC_TOKENS_KEY, tokens)

    def clear_app_data(self):
        """Remove every collection (sign-out). The user id, write tokens and language stay."""
        with self._lock:
            self.storage.remove(*(self._key(name) for name in COLLECTION_KEYS.values()))
        logger.info("Cleared local app data")
