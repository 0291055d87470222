import logging

import requests

from best6.errors import (
    AuthenticationError,
    BackendError,
    BackendUnavailable,
    ValidationError,
)

from .base import RemoteBackend

logger = logging.getLogger(__name__)


class HttpBackend(RemoteBackend):
    """
    Remote collections reached through the Best6 JSON API.

    Writes carry a per-player bearer token. Account tokens come back from
    register/login; a device identity claims its token on the first write.
    When a token_store (the LocalStore) is given, tokens survive restarts.
    """

    def __init__(self, base_url, timeout=15, session=None, token_store=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Best6-Client/1.0"})
        self.token_store = token_store
        self._tokens = {}

    def _request(self, method, path, payload=None, params=None, headers=None):
        url = f"{self.base_url}/api{path}"
        try:
            response = self.session.request(
                method, url, json=payload, params=params, headers=headers, timeout=self.timeout
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.warning(f"Backend unreachable: {method} {url}: {e}")
            raise BackendUnavailable() from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Backend request failed: {method} {url}: {e}")
            raise BackendError() from e

        if response.status_code == 401:
            raise AuthenticationError(_error_message(response))
        if response.status_code in (400, 422):
            raise ValidationError(_error_message(response))
        if response.status_code == 404 and method == "GET":
            return None
        if response.status_code >= 400:
            logger.warning(f"Backend error {response.status_code}: {method} {url}")
            raise BackendError(
                f"Backend request failed ({response.status_code})"
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Backend sent a non-JSON body: {method} {url}")
            raise BackendError("Backend response was not JSON") from e

    def _user_path(self, user_id, collection):
        return f"/users/{user_id}/{collection}"

    def _remember_token(self, user_id, token):
        self._tokens[user_id] = token
        if self.token_store is not None:
            self.token_store.set_sync_token(user_id, token)

    def _token(self, user_id):
        token = self._tokens.get(user_id)
        if token:
            return token
        if self.token_store is not None:
            token = self.token_store.get_sync_token(user_id)
        if not token:
            data = self._request("POST", self._user_path(user_id, "token"))
            token = _field(data, "token")
            logger.info(f"Claimed write token for {user_id}")
            self._remember_token(user_id, token)
        self._tokens[user_id] = token
        return token

    def _write(self, user_id, collection, payload):
        headers = {"Authorization": f"Bearer {self._token(user_id)}"}
        self._request("PUT", self._user_path(user_id, collection), payload, headers=headers)

    def get_profile(self, user_id):
        return self._request("GET", self._user_path(user_id, "profile"))

    def upsert_profile(self, user_id, name):
        self._write(user_id, "profile", {"name": name})

    def fetch_predictions(self, user_id):
        return self._request("GET", self._user_path(user_id, "predictions")) or []

    def replace_predictions(self, user_id, rows):
        self._write(user_id, "predictions", rows)

    def fetch_rounds(self, user_id):
        return self._request("GET", self._user_path(user_id, "rounds")) or []

    def replace_rounds(self, user_id, rows):
        self._write(user_id, "rounds", rows)

    def fetch_memberships(self, user_id):
        return self._request("GET", self._user_path(user_id, "leagues")) or []

    def replace_memberships(self, user_id, leagues):
        self._write(user_id, "leagues", leagues)

    def fetch_leaderboard(self, user_id):
        return self._request("GET", self._user_path(user_id, "leaderboard"))

    def upsert_leaderboard(self, user_id, total_points, weekly_points):
        self._write(
            user_id,
            "leaderboard",
            {"total_points": total_points, "weekly_points": weekly_points},
        )

    def list_leaderboard(self, limit=50):
        return self._request("GET", "/leaderboard", params={"limit": limit}) or []

    def register(self, email, password, name=""):
        data = self._request(
            "POST",
            "/auth/register",
            {"email": email, "password": password, "name": name},
        )
        user_id = _field(data, "user_id")
        self._remember_token(user_id, _field(data, "token"))
        return user_id

    def authenticate(self, email, password):
        data = self._request(
            "POST", "/auth/login", {"email": email, "password": password}
        )
        user_id = _field(data, "user_id")
        self._remember_token(user_id, _field(data, "token"))
        return user_id


def _field(data, name):
    if not isinstance(data, dict) or not data.get(name):
        raise BackendError(f"Backend response has no '{name}'")
    return data[name]


def _error_message(response):
    try:
        return response.json().get("error")
    except (ValueError, AttributeError):
        return None
