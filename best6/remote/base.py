"""
Remote backend contract.

The backend is consulted per user through whole-collection reads and
replaces. Rows use the remote (snake_case) shape:

    profiles     {id, name}
    predictions  {user_id, match_id, home, away}
    rounds       {id, user_id, matchday, total_points, first_goal_minute, created_at}
    memberships  {league_id, name, code, members}
    leaderboard  {user_id, total_points, weekly_points, updated_at}

Every method raises BackendError (or a subclass) when the backend cannot
be reached or rejects the request.
"""


class RemoteBackend:
    """Interface implemented by DatabaseBackend and HttpBackend"""

    def get_profile(self, user_id):
        raise NotImplementedError

    def upsert_profile(self, user_id, name):
        raise NotImplementedError

    def fetch_predictions(self, user_id):
        raise NotImplementedError

    def replace_predictions(self, user_id, rows):
        """Make the user's predictions exactly `rows`, keyed by match_id"""
        raise NotImplementedError

    def fetch_rounds(self, user_id):
        raise NotImplementedError

    def replace_rounds(self, user_id, rows):
        """Make the user's rounds exactly `rows`, keyed by round id"""
        raise NotImplementedError

    def fetch_memberships(self, user_id):
        raise NotImplementedError

    def replace_memberships(self, user_id, leagues):
        """
        Make the user a member of exactly these leagues ({name, code} dicts),
        creating any league whose code does not exist yet.
        """
        raise NotImplementedError

    def fetch_leaderboard(self, user_id):
        raise NotImplementedError

    def upsert_leaderboard(self, user_id, total_points, weekly_points):
        raise NotImplementedError

    def list_leaderboard(self, limit=50):
        """Global standings as {rank, name, total_points, weekly_points}; no user ids"""
        raise NotImplementedError

    def register(self, email, password, name=""):
        """Create an account and return its user id"""
        raise NotImplementedError

    def authenticate(self, email, password):
        """Return the user id for valid credentials"""
        raise NotImplementedError
