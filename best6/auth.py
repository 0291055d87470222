"""
Identity strategies.

The strategy is chosen once at startup from AUTH_STRATEGY:

    bypass   every device is signed in with an anonymous identity
    account  email/password accounts stored as remote profiles
"""

import logging

from best6.errors import AuthenticationError

logger = logging.getLogger(__name__)


class AuthProvider:
    """Interface shared by the identity strategies"""

    @property
    def is_authenticated(self):
        raise NotImplementedError

    def current_user_id(self):
        """Remote identity of the signed-in user, or None"""
        raise NotImplementedError

    def sign_in(self, email, password):
        raise NotImplementedError

    def sign_up(self, email, password, name=""):
        raise NotImplementedError

    def sign_out(self):
        raise NotImplementedError


class BypassAuthProvider(AuthProvider):
    """Always signed in; the device token is the identity"""

    @property
    def is_authenticated(self):
        return True

    def current_user_id(self):
        return None

    def sign_in(self, email, password):
        return None

    def sign_up(self, email, password, name=""):
        return None

    def sign_out(self):
        pass


class AccountAuthProvider(AuthProvider):
    """Accounts registered and verified through the remote backend"""

    def __init__(self, backend):
        self.backend = backend
        self._user_id = None

    @property
    def is_authenticated(self):
        return self._user_id is not None

    def current_user_id(self):
        return self._user_id

    def sign_in(self, email, password):
        try:
            self._user_id = self.backend.authenticate(email, password)
        except AuthenticationError:
            logger.warning(f"Failed sign-in for {email}")
            raise
        logger.info(f"Signed in as {self._user_id}")
        return self._user_id

    def sign_up(self, email, password, name=""):
        self._user_id = self.backend.register(email, password, name)
        logger.info(f"Signed up as {self._user_id}")
        return self._user_id

    def sign_out(self):
        if self._user_id:
            logger.info(f"Signed out {self._user_id}")
        self._user_id = None


def make_auth_provider(config, backend):
    strategy = str(config.get("AUTH_STRATEGY", "bypass")).lower()
    if strategy == "account":
        return AccountAuthProvider(backend)
    if strategy != "bypass":
        raise ValueError(f"Unknown AUTH_STRATEGY: {strategy}")
    return BypassAuthProvider()
