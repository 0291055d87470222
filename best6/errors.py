"""
Exception hierarchy for the Best6 prediction game.

Validation errors carry a message that is safe to show to the player.
I/O failures (backend, fixture source) are raised at the boundary and
contained by the callers that own them.
"""


class Best6Error(Exception):
    """Base class for all application errors"""

    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {"error": self.message, "type": self.__class__.__name__}


class ValidationError(Best6Error):
    """Invalid input"""

    status_code = 400


class TieBreakerValidationError(ValidationError):
    """Select a first-goal minute between 1 and 120."""


class RoundLockedError(Best6Error):
    """Predictions are locked for this round"""

    status_code = 409


class AuthenticationError(Best6Error):
    """Invalid email or password"""

    status_code = 401


class BackendError(Best6Error):
    """Remote backend request failed"""

    status_code = 502


class BackendUnavailable(BackendError):
    """Remote backend is unreachable"""

    status_code = 503


class FixtureFetchError(Best6Error):
    """Unable to fetch fixtures."""

    status_code = 502


class FixtureFetchCancelled(FixtureFetchError):
    """Fixture request was cancelled"""


class MatchParseError(Best6Error):
    """Fixture payload could not be parsed"""

    status_code = 422
