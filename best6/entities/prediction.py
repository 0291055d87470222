from dataclasses import dataclass
from typing import Optional

MIN_GOALS = 0
MAX_GOALS = 9


@dataclass
class Prediction:
    """A predicted scoreline; None on either side means not entered yet"""

    home: Optional[int] = None
    away: Optional[int] = None

    @property
    def is_complete(self):
        return self.home is not None and self.away is not None

    def adjusted(self, side, delta):
        """Return a copy with one side stepped by delta, clamped to 0-9"""
        if side not in ("home", "away"):
            raise ValueError(f"Unknown side: {side}")
        current = getattr(self, side)
        base = 0 if current is None else current
        value = min(MAX_GOALS, max(MIN_GOALS, base + delta))
        if side == "home":
            return Prediction(home=value, away=self.away)
        return Prediction(home=self.home, away=value)

    def filled(self):
        """Return a copy with missing sides set to 0"""
        return Prediction(home=self.home or 0, away=self.away or 0)

    def to_dict(self):
        return {"home": self.home, "away": self.away}

    @classmethod
    def from_dict(cls, data):
        if isinstance(data, cls):
            return data
        return cls(home=_goals(data.get("home")), away=_goals(data.get("away")))


def _goals(value):
    if value is None:
        return None
    return int(value)
