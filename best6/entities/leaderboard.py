from dataclasses import dataclass
from typing import List, Optional

from .prediction import Prediction

# Sentinel id of the local player's own row
YOU_ID = "you"


@dataclass
class LeaderboardEntry:
    id: str
    name: str
    total_points: int = 0
    weekly_points: int = 0
    predictions: Optional[List[Prediction]] = None
    avatar_color: Optional[str] = None

    @property
    def is_you(self):
        return self.id == YOU_ID

    def to_dict(self):
        data = {
            "id": self.id,
            "name": self.name,
            "totalPoints": self.total_points,
            "weeklyPoints": self.weekly_points,
        }
        if self.predictions is not None:
            data["predictions"] = [p.to_dict() for p in self.predictions]
        if self.avatar_color is not None:
            data["avatarColor"] = self.avatar_color
        return data

    @classmethod
    def from_dict(cls, data):
        predictions = data.get("predictions")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            total_points=int(data.get("totalPoints") or 0),
            weekly_points=int(data.get("weeklyPoints") or 0),
            predictions=(
                [Prediction.from_dict(p) for p in predictions]
                if predictions is not None
                else None
            ),
            avatar_color=data.get("avatarColor"),
        )
