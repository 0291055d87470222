from dataclasses import dataclass, field
from typing import List, Optional

from best6.utils.timezone_utils import parse_iso

from .match import Score
from .prediction import Prediction


@dataclass(frozen=True)
class RoundPick:
    """One scored prediction inside a finalized round"""

    match_id: int
    prediction: Prediction
    result: Optional[Score]
    points: int

    def to_dict(self):
        return {
            "matchId": self.match_id,
            "prediction": self.prediction.to_dict(),
            "result": self.result.to_dict() if self.result else None,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            match_id=int(data["matchId"]),
            prediction=Prediction.from_dict(data.get("prediction") or {}),
            result=Score.from_dict(data.get("result")),
            points=int(data.get("points", 0)),
        )


@dataclass
class RoundResult:
    id: str
    created_at: str
    matchday: int
    total_points: int
    picks: List[RoundPick] = field(default_factory=list)
    first_goal_minute: Optional[int] = None

    def __repr__(self):
        return f"<RoundResult {self.id} matchday={self.matchday} points={self.total_points}>"

    @property
    def created(self):
        return parse_iso(self.created_at)

    def to_dict(self):
        data = {
            "id": self.id,
            "createdAt": self.created_at,
            "matchday": self.matchday,
            "picks": [pick.to_dict() for pick in self.picks],
            "totalPoints": self.total_points,
        }
        if self.first_goal_minute is not None:
            data["firstGoalMinute"] = self.first_goal_minute
        return data

    @classmethod
    def from_dict(cls, data):
        minute = data.get("firstGoalMinute")
        return cls(
            id=str(data["id"]),
            created_at=data["createdAt"],
            matchday=int(data.get("matchday") or 0),
            total_points=int(data.get("totalPoints") or 0),
            picks=[RoundPick.from_dict(pick) for pick in data.get("picks") or []],
            first_goal_minute=int(minute) if minute is not None else None,
        )
