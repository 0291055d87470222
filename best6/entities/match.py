from dataclasses import dataclass, field
from typing import Optional

from best6.utils.timezone_utils import parse_iso

MATCH_STATUSES = ("SCHEDULED", "TIMED", "IN_PLAY", "PAUSED", "FINISHED")


@dataclass
class Score:
    """Full-time scoreline as reported by the fixture source"""

    home: Optional[int] = None
    away: Optional[int] = None

    @property
    def is_known(self):
        return self.home is not None and self.away is not None

    def to_dict(self):
        return {"home": self.home, "away": self.away}

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        if isinstance(data, cls):
            return data
        home = data.get("home")
        away = data.get("away")
        return cls(
            home=int(home) if home is not None else None,
            away=int(away) if away is not None else None,
        )


@dataclass
class Team:
    id: str
    name: str
    short_name: Optional[str] = None
    crest: Optional[str] = None

    def to_dict(self):
        data = {"id": self.id, "name": self.name}
        if self.short_name is not None:
            data["shortName"] = self.short_name
        if self.crest is not None:
            data["crest"] = self.crest
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            short_name=data.get("shortName"),
            crest=data.get("crest"),
        )


@dataclass
class Match:
    id: int
    utc_date: str
    status: str
    home_team: Team
    away_team: Team
    matchday: Optional[int] = None
    full_time: Optional[Score] = field(default=None)

    def __repr__(self):
        return f"<Match {self.id} {self.home_team.name} vs {self.away_team.name}>"

    @property
    def kickoff(self):
        return parse_iso(self.utc_date)

    @property
    def result(self):
        """Final scoreline, or None while either side is unknown"""
        if self.full_time is not None and self.full_time.is_known:
            return self.full_time
        return None

    @property
    def is_live(self):
        return self.status in ("IN_PLAY", "PAUSED")

    @property
    def is_finished(self):
        return self.status == "FINISHED"

    def has_started(self, now):
        """Check if the match has kicked off"""
        kickoff = self.kickoff
        return kickoff is not None and now >= kickoff

    def to_dict(self):
        data = {
            "id": self.id,
            "utcDate": self.utc_date,
            "status": self.status,
            "homeTeam": self.home_team.to_dict(),
            "awayTeam": self.away_team.to_dict(),
        }
        if self.matchday is not None:
            data["matchday"] = self.matchday
        if self.full_time is not None:
            data["score"] = {"fullTime": self.full_time.to_dict()}
        return data

    @classmethod
    def from_dict(cls, data):
        """Rebuild a match from its stored (already normalized) form"""
        full_time = (data.get("score") or {}).get("fullTime")
        return cls(
            id=int(data["id"]),
            utc_date=data["utcDate"],
            status=data.get("status", "SCHEDULED"),
            home_team=Team.from_dict(data.get("homeTeam") or {}),
            away_team=Team.from_dict(data.get("awayTeam") or {}),
            matchday=data.get("matchday"),
            full_time=Score.from_dict(full_time),
        )
