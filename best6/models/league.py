from datetime import datetime, timezone

from best6 import db


class LeagueRow(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)

    # Code players share to join
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    members = db.relationship(
        "LeagueMemberRow", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<LeagueRow {self.code} {self.name!r}>"

    def get_member_count(self):
        """Get count of members"""
        return self.members.count()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "members": self.get_member_count(),
        }


class LeagueMemberRow(db.Model):
    __tablename__ = "league_members"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    user_id = db.Column(db.String(36), nullable=False)
    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("league_id", "user_id", name="unique_league_user"),
        db.Index("idx_league_member_user", "user_id"),
    )

    def __repr__(self):
        return f"<LeagueMemberRow user_id={self.user_id} league_id={self.league_id}>"

    def to_dict(self):
        """Membership joined with its league, as the client reads it"""
        return {
            "league_id": self.league_id,
            "name": self.league.name if self.league else None,
            "code": self.league.code if self.league else None,
            "members": self.league.get_member_count() if self.league else 0,
        }
