from datetime import datetime, timezone

from best6 import db


class LeaderboardRow(db.Model):
    __tablename__ = "leaderboard"

    user_id = db.Column(db.String(36), primary_key=True)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    weekly_points = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.Index("idx_leaderboard_total", "total_points"),)

    def __repr__(self):
        return f"<LeaderboardRow {self.user_id} total={self.total_points}>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "total_points": self.total_points,
            "weekly_points": self.weekly_points,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
