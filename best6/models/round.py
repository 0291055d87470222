from best6 import db


class RoundRow(db.Model):
    """Aggregate of a finalized round; per-pick detail stays on the device"""

    __tablename__ = "rounds"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(36), nullable=False)
    matchday = db.Column(db.Integer, nullable=False)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    first_goal_minute = db.Column(db.Integer, nullable=True)
    # ISO-8601 string exactly as produced by the client
    created_at = db.Column(db.String(40), nullable=False)

    __table_args__ = (
        db.Index("idx_round_user", "user_id"),
        db.Index("idx_round_user_matchday", "user_id", "matchday"),
        db.CheckConstraint(
            "first_goal_minute IS NULL OR (first_goal_minute BETWEEN 1 AND 120)",
            name="valid_first_goal_minute",
        ),
    )

    def __repr__(self):
        return f"<RoundRow {self.id} matchday={self.matchday} points={self.total_points}>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "matchday": self.matchday,
            "total_points": self.total_points,
            "first_goal_minute": self.first_goal_minute,
            "created_at": self.created_at,
        }
