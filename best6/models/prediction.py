from best6 import db


class PredictionRow(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False)
    match_id = db.Column(db.Integer, nullable=False)
    home = db.Column(db.Integer, nullable=False, default=0)
    away = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_prediction_user", "user_id"),
    )

    def __repr__(self):
        return f"<PredictionRow user_id={self.user_id} match_id={self.match_id} {self.home}-{self.away}>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "match_id": self.match_id,
            "home": self.home,
            "away": self.away,
        }
