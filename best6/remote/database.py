import logging
import uuid
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from best6 import db
from best6.errors import AuthenticationError, BackendError, ValidationError
from best6.models import (
    LeaderboardRow,
    LeagueMemberRow,
    LeagueRow,
    PredictionRow,
    Profile,
    RoundRow,
)

from .base import RemoteBackend

logger = logging.getLogger(__name__)


class DatabaseBackend(RemoteBackend):
    """
    Remote collections stored through Flask-SQLAlchemy.

    Every replace runs in one transaction: rows in the new set are upserted
    and rows absent from it are deleted, so a failed push leaves the previous
    collection intact.
    """

    def __init__(self, app=None):
        self.app = app

    @contextmanager
    def _transaction(self, description):
        context = self.app.app_context() if self.app is not None else nullcontext()
        with context:
            try:
                yield db.session
                db.session.commit()
            except IntegrityError as e:
                db.session.rollback()
                logger.error(f"{description} failed - integrity error: {e}")
                raise BackendError(f"{description} failed: conflicting data") from e
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"{description} failed - SQL error: {e}")
                raise BackendError(f"{description} failed") from e

    # Profiles

    def get_profile(self, user_id):
        with self._transaction("Profile read"):
            profile = db.session.get(Profile, user_id)
            return profile.to_dict() if profile else None

    def upsert_profile(self, user_id, name):
        with self._transaction("Profile upsert"):
            profile = db.session.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id)
                db.session.add(profile)
            profile.name = name or ""

    # Predictions

    def fetch_predictions(self, user_id):
        with self._transaction("Predictions read"):
            rows = (
                PredictionRow.query.filter_by(user_id=user_id)
                .order_by(PredictionRow.match_id)
                .all()
            )
            return [row.to_dict() for row in rows]

    def replace_predictions(self, user_id, rows):
        wanted = {int(row["match_id"]): row for row in rows}
        with self._transaction("Predictions replace"):
            existing = {
                row.match_id: row
                for row in PredictionRow.query.filter_by(user_id=user_id).all()
            }
            for match_id, row in existing.items():
                if match_id not in wanted:
                    db.session.delete(row)
            for match_id, data in wanted.items():
                row = existing.get(match_id)
                if row is None:
                    row = PredictionRow(user_id=user_id, match_id=match_id)
                    db.session.add(row)
                row.home = data.get("home") or 0
                row.away = data.get("away") or 0

    # Rounds

    def fetch_rounds(self, user_id):
        with self._transaction("Rounds read"):
            rows = (
                RoundRow.query.filter_by(user_id=user_id)
                .order_by(RoundRow.created_at.desc())
                .all()
            )
            return [row.to_dict() for row in rows]

    def replace_rounds(self, user_id, rows):
        wanted = {str(row["id"]): row for row in rows}
        with self._transaction("Rounds replace"):
            existing = {row.id: row for row in RoundRow.query.filter_by(user_id=user_id).all()}
            for round_id, row in existing.items():
                if round_id not in wanted:
                    db.session.delete(row)
            for round_id, data in wanted.items():
                row = existing.get(round_id)
                if row is None:
                    other = db.session.get(RoundRow, round_id)
                    if other is not None:
                        logger.warning(
                            f"Round id {round_id} belongs to another user; skipping"
                        )
                        continue
                    row = RoundRow(id=round_id, user_id=user_id)
                    db.session.add(row)
                row.matchday = data["matchday"]
                row.total_points = data.get("total_points") or 0
                row.first_goal_minute = data.get("first_goal_minute")
                row.created_at = data["created_at"]

    # Leagues

    def fetch_memberships(self, user_id):
        with self._transaction("Memberships read"):
            memberships = LeagueMemberRow.query.filter_by(user_id=user_id).all()
            return [membership.to_dict() for membership in memberships]

    def replace_memberships(self, user_id, leagues):
        with self._transaction("Memberships replace"):
            league_ids = []
            for data in leagues:
                league = LeagueRow.query.filter_by(code=data["code"]).first()
                if league is None:
                    league = LeagueRow(name=data.get("name") or "League", code=data["code"])
                    db.session.add(league)
                    db.session.flush()
                    logger.info(f"Created remote league {league.code}")
                league_ids.append(league.id)

            existing = {
                membership.league_id: membership
                for membership in LeagueMemberRow.query.filter_by(user_id=user_id).all()
            }
            for league_id, membership in existing.items():
                if league_id not in league_ids:
                    db.session.delete(membership)
            for league_id in dict.fromkeys(league_ids):
                if league_id not in existing:
                    db.session.add(LeagueMemberRow(league_id=league_id, user_id=user_id))

    # Leaderboard

    def fetch_leaderboard(self, user_id):
        with self._transaction("Leaderboard read"):
            row = db.session.get(LeaderboardRow, user_id)
            return row.to_dict() if row else None

    def upsert_leaderboard(self, user_id, total_points, weekly_points):
        with self._transaction("Leaderboard upsert"):
            row = db.session.get(LeaderboardRow, user_id)
            if row is None:
                row = LeaderboardRow(user_id=user_id)
                db.session.add(row)
            row.total_points = total_points
            row.weekly_points = weekly_points
            row.updated_at = datetime.now(timezone.utc)

    def list_leaderboard(self, limit=50):
        with self._transaction("Leaderboard list"):
            rows = (
                db.session.query(LeaderboardRow, Profile.name)
                .outerjoin(Profile, Profile.id == LeaderboardRow.user_id)
                .order_by(
                    LeaderboardRow.total_points.desc(),
                    LeaderboardRow.weekly_points.desc(),
                )
                .limit(limit)
                .all()
            )
            return [
                {
                    "rank": rank,
                    "name": name or "Player",
                    "total_points": row.total_points,
                    "weekly_points": row.weekly_points,
                }
                for rank, (row, name) in enumerate(rows, start=1)
            ]

    # Accounts

    def register(self, email, password, name=""):
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")

        with self._transaction("Registration"):
            if Profile.query.filter_by(email=email).first():
                raise ValidationError("Email is already registered")
            profile = Profile(id=str(uuid.uuid4()), name=name or "", email=email)
            profile.set_password(password)
            db.session.add(profile)
            user_id = profile.id

        logger.info(f"Registered account {user_id}")
        return user_id

    def authenticate(self, email, password):
        email = (email or "").strip().lower()
        with self._transaction("Login"):
            profile = Profile.query.filter_by(email=email).first()
            if profile is None or not profile.check_password(password or ""):
                raise AuthenticationError()
            return profile.id

    # Write tokens

    def claim_token(self, user_id):
        """First write token for a device identity; later claims are refused"""
        with self._transaction("Token claim"):
            profile = db.session.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id)
                db.session.add(profile)
            elif profile.sync_token or profile.password_hash:
                raise AuthenticationError("A write token was already issued for this player")
            token = profile.issue_sync_token()

        logger.info(f"Issued write token for {user_id}")
        return token

    def issue_token(self, user_id):
        """Rotate the write token of an authenticated account"""
        with self._transaction("Token issue"):
            profile = db.session.get(Profile, user_id)
            if profile is None:
                raise AuthenticationError()
            return profile.issue_sync_token()

    def verify_token(self, user_id, token):
        with self._transaction("Token check"):
            profile = db.session.get(Profile, user_id)
            return profile is not None and profile.check_sync_token(token)
