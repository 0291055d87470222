import secrets
from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from best6 import db


class Profile(db.Model):
    __tablename__ = "profiles"

    # Client-minted uuid, or the account id for registered players
    id = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(100), nullable=False, default="")

    # Only set for account-backed identities
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=True)

    # Bearer token the API checks before any write to this player's collections
    sync_token = db.Column(db.String(64), unique=True, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Profile {self.id} {self.name!r}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def issue_sync_token(self):
        """Replace the write token and return the new one"""
        self.sync_token = secrets.token_urlsafe(32)
        return self.sync_token

    def check_sync_token(self, token):
        if not self.sync_token or not token:
            return False
        return secrets.compare_digest(self.sync_token, token)

    def to_dict(self):
        """Convert profile to dictionary for API responses"""
        return {"id": self.id, "name": self.name}
