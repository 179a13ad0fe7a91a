from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class AppUser(db.Model):
    """
    Service accounts checked by HTTP Basic authentication.

    password_hash is the SHA-256 hex digest of the password.
    username is stored lower-case; lookups are case-insensitive.
    """
    __tablename__ = "app_users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(16), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<AppUser {self.username!r} role={self.role} active={self.active}>"
