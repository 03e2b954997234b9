from __future__ import annotations

import hashlib
import hmac
from datetime import datetime

from hopefund.extensions import db

from .mixins import TimestampMixin, utcnow

PURPOSE_REGISTER = "register"
PURPOSE_RESET_USER = "reset_user"
PURPOSE_RESET_ADMIN = "reset_admin"

MAX_ATTEMPTS = 5


def hash_code(code: str) -> str:
    return hashlib.sha256(str(code).strip().encode("utf-8")).hexdigest()


class VerificationCode(db.Model, TimestampMixin):
    """
    Six-digit email code used for registration and password resets.

    Lifecycle: issued -> verified (code matched) -> consumed (registration or
    reset completed). Only the hash of the code is stored.
    """

    __tablename__ = "verification_codes"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    purpose = db.Column(db.String(20), nullable=False, index=True)
    code_hash = db.Column(db.String(64), nullable=False)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    verified_at = db.Column(db.DateTime, nullable=True)
    consumed_at = db.Column(db.DateTime, nullable=True)

    def is_expired(self, now: "datetime | None" = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    @property
    def is_usable(self) -> bool:
        return not self.consumed_at and not self.is_expired() and self.attempts < MAX_ATTEMPTS

    def matches(self, code: str) -> bool:
        return hmac.compare_digest(self.code_hash, hash_code(code))
