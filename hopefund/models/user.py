"""
User + Admin models: donors on the storefront and staff in the dashboard.

Both are Flask-Login principals; `get_id()` is prefixed with the principal kind
so the two tables never collide.
"""

from __future__ import annotations

import uuid

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from hopefund.extensions import db

from .mixins import STATUS_ACTIVE, SoftDeleteMixin, TimestampMixin, iso


class _PasswordMixin:
    def set_password(self, password: str) -> None:
        """Hash & store the given plaintext password securely."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)


class User(db.Model, UserMixin, _PasswordMixin, TimestampMixin, SoftDeleteMixin):
    """Donor account."""

    __tablename__ = "users"
    kind = "user"

    # ── Identity ────────────────────────────────────────────────
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(
        db.String(36),
        unique=True,
        nullable=False,
        default=lambda: str(uuid.uuid4()),
        index=True,
        doc="Publicly-safe unique identifier",
    )
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(40), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    avatar = db.Column(db.String(255), nullable=True)

    # ── Auth ────────────────────────────────────────────────────
    password_hash = db.Column(db.String(255), nullable=False)
    status = db.Column(
        db.Integer,
        default=STATUS_ACTIVE,
        nullable=False,
        doc="1 = enabled, 0 = disabled by an admin",
    )
    email_verified_at = db.Column(db.DateTime, nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    donations = db.relationship("Donation", back_populates="user", lazy="dynamic")

    @property
    def is_active(self) -> bool:  # type: ignore[override]
        return self.status == STATUS_ACTIVE and not self.deleted

    def get_id(self) -> str:  # type: ignore[override]
        return f"user:{self.id}"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "country": self.country,
            "address": self.address,
            "avatar": self.avatar,
            "status": self.status,
            "email_verified": bool(self.email_verified_at),
            "last_login_at": iso(self.last_login_at),
            "created_at": iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User {self.email}>"


class Admin(db.Model, UserMixin, _PasswordMixin, TimestampMixin):
    """Dashboard staff account; capabilities come from its role."""

    __tablename__ = "admins"
    kind = "admin"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    avatar = db.Column(db.String(255), nullable=True)
    status = db.Column(db.Integer, default=STATUS_ACTIVE, nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)

    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    role = db.relationship("Role", back_populates="admins", lazy="joined")

    @property
    def is_active(self) -> bool:  # type: ignore[override]
        return self.status == STATUS_ACTIVE

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""

    def get_id(self) -> str:  # type: ignore[override]
        return f"admin:{self.id}"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "avatar": self.avatar,
            "status": self.status,
            "role_id": self.role_id,
            "role": {"id": self.role.id, "name": self.role.name, "status": self.role.status}
            if self.role
            else None,
            "last_login_at": iso(self.last_login_at),
            "created_at": iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Admin {self.email} ({self.role_name or 'no role'})>"
