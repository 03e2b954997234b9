# hopefund/models/mixins.py
"""Shared SQLAlchemy mixins for timestamps, soft deletes and status flags."""

from datetime import datetime, timezone

from sqlalchemy import event

from hopefund.extensions import db

STATUS_INACTIVE = 0
STATUS_ACTIVE = 1


def utcnow() -> datetime:
    """Naive UTC timestamp (the columns below store UTC without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(dt) -> "str | None":
    return dt.isoformat() if dt else None


class TimestampMixin:
    """Adds created_at and updated_at columns with auto-refresh behavior."""

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(
        db.DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    @staticmethod
    def _set_updated_at(mapper, connection, target):
        target.updated_at = utcnow()

    @classmethod
    def __declare_last__(cls):
        event.listen(cls, "before_update", cls._set_updated_at)


class SoftDeleteMixin:
    """Adds soft-delete support with deleted flag and deleted_at timestamp."""

    deleted = db.Column(db.Boolean, default=False, nullable=False, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def soft_delete(self, commit: bool = True) -> None:
        """Mark the record as deleted without removing it from DB."""
        self.deleted = True
        self.deleted_at = utcnow()
        if commit:
            db.session.commit()

    def restore(self, commit: bool = True) -> None:
        self.deleted = False
        self.deleted_at = None
        if commit:
            db.session.commit()

    @classmethod
    def active(cls):
        """Return only non-deleted records."""
        return cls.query.filter_by(deleted=False)


class StatusMixin:
    """0 (inactive) / 1 (active) publication flag used by admin-managed content."""

    status = db.Column(db.Integer, default=STATUS_ACTIVE, nullable=False, index=True)

    @property
    def is_enabled(self) -> bool:
        return self.status == STATUS_ACTIVE

    @classmethod
    def published(cls):
        q = cls.query.filter(cls.status == STATUS_ACTIVE)
        if hasattr(cls, "deleted"):
            q = q.filter(cls.deleted.is_(False))
        return q
