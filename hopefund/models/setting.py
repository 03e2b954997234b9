from __future__ import annotations

from typing import Any, Dict

from hopefund.extensions import db

from .mixins import TimestampMixin, iso

SETTING_TYPES = ("general", "contact", "social", "accreditation", "appearance")
CONTACT_KINDS = ("contact", "inquiry")
CONTACT_STATUSES = ("new", "handled")


class Setting(db.Model, TimestampMixin):
    """Key/value site setting, grouped by `type` for the settings screens."""

    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    value = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(40), default="general", nullable=False, index=True)

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "key": self.key, "value": self.value, "type": self.type}


class ContactMessage(db.Model, TimestampMixin):
    """Contact-us form submissions and customer inquiries."""

    __tablename__ = "contact_messages"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), default="contact", nullable=False, index=True)
    name = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), default="new", nullable=False, index=True)
    admin_note = db.Column(db.Text, nullable=True)
    handled_at = db.Column(db.DateTime, nullable=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "admin_note": self.admin_note,
            "handled_at": iso(self.handled_at),
            "created_at": iso(self.created_at),
        }
