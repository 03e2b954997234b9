from __future__ import annotations

# -----------------------------------------------------------------------------
# Event: a fundraising cause donors add to their cart.
# Money columns are integer cents; `raised_cents` is bumped by the Stripe
# webhook when a donation succeeds.
# -----------------------------------------------------------------------------
from datetime import date
from typing import Any, Dict

from sqlalchemy import CheckConstraint

from hopefund.extensions import db
from hopefund.helpers import cents_to_dollars

from .mixins import SoftDeleteMixin, StatusMixin, TimestampMixin, iso


class Event(db.Model, TimestampMixin, SoftDeleteMixin, StatusMixin):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_events_price_nonneg"),
        CheckConstraint("target_amount_cents >= 0", name="ck_events_target_nonneg"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False, index=True)

    price_cents = db.Column(
        db.Integer,
        default=0,
        nullable=False,
        doc="Suggested (or fixed) donation per unit, in cents",
    )
    target_amount_cents = db.Column(db.Integer, default=0, nullable=False)
    raised_cents = db.Column(db.Integer, default=0, nullable=False)

    is_fixed_donation = db.Column(
        db.Boolean,
        default=False,
        nullable=False,
        doc="Donors cannot change the price of a fixed-donation event",
    )
    is_featured = db.Column(db.Boolean, default=False, nullable=False, index=True)
    feature_image = db.Column(db.String(500), nullable=True)

    donation_items = db.relationship("DonationItem", back_populates="event", lazy="dynamic")

    # ── Computed ────────────────────────────────────────────────
    @property
    def price(self) -> float:
        return cents_to_dollars(self.price_cents)

    @property
    def target_amount(self) -> float:
        return cents_to_dollars(self.target_amount_cents)

    @property
    def raised_amount(self) -> float:
        return cents_to_dollars(self.raised_cents)

    @property
    def progress(self) -> float:
        """Percent of target raised, capped at 100."""
        if not self.target_amount_cents:
            return 0.0
        pct = (self.raised_cents or 0) * 100.0 / self.target_amount_cents
        return round(min(pct, 100.0), 1)

    @property
    def is_archived(self) -> bool:
        return bool(self.end_date and self.end_date < date.today())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "price": self.price,
            "target_amount": self.target_amount,
            "raised_amount": self.raised_amount,
            "progress": self.progress,
            "is_fixed_donation": bool(self.is_fixed_donation),
            "is_featured": bool(self.is_featured),
            "is_archived": self.is_archived,
            "feature_image": self.feature_image,
            "status": self.status,
            "created_at": iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Event #{self.id} {self.title!r}>"
