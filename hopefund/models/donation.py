"""
Donation + DonationItem.

One Donation per checkout (one Stripe PaymentIntent); one DonationItem per
cart line. All money in cents.
"""

from __future__ import annotations

import uuid as uuid_lib
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import CheckConstraint, Index, event
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import set_committed_value

from hopefund.extensions import db
from hopefund.helpers import cents_to_dollars

from .mixins import TimestampMixin, iso

DONATION_STATUSES = ("pending", "succeeded", "failed", "canceled")


class Donation(db.Model, TimestampMixin):
    __tablename__ = "donations"
    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_donations_amount_nonneg"),
        CheckConstraint("tip_cents >= 0", name="ck_donations_tip_nonneg"),
        Index("ix_donations_status_created", "status", "created_at"),
    )

    # ---- Identifiers ----
    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str] = mapped_column(
        db.String(36),
        unique=True,
        nullable=False,
        default=lambda: str(uuid_lib.uuid4()),
    )
    invoice_number: Mapped[Optional[str]] = mapped_column(
        db.String(40),
        unique=True,
        nullable=True,
        doc="Human-facing receipt number, assigned after insert (HF-000123).",
    )

    # ---- Donor ----
    user_id: Mapped[Optional[int]] = mapped_column(
        db.ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    user: Mapped[Optional["User"]] = relationship("User", back_populates="donations")
    donor_name: Mapped[str] = mapped_column(db.String(160), nullable=False)
    donor_email: Mapped[str] = mapped_column(db.String(255), nullable=False, index=True)
    donor_phone: Mapped[Optional[str]] = mapped_column(db.String(40), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(db.Boolean, default=False, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(db.String(500), nullable=True)

    # ---- Financials (cents) ----
    currency: Mapped[str] = mapped_column(db.String(3), nullable=False, default="usd")
    amount_cents: Mapped[int] = mapped_column(
        db.Integer,
        default=0,
        nullable=False,
        doc="Sum of the donation items.",
    )
    tip_cents: Mapped[int] = mapped_column(
        db.Integer,
        default=0,
        nullable=False,
        doc="Optional platform contribution added at checkout.",
    )

    # ---- Payment tracking (Stripe) ----
    provider: Mapped[str] = mapped_column(db.String(20), nullable=False, default="stripe")
    provider_intent_id: Mapped[Optional[str]] = mapped_column(
        db.String(120),
        nullable=True,
        unique=True,
        index=True,
        doc="Stripe PaymentIntent ID (pi_...).",
    )
    provider_status: Mapped[Optional[str]] = mapped_column(db.String(60), nullable=True)
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="pending", index=True)
    failure_code: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)
    failure_message: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        db.DateTime,
        nullable=True,
        doc="When the webhook marked the donation as paid.",
    )

    items: Mapped[List["DonationItem"]] = relationship(
        "DonationItem",
        back_populates="donation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # ==========================================================
    # Computed Properties
    # ==========================================================
    @property
    def total_cents(self) -> int:
        return (self.amount_cents or 0) + (self.tip_cents or 0)

    @property
    def total_amount(self) -> float:
        return cents_to_dollars(self.total_cents)

    @property
    def is_paid(self) -> bool:
        return self.status == "succeeded"

    @property
    def display_name(self) -> str:
        if self.is_anonymous:
            return "Anonymous"
        parts = (self.donor_name or "").split()
        if not parts:
            return "Anonymous"
        return f"{parts[0]} {parts[1][0]}." if len(parts) > 1 and parts[1] else parts[0]

    def as_dict(self, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "uuid": self.uuid,
            "invoice_number": self.invoice_number,
            "donor_name": self.donor_name,
            "donor_email": self.donor_email,
            "display_name": self.display_name,
            "currency": self.currency,
            "amount": cents_to_dollars(self.amount_cents),
            "tip": cents_to_dollars(self.tip_cents),
            "total_amount": self.total_amount,
            "status": self.status,
            "payment_intent_id": self.provider_intent_id,
            "failure_message": self.failure_message,
            "paid_at": iso(self.paid_at),
            "created_at": iso(self.created_at),
        }
        if include_items:
            data["items"] = [i.as_dict() for i in self.items]
        return data

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Donation #{self.id} {self.status} {self.total_cents}c>"


class DonationItem(db.Model):
    __tablename__ = "donation_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_donation_items_qty_pos"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    donation_id: Mapped[int] = mapped_column(
        db.ForeignKey("donations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    donation: Mapped["Donation"] = relationship("Donation", back_populates="items")
    event_id: Mapped[Optional[int]] = mapped_column(
        db.ForeignKey("events.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    event: Mapped[Optional["Event"]] = relationship("Event", back_populates="donation_items")
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(db.Integer, default=1, nullable=False)
    unit_amount_cents: Mapped[int] = mapped_column(db.Integer, default=0, nullable=False)

    @property
    def line_total_cents(self) -> int:
        return (self.unit_amount_cents or 0) * (self.quantity or 0)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "quantity": self.quantity,
            "price": cents_to_dollars(self.unit_amount_cents),
            "line_total": cents_to_dollars(self.line_total_cents),
        }


@event.listens_for(Donation, "after_insert")
def _assign_invoice_number(mapper, connection, target: Donation) -> None:
    number = f"HF-{target.id:06d}"
    connection.execute(
        Donation.__table__.update()
        .where(Donation.__table__.c.id == target.id)
        .values(invoice_number=number)
    )
    set_committed_value(target, "invoice_number", number)
