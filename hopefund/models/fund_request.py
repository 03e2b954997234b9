"""
Fundraising requests submitted by the public, reviewed and approved by admins,
and finally published as an Event.
"""

from __future__ import annotations

import uuid as uuid_lib
from typing import Any, Dict

from sqlalchemy import UniqueConstraint

from hopefund.extensions import db
from hopefund.helpers import cents_to_dollars

from .mixins import STATUS_ACTIVE, TimestampMixin, iso

# Lifecycle labels (stored verbatim, shown verbatim in the dashboard)
SUBMITTED = "Submitted"
RESUBMITTED = "Resubmitted"
INFORMATION_NEEDED = "Information Needed"
IN_REVIEW = "In Review"
APPROVED = "Approved"
REJECTED = "Rejected"
PUBLISHED = "Published"
EXPIRED = "Expired"

FUND_REQUEST_STATUSES = (
    SUBMITTED,
    RESUBMITTED,
    INFORMATION_NEEDED,
    IN_REVIEW,
    APPROVED,
    REJECTED,
    PUBLISHED,
    EXPIRED,
)

FUND_TYPES = ("individual", "organization")


class FundraisingCategory(db.Model, TimestampMixin):
    __tablename__ = "fundraising_categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    status = db.Column(db.Integer, default=STATUS_ACTIVE, nullable=False)

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "status": self.status}


class FundRaisingRequest(db.Model, TimestampMixin):
    __tablename__ = "fundraising_requests"

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(
        db.String(36),
        unique=True,
        nullable=False,
        index=True,
        default=lambda: str(uuid_lib.uuid4()),
    )

    # ── Applicant ───────────────────────────────────────────────
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user = db.relationship("User")
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(40), nullable=False)
    country = db.Column(db.String(80), nullable=False)
    address = db.Column(db.String(500), nullable=False)

    # ── Request ─────────────────────────────────────────────────
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("fundraising_categories.id"), nullable=True)
    category = db.relationship("FundraisingCategory", lazy="joined")
    fund_type = db.Column(db.String(20), nullable=False, doc="individual | organization")
    fundraising_for = db.Column(
        db.String(255),
        nullable=False,
        doc="Person name (individual) or organization name",
    )
    currency = db.Column(db.String(3), default="usd", nullable=False)
    target_amount_cents = db.Column(db.Integer, nullable=False)
    shortage_amount_cents = db.Column(db.Integer, nullable=False)
    document_path = db.Column(db.String(500), nullable=True)

    reference_name = db.Column(db.String(255), nullable=True)
    reference_phone = db.Column(db.String(40), nullable=True)
    reference_email = db.Column(db.String(255), nullable=True)

    # ── Workflow ────────────────────────────────────────────────
    status = db.Column(db.String(40), default=SUBMITTED, nullable=False, index=True)
    info_deadline = db.Column(db.Date, nullable=True, doc="Set when more information is requested")
    event_id = db.Column(db.Integer, db.ForeignKey("events.id", ondelete="SET NULL"), nullable=True)
    event = db.relationship("Event")
    published_at = db.Column(db.DateTime, nullable=True)

    reviews = db.relationship(
        "FundRequestReview",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="FundRequestReview.id",
    )
    approvals = db.relationship(
        "FundRequestApproval",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="FundRequestApproval.id",
    )

    def as_dict(self, detailed: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "uuid": self.uuid,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "country": self.country,
            "title": self.title,
            "category": self.category.name if self.category else None,
            "category_id": self.category_id,
            "fund_type": self.fund_type,
            "fundraising_for": self.fundraising_for,
            "currency": self.currency,
            "target_amount": cents_to_dollars(self.target_amount_cents),
            "shortage_amount": cents_to_dollars(self.shortage_amount_cents),
            "status": self.status,
            "info_deadline": self.info_deadline.isoformat() if self.info_deadline else None,
            "event_id": self.event_id,
            "published_at": iso(self.published_at),
            "created_at": iso(self.created_at),
        }
        if detailed:
            data.update(
                {
                    "address": self.address,
                    "description": self.description,
                    "document": self.document_path,
                    "reference": {
                        "name": self.reference_name,
                        "phone": self.reference_phone,
                        "email": self.reference_email,
                    },
                    "reviews": [r.as_dict() for r in self.reviews],
                    "approvals": [a.as_dict() for a in self.approvals],
                }
            )
        return data


class FundRequestReview(db.Model, TimestampMixin):
    __tablename__ = "fundraising_request_reviews"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("fundraising_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    request = db.relationship("FundRaisingRequest", back_populates="reviews")
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    admin = db.relationship("Admin", lazy="joined")
    status = db.Column(db.String(40), nullable=False)
    comments = db.Column(db.Text, nullable=False)
    deadline = db.Column(db.Date, nullable=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "comments": self.comments,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "admin": self.admin.name if self.admin else None,
            "created_at": iso(self.created_at),
        }


class FundRequestApproval(db.Model, TimestampMixin):
    """One vote per admin per request."""

    __tablename__ = "fundraising_request_approvals"
    __table_args__ = (
        UniqueConstraint("request_id", "admin_id", name="uq_fund_request_vote"),
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("fundraising_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    request = db.relationship("FundRaisingRequest", back_populates="approvals")
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id", ondelete="CASCADE"), nullable=False)
    admin = db.relationship("Admin", lazy="joined")
    action = db.Column(db.String(20), nullable=False, doc="accepted | rejected")
    comments = db.Column(db.Text, nullable=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "comments": self.comments,
            "admin_id": self.admin_id,
            "admin": self.admin.name if self.admin else None,
            "created_at": iso(self.created_at),
        }
