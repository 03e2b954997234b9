# hopefund/services/stats.py
"""Dashboard numbers and per-donor totals."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

from sqlalchemy import desc, func

from hopefund.extensions import db
from hopefund.helpers import cents_to_dollars
from hopefund.models import Donation, Event, FundRaisingRequest, User
from hopefund.models.mixins import STATUS_ACTIVE

from .fund_requests import ATTENTION_STATUSES


def _paid():
    return Donation.query.filter(Donation.status == "succeeded")


def totals() -> Dict[str, Any]:
    raised_cents = (
        db.session.query(func.coalesce(func.sum(Donation.amount_cents + Donation.tip_cents), 0))
        .filter(Donation.status == "succeeded")
        .scalar()
    )
    return {
        "total_raised": cents_to_dollars(int(raised_cents or 0)),
        "donations": _paid().count(),
        "donors": db.session.query(func.count(func.distinct(Donation.donor_email)))
        .filter(Donation.status == "succeeded")
        .scalar()
        or 0,
        "registered_users": User.query.filter(User.deleted.is_(False)).count(),
        "active_events": Event.query.filter(
            Event.deleted.is_(False),
            Event.status == STATUS_ACTIVE,
            Event.end_date >= date.today(),
        ).count(),
        "pending_fund_requests": FundRaisingRequest.query.filter(
            FundRaisingRequest.status.in_(ATTENTION_STATUSES)
        ).count(),
    }


def recent_donations(limit: int = 10) -> List[Dict[str, Any]]:
    rows = _paid().order_by(desc(Donation.paid_at), desc(Donation.id)).limit(limit).all()
    return [d.as_dict(include_items=False) for d in rows]


def raised_by_event(limit: int = 10) -> List[Dict[str, Any]]:
    rows = (
        Event.query.filter(Event.deleted.is_(False))
        .order_by(desc(Event.raised_cents), Event.id)
        .limit(limit)
        .all()
    )
    return [
        {
            "event_id": e.id,
            "title": e.title,
            "raised_amount": e.raised_amount,
            "target_amount": e.target_amount,
            "progress": e.progress,
        }
        for e in rows
    ]


def donor_summary(user: User) -> Dict[str, Any]:
    paid = user.donations.filter(Donation.status == "succeeded")
    total_cents = sum(d.total_cents for d in paid)
    last = paid.order_by(desc(Donation.paid_at)).first()
    return {
        "donations": paid.count(),
        "total_donated": cents_to_dollars(total_cents),
        "last_donation_at": last.paid_at.isoformat() if last and last.paid_at else None,
    }
