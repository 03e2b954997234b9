# hopefund/services/fund_requests.py
"""
Fundraising request workflow.

    Submitted / Resubmitted --review--> In Review | Information Needed
    Information Needed --resubmit--> Resubmitted
    Information Needed --deadline passes--> Expired
    In Review (and the two submitted states) --approval votes--> Approved | Rejected
    Approved --publish(event)--> Published

Illegal moves raise Conflict; every move is logged.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from hopefund.errors import Conflict, NotFound, ValidationError
from hopefund.extensions import db, emit_socket
from hopefund.helpers import to_cents
from hopefund.services.listing import group_by
from hopefund.models import Admin, Event, FundraisingCategory, FundRaisingRequest, FundRequestApproval, FundRequestReview
from hopefund.models.fund_request import (
    APPROVED,
    EXPIRED,
    FUND_REQUEST_STATUSES,
    IN_REVIEW,
    INFORMATION_NEEDED,
    PUBLISHED,
    REJECTED,
    RESUBMITTED,
    SUBMITTED,
)
from hopefund.models.mixins import STATUS_ACTIVE, utcnow

log = logging.getLogger(__name__)

TRANSITIONS: Dict[str, tuple] = {
    SUBMITTED: (IN_REVIEW, INFORMATION_NEEDED, APPROVED, REJECTED),
    RESUBMITTED: (IN_REVIEW, INFORMATION_NEEDED, APPROVED, REJECTED),
    IN_REVIEW: (IN_REVIEW, INFORMATION_NEEDED, APPROVED, REJECTED),
    INFORMATION_NEEDED: (RESUBMITTED, IN_REVIEW, EXPIRED),
    APPROVED: (PUBLISHED,),
    REJECTED: (),
    PUBLISHED: (),
    EXPIRED: (),
}

REVIEW_STATUS_MAP = {"information_needed": INFORMATION_NEEDED, "in_review": IN_REVIEW}

ATTENTION_STATUSES = (SUBMITTED, RESUBMITTED, INFORMATION_NEEDED)
VOTABLE_STATUSES = (SUBMITTED, RESUBMITTED, IN_REVIEW)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, ())


def transition(req: FundRaisingRequest, target: str) -> None:
    if not can_transition(req.status, target):
        raise Conflict(f"Cannot move a request from '{req.status}' to '{target}'")
    log.info("Fund request %s: %s -> %s", req.uuid, req.status, target)
    req.status = target


def approvers_needed() -> int:
    return max(1, int(current_app.config.get("FUND_REQUEST_APPROVERS", 2)))


# ─────────────────────────────────────────────────────────────
# Helpers over request dicts / models
# ─────────────────────────────────────────────────────────────
def _status_of(req: Any) -> Optional[str]:
    return req.get("status") if isinstance(req, Mapping) else getattr(req, "status", None)


def needs_attention(req: Any) -> bool:
    return _status_of(req) in ATTENTION_STATUSES


def approval_summary(req: FundRaisingRequest) -> Dict[str, int]:
    accepted = sum(1 for a in req.approvals if a.action == "accepted")
    rejected = sum(1 for a in req.approvals if a.action == "rejected")
    return {
        "approved": accepted,
        "rejected": rejected,
        "total_approvers_needed": approvers_needed(),
    }


def approval_progress(summary: Optional[Mapping[str, Any]]) -> int:
    """Percent of required approvals collected (0-100)."""
    if not summary or not summary.get("total_approvers_needed"):
        return 0
    pct = round(int(summary.get("approved") or 0) * 100 / int(summary["total_approvers_needed"]))
    return min(100, int(pct))


def is_fully_approved(summary: Optional[Mapping[str, Any]]) -> bool:
    if not summary or not summary.get("total_approvers_needed"):
        return False
    return int(summary.get("approved") or 0) >= int(summary["total_approvers_needed"])


def can_be_published(req: Any) -> bool:
    return _status_of(req) == APPROVED


def filter_by_status(requests: Iterable[Any], statuses: Optional[Iterable[str]]) -> List[Any]:
    wanted = [s for s in (statuses or []) if s]
    items = list(requests)
    if not wanted:
        return items
    return [r for r in items if _status_of(r) in wanted]


def parse_status_filter(raw: Optional[str]) -> List[str]:
    """`?status=Submitted,In Review` -> known statuses only."""
    if not raw:
        return []
    known = {s.lower(): s for s in FUND_REQUEST_STATUSES}
    out = []
    for part in str(raw).split(","):
        s = known.get(part.strip().lower())
        if s and s not in out:
            out.append(s)
    return out


GROUP_KEYS = ("status", "category")


def group_requests(items: Iterable[Mapping[str, Any]], key: str = "status") -> Dict[Any, List[Mapping[str, Any]]]:
    """Bucket serialized requests by status or category name; unknown keys raise ValueError."""
    if key not in GROUP_KEYS:
        raise ValueError(f"Cannot group fundraising requests by {key!r}")
    return group_by(items, key)


def request_dict(req: FundRaisingRequest, detailed: bool = False) -> Dict[str, Any]:
    data = req.as_dict(detailed=detailed)
    summary = approval_summary(req)
    data["approval_summary"] = summary
    data["approval_progress"] = approval_progress(summary)
    data["needs_attention"] = needs_attention(req)
    return data


# ─────────────────────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────────────────────
def get_request(uuid: str) -> FundRaisingRequest:
    req = FundRaisingRequest.query.filter_by(uuid=str(uuid)).first()
    if req is None:
        raise NotFound("Fundraising request not found")
    return req


def active_categories() -> List[FundraisingCategory]:
    return (
        FundraisingCategory.query.filter_by(status=STATUS_ACTIVE)
        .order_by(FundraisingCategory.name)
        .all()
    )


# ─────────────────────────────────────────────────────────────
# Public side
# ─────────────────────────────────────────────────────────────
def _apply_submission(req: FundRaisingRequest, form, document_path: Optional[str]) -> None:
    category = db.session.get(FundraisingCategory, form.category_id.data)
    if category is None or category.status != STATUS_ACTIVE:
        raise ValidationError(["Category is required"], fields={"category_id": ["Unknown category"]})

    req.name = form.name.data.strip()
    req.email = form.email.data.strip().lower()
    req.phone = form.phone.data.strip()
    req.country = form.country.data.strip()
    req.address = form.address.data.strip()
    req.title = form.title.data.strip()
    req.description = form.description.data.strip()
    req.category_id = category.id
    req.fund_type = form.fund_type.data
    req.fundraising_for = form.fundraising_for.data.strip()
    req.currency = form.currency.data.strip().lower()
    req.target_amount_cents = to_cents(form.target_amount.data)
    req.shortage_amount_cents = to_cents(form.shortage_amount.data)
    req.reference_name = form.reference_name.data or None
    req.reference_phone = form.reference_phone.data or None
    req.reference_email = form.reference_email.data or None
    if document_path:
        req.document_path = document_path


def submit_request(form, document_path: Optional[str], user_id: Optional[int] = None) -> FundRaisingRequest:
    if not document_path:
        raise ValidationError(["Please upload a required document."], fields={"document": ["Required"]})
    req = FundRaisingRequest(user_id=user_id, status=SUBMITTED)
    _apply_submission(req, form, document_path)
    db.session.add(req)
    db.session.commit()
    log.info("Fund request %s submitted by %s", req.uuid, req.email)
    emit_socket("fund_request:submitted", {"uuid": req.uuid, "title": req.title})
    return req


def resubmit_request(req: FundRaisingRequest, form, document_path: Optional[str]) -> FundRaisingRequest:
    if req.status != INFORMATION_NEEDED:
        raise Conflict("Only requests that need more information can be resubmitted")
    if req.info_deadline and req.info_deadline < date.today():
        transition(req, EXPIRED)
        db.session.commit()
        raise Conflict("The deadline for this request has passed")
    _apply_submission(req, form, document_path)
    transition(req, RESUBMITTED)
    req.info_deadline = None
    db.session.commit()
    emit_socket("fund_request:resubmitted", {"uuid": req.uuid, "title": req.title})
    return req


# ─────────────────────────────────────────────────────────────
# Admin side
# ─────────────────────────────────────────────────────────────
def review_request(req: FundRaisingRequest, admin: Admin, form) -> FundRequestReview:
    target = REVIEW_STATUS_MAP[form.status.data]
    transition(req, target)
    deadline = getattr(form.deadline, "parsed", None)
    req.info_deadline = deadline if target == INFORMATION_NEEDED else None
    review = FundRequestReview(
        request=req,
        admin_id=admin.id,
        status=target,
        comments=form.comments.data.strip(),
        deadline=deadline,
    )
    db.session.add(review)
    db.session.commit()
    return review


def submit_approval(req: FundRaisingRequest, admin: Admin, form) -> Dict[str, Any]:
    if req.status not in VOTABLE_STATUSES:
        raise Conflict(f"Requests in '{req.status}' status cannot be voted on")
    if any(a.admin_id == admin.id for a in req.approvals):
        raise Conflict("You have already submitted a decision for this request")

    vote = FundRequestApproval(
        request=req,
        admin_id=admin.id,
        action=form.action.data,
        comments=form.comments.data.strip(),
    )
    db.session.add(vote)

    summary = approval_summary(req)
    if vote.action == "rejected":
        transition(req, REJECTED)
    elif is_fully_approved(summary):
        transition(req, APPROVED)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already submitted a decision for this request")

    if req.status in (APPROVED, REJECTED):
        emit_socket("fund_request:decided", {"uuid": req.uuid, "status": req.status})
    return {"status": req.status, "approval_summary": summary}


def publish_request(req: FundRaisingRequest, event_id: int) -> FundRaisingRequest:
    if not can_be_published(req):
        raise Conflict("Only approved fundraising requests can be published")
    event = db.session.get(Event, int(event_id))
    if event is None or event.deleted:
        raise ValidationError(["Event not found"], fields={"event_id": ["Event not found"]})
    transition(req, PUBLISHED)
    req.event_id = event.id
    req.published_at = utcnow()
    db.session.commit()
    return req


def expire_overdue(today: Optional[date] = None) -> int:
    """Information Needed requests whose deadline has passed become Expired."""
    today = today or date.today()
    overdue = FundRaisingRequest.query.filter(
        FundRaisingRequest.status == INFORMATION_NEEDED,
        FundRaisingRequest.info_deadline.isnot(None),
        FundRaisingRequest.info_deadline < today,
    ).all()
    for req in overdue:
        transition(req, EXPIRED)
    db.session.commit()
    return len(overdue)
