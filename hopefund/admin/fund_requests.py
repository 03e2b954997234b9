# hopefund/admin/fund_requests.py
"""Fundraising request review, approval and publishing."""

from __future__ import annotations

from flask import request
from sqlalchemy import false, func

from hopefund.errors import ValidationError
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.fund_request import ApprovalForm, PublishForm, ReviewForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import FundRaisingRequest
from hopefund.security import current_admin
from hopefund.services import fund_requests as workflow
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import require_permission

from . import bp


def _status_filter(query, raw: str):
    statuses = workflow.parse_status_filter(raw)
    if not statuses:
        return query.filter(false())
    return query.filter(FundRaisingRequest.status.in_(statuses))


@bp.get("/fundraising-requests")
@require_permission("fundraising_view")
def list_fund_requests():
    params = ListParams.from_request()
    query = FundRaisingRequest.query
    category_id = request.args.get("category_id", type=int)
    if category_id:
        query = query.filter(FundRaisingRequest.category_id == category_id)
    rows, meta = apply_listing(
        query,
        FundRaisingRequest,
        params,
        search=("title", "name", "email", "fundraising_for"),
        sortable={
            "created_at": FundRaisingRequest.created_at,
            "title": FundRaisingRequest.title,
            "status": FundRaisingRequest.status,
            "target_amount": FundRaisingRequest.target_amount_cents,
        },
        status_filter=_status_filter,
    )
    items = [workflow.request_dict(r) for r in rows]
    counts = dict(
        db.session.query(FundRaisingRequest.status, func.count(FundRaisingRequest.id))
        .group_by(FundRaisingRequest.status)
        .all()
    )
    extra = {"status_counts": counts}
    group_key = request.args.get("group_by")
    if group_key:
        if group_key not in workflow.GROUP_KEYS:
            raise ValidationError(["group_by must be status or category"], fields={"group_by": ["Unknown grouping"]})
        extra["groups"] = workflow.group_requests(items, group_key)
    return json_list(items, meta, **extra)


@bp.get("/fundraising-requests/<uuid>")
@require_permission("fundraising_view")
def fund_request_details(uuid: str):
    req = workflow.get_request(uuid)
    return json_ok(workflow.request_dict(req, detailed=True))


@bp.post("/fundraising-requests/<uuid>/review")
@require_permission("fundraising_review")
def review_fund_request(uuid: str):
    req = workflow.get_request(uuid)
    form = validate_payload(ReviewForm, request_payload())
    review = workflow.review_request(req, current_admin(), form)
    return json_ok(
        {"request": workflow.request_dict(req), "review": review.as_dict()},
        message="Review submitted successfully",
    )


@bp.post("/fundraising-requests/<uuid>/approval")
@require_permission("fundraising_approve")
def approve_fund_request(uuid: str):
    req = workflow.get_request(uuid)
    form = validate_payload(ApprovalForm, request_payload())
    result = workflow.submit_approval(req, current_admin(), form)
    return json_ok(result, message="Decision recorded")


@bp.patch("/fundraising-requests/<uuid>/publish")
@require_permission("fundraising_publish")
def publish_fund_request(uuid: str):
    req = workflow.get_request(uuid)
    form = validate_payload(PublishForm, request_payload())
    workflow.publish_request(req, form.event_id.data)
    return json_ok(workflow.request_dict(req), message="Fundraising request published")
