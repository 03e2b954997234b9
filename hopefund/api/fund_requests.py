# hopefund/api/fund_requests.py
"""Fundraising request submission and the requester's own view of it."""

from __future__ import annotations

from flask import request
from sqlalchemy import or_

from hopefund.errors import NotFound
from hopefund.forms import validate_payload
from hopefund.forms.fund_request import FundRequestForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import FundRaisingRequest, User
from hopefund.security import current_donor, user_required
from hopefund.services import fund_requests as workflow
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.uploads import save_upload

from . import bp


def _document():
    storage = request.files.get("document")
    if storage is None or not storage.filename:
        return None
    return save_upload(storage, "document")


def _owned_by(donor: User):
    return or_(FundRaisingRequest.user_id == donor.id, FundRaisingRequest.email == donor.email)


def _own_request(uuid: str) -> FundRaisingRequest:
    req = FundRaisingRequest.query.filter(FundRaisingRequest.uuid == uuid, _owned_by(current_donor())).first()
    if req is None:
        raise NotFound("Fundraising request not found")
    return req


@bp.get("/fundraising-requests/categories")
def fund_request_categories():
    return json_ok([c.as_dict() for c in workflow.active_categories()])


@bp.post("/fundraising-requests")
def submit_fund_request():
    form = validate_payload(FundRequestForm, request_payload())
    donor = current_donor()
    req = workflow.submit_request(form, _document(), user_id=donor.id if donor else None)
    return json_ok(
        workflow.request_dict(req),
        status=201,
        message="Your fundraising request has been submitted for review.",
    )


@bp.get("/fundraising-requests/mine")
@user_required
def my_fund_requests():
    params = ListParams.from_request()
    rows, meta = apply_listing(
        FundRaisingRequest.query.filter(_owned_by(current_donor())),
        FundRaisingRequest,
        params,
        search=("title",),
        sortable={"created_at": FundRaisingRequest.created_at, "status": FundRaisingRequest.status},
        status_filter=lambda q, raw: q.filter(FundRaisingRequest.status.in_(workflow.parse_status_filter(raw))),
    )
    return json_list([workflow.request_dict(r) for r in rows], meta)


@bp.get("/fundraising-requests/<uuid>")
@user_required
def my_fund_request(uuid: str):
    return json_ok(workflow.request_dict(_own_request(uuid), detailed=True))


@bp.post("/fundraising-requests/<uuid>/resubmit")
@user_required
def resubmit_fund_request(uuid: str):
    req = _own_request(uuid)
    form = validate_payload(FundRequestForm, request_payload())
    workflow.resubmit_request(req, form, _document())
    return json_ok(workflow.request_dict(req), message="Your fundraising request has been resubmitted.")
