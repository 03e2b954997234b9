# hopefund/admin/users.py
"""Donor accounts as seen by admins."""

from __future__ import annotations

import logging

from flask import request

from hopefund.errors import NotFound
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.content import StatusForm
from hopefund.forms.org import AdminPasswordResetForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import Donation, User
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import require_permission
from hopefund.services.stats import donor_summary

from . import bp

log = logging.getLogger(__name__)


def _user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None or user.deleted:
        raise NotFound("User not found")
    return user


@bp.get("/users")
@require_permission("user_view")
def list_users():
    params = ListParams.from_request()
    query = User.active()
    country = request.args.get("country")
    if country:
        query = query.filter(User.country == country)
    rows, meta = apply_listing(
        query,
        User,
        params,
        search=("name", "email", "phone"),
        sortable={"name": User.name, "email": User.email, "created_at": User.created_at},
    )
    return json_list([u.as_dict() for u in rows], meta)


@bp.get("/users/details/<int:user_id>")
@require_permission("user_details")
def user_details(user_id: int):
    user = _user_or_404(user_id)
    donations = user.donations.order_by(Donation.created_at.desc()).limit(50).all()
    data = user.as_dict()
    data["summary"] = donor_summary(user)
    data["donations"] = [d.as_dict(include_items=True) for d in donations]
    return json_ok(data)


@bp.patch("/users/status/<int:user_id>")
@require_permission("user_details")
def user_status(user_id: int):
    user = _user_or_404(user_id)
    form = validate_payload(StatusForm, request_payload())
    user.status = form.status.data
    db.session.commit()
    log.info("User %s status set to %s", user.id, user.status)
    return json_ok(user.as_dict(), message="User enabled" if user.status else "User disabled")


@bp.patch("/users/reset-password")
@require_permission("user_details")
def reset_user_password():
    form = validate_payload(AdminPasswordResetForm, request_payload())
    user = _user_or_404(form.user_id.data)
    user.set_password(form.password.data)
    db.session.commit()
    log.info("Password of user %s reset by an admin", user.id)
    return json_ok(None, message="Password reset successfully")
