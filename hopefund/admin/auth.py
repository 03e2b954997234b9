# hopefund/admin/auth.py
"""Admin login, profile and password endpoints."""

from __future__ import annotations

import logging

from flask import current_app

from hopefund.errors import NotFound, PermissionDenied
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.auth import ChangePasswordForm, CodeForm, EmailForm, LoginForm, ResetPasswordForm
from hopefund.forms.org import AdminProfileForm
from hopefund.helpers import json_ok, request_payload
from hopefund.models import Admin
from hopefund.models.verification import PURPOSE_RESET_ADMIN
from hopefund.security import current_admin, issue_token
from hopefund.services import auth as auth_service
from hopefund.services.permissions import current_permissions, has_permission

from . import bp

log = logging.getLogger(__name__)


@bp.post("/login")
def login():
    form = validate_payload(LoginForm, request_payload())
    admin = auth_service.authenticate(Admin, form.email.data, form.password.data)
    log.info("Admin %s logged in", admin.id)
    data = issue_token(admin)
    data["admin"] = admin.as_dict()
    data["permissions"] = current_permissions(admin).as_dict()
    return json_ok(data, message="Login successful")


@bp.post("/logout")
def logout():
    # Tokens are stateless; the client drops its copy.
    log.info("Admin %s logged out", current_admin().id)
    return json_ok(None, message="Logged out")


@bp.get("/me")
def me():
    admin = current_admin()
    return json_ok({"admin": admin.as_dict(), "permissions": current_permissions(admin).as_dict()})


def _profile_target(admin_id: int) -> Admin:
    actor = current_admin()
    if admin_id != actor.id and not has_permission("admin_view", actor):
        raise PermissionDenied("admin_view")
    target = db.session.get(Admin, admin_id)
    if target is None:
        raise NotFound("Admin not found")
    return target


@bp.get("/profile/<int:admin_id>")
def profile(admin_id: int):
    return json_ok(_profile_target(admin_id).as_dict())


def _update_profile(admin: Admin):
    form = validate_payload(AdminProfileForm, request_payload())
    admin.name = form.name.data.strip()
    admin.phone = form.phone.data or None
    if form.avatar.data:
        admin.avatar = form.avatar.data
    db.session.commit()
    return json_ok(admin.as_dict(), message="Profile updated successfully")


@bp.put("/profile/me")
def update_own_profile():
    return _update_profile(current_admin())


@bp.put("/profile/<int:admin_id>")
def update_profile(admin_id: int):
    actor = current_admin()
    if admin_id != actor.id and not has_permission("admin_edit", actor):
        raise PermissionDenied("admin_edit")
    target = db.session.get(Admin, admin_id)
    if target is None:
        raise NotFound("Admin not found")
    return _update_profile(target)


@bp.post("/change-password")
def change_password():
    form = validate_payload(ChangePasswordForm, request_payload())
    auth_service.change_password(current_admin(), form.current_password.data, form.new_password.data)
    return json_ok(None, message="Password changed successfully")


# ─────────────────────────────────────────────────────────────
# Forgot password (no token)
# ─────────────────────────────────────────────────────────────
@bp.post("/forgot-password/email-verification")
def forgot_password_email():
    form = validate_payload(EmailForm, request_payload())
    auth_service.start_password_reset(Admin, form.email.data)
    return json_ok(None, message="If that email is registered, a verification code has been sent")


@bp.post("/forgot-password/code-verification")
def forgot_password_code():
    form = validate_payload(CodeForm, request_payload())
    auth_service.verify_code(form.email.data, form.code.data, PURPOSE_RESET_ADMIN)
    return json_ok({"verified": True}, message="Code verified")


@bp.post("/forgot-password/reset-password")
def forgot_password_reset():
    form = validate_payload(ResetPasswordForm, request_payload())
    auth_service.reset_password(Admin, form.email.data, form.password.data)
    current_app.logger.info("Admin password reset completed for %s", form.email.data.strip().lower())
    return json_ok(None, message="Password has been reset. You can now log in.")
