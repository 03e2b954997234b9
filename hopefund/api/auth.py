# hopefund/api/auth.py
"""Donor registration, login, profile and password flows."""

from __future__ import annotations

import logging

from flask import request

from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.auth import (
    ChangePasswordForm,
    CodeForm,
    EmailForm,
    LoginForm,
    ProfileForm,
    RegistrationForm,
    ResetPasswordForm,
)
from hopefund.helpers import json_ok, request_payload
from hopefund.models import User
from hopefund.models.verification import PURPOSE_REGISTER, PURPOSE_RESET_USER
from hopefund.security import current_donor, issue_token, user_required
from hopefund.services import auth as auth_service
from hopefund.services.stats import donor_summary
from hopefund.services.uploads import delete_upload, save_upload

from . import bp

log = logging.getLogger(__name__)


def _session_payload(user: User) -> dict:
    data = issue_token(user)
    data["user"] = user.as_dict()
    return data


# ─────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────
@bp.post("/email-verification")
def email_verification():
    form = validate_payload(EmailForm, request_payload())
    auth_service.start_registration(form.email.data)
    return json_ok(None, message="A verification code has been sent to your email")


@bp.post("/code-verification")
def code_verification():
    form = validate_payload(CodeForm, request_payload())
    auth_service.verify_code(form.email.data, form.code.data, PURPOSE_REGISTER)
    return json_ok({"verified": True}, message="Email verified")


@bp.post("/registration")
def registration():
    form = validate_payload(RegistrationForm, request_payload())
    user = auth_service.register_user(form)
    return json_ok(_session_payload(user), status=201, message="Registration successful")


# ─────────────────────────────────────────────────────────────
# Session
# ─────────────────────────────────────────────────────────────
@bp.post("/login")
def login():
    form = validate_payload(LoginForm, request_payload())
    user = auth_service.authenticate(User, form.email.data, form.password.data)
    return json_ok(_session_payload(user), message="Login successful")


@bp.post("/logout")
@user_required
def logout():
    log.info("User %s logged out", current_donor().id)
    return json_ok(None, message="Logged out")


@bp.post("/change-password")
@user_required
def change_password():
    form = validate_payload(ChangePasswordForm, request_payload())
    auth_service.change_password(current_donor(), form.current_password.data, form.new_password.data)
    return json_ok(None, message="Password changed successfully")


# ─────────────────────────────────────────────────────────────
# Profile
# ─────────────────────────────────────────────────────────────
@bp.get("/profile")
@user_required
def profile():
    user = current_donor()
    data = user.as_dict()
    data["summary"] = donor_summary(user)
    return json_ok(data)


@bp.put("/profile")
@user_required
def update_profile():
    user = current_donor()
    form = validate_payload(ProfileForm, request_payload())
    avatar = request.files.get("avatar")
    if avatar is not None and avatar.filename:
        previous = user.avatar
        user.avatar = save_upload(avatar, "image")
        delete_upload(previous)
    elif form.avatar.data:
        user.avatar = form.avatar.data
    user.name = form.name.data.strip()
    user.phone = form.phone.data or None
    user.country = form.country.data or None
    user.address = form.address.data or None
    db.session.commit()
    return json_ok(user.as_dict(), message="Profile updated successfully")


# ─────────────────────────────────────────────────────────────
# Forgot password
# ─────────────────────────────────────────────────────────────
@bp.post("/forgot-password/email-verification")
def forgot_password_email():
    form = validate_payload(EmailForm, request_payload())
    auth_service.start_password_reset(User, form.email.data)
    return json_ok(None, message="If that email is registered, a verification code has been sent")


@bp.post("/forgot-password/code-verification")
def forgot_password_code():
    form = validate_payload(CodeForm, request_payload())
    auth_service.verify_code(form.email.data, form.code.data, PURPOSE_RESET_USER)
    return json_ok({"verified": True}, message="Code verified")


@bp.post("/forgot-password/reset-password")
def forgot_password_reset():
    form = validate_payload(ResetPasswordForm, request_payload())
    auth_service.reset_password(User, form.email.data, form.password.data)
    return json_ok(None, message="Password has been reset. You can now log in.")
