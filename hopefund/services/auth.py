# hopefund/services/auth.py
"""Login, email verification codes, registration and password resets."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Optional, Union

from flask import current_app

from hopefund.errors import AuthenticationRequired, Conflict, ValidationError
from hopefund.extensions import db, send_email_async
from hopefund.models import Admin, User, VerificationCode
from hopefund.models.mixins import utcnow
from hopefund.models.verification import (
    PURPOSE_REGISTER,
    PURPOSE_RESET_ADMIN,
    PURPOSE_RESET_USER,
    hash_code,
)

log = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_CODE = "Invalid or expired verification code"


def _norm(email: str) -> str:
    return (email or "").strip().lower()


# ─────────────────────────────────────────────────────────────
# Login
# ─────────────────────────────────────────────────────────────
def authenticate(model, email: str, password: str) -> Union[Admin, User]:
    q = model.query.filter(model.email == _norm(email))
    if hasattr(model, "deleted"):
        q = q.filter(model.deleted.is_(False))
    principal = q.first()
    if principal is None or not principal.check_password(password):
        log.info("Failed %s login for %s", model.__name__.lower(), _norm(email))
        raise AuthenticationRequired(INVALID_CREDENTIALS)
    if not principal.is_active:
        raise AuthenticationRequired("Your account has been disabled. Please contact support.")
    principal.last_login_at = utcnow()
    db.session.commit()
    return principal


def change_password(principal: Union[Admin, User], current: str, new: str) -> None:
    if not principal.check_password(current):
        raise ValidationError(["Current password is incorrect"], fields={"current_password": ["Current password is incorrect"]})
    principal.set_password(new)
    db.session.commit()


# ─────────────────────────────────────────────────────────────
# Verification codes
# ─────────────────────────────────────────────────────────────
def _generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def issue_code(email: str, purpose: str) -> str:
    """Create a fresh code (older unconsumed ones for the same purpose are retired) and mail it."""
    email = _norm(email)
    now = utcnow()
    for old in VerificationCode.query.filter_by(email=email, purpose=purpose, consumed_at=None).all():
        old.consumed_at = now

    code = _generate_code()
    ttl = int(current_app.config.get("VERIFICATION_CODE_TTL_MIN", 15))
    db.session.add(
        VerificationCode(
            email=email,
            purpose=purpose,
            code_hash=hash_code(code),
            expires_at=now + timedelta(minutes=ttl),
        )
    )
    db.session.commit()

    app = current_app._get_current_object()
    send_email_async(
        app,
        f"Your {app.config.get('BRAND_NAME', 'HopeFund')} verification code",
        [email],
        html_template="verification_code.html",
        text_template="verification_code.txt",
        context={"code": code, "ttl": ttl, "brand": app.config.get("BRAND_NAME", "HopeFund"), "purpose": purpose},
    )
    log.info("Issued %s verification code for %s", purpose, email)
    return code


def _latest(email: str, purpose: str) -> Optional[VerificationCode]:
    return (
        VerificationCode.query.filter_by(email=_norm(email), purpose=purpose, consumed_at=None)
        .order_by(VerificationCode.id.desc())
        .first()
    )


def verify_code(email: str, code: str, purpose: str) -> VerificationCode:
    record = _latest(email, purpose)
    if record is None or not record.is_usable:
        raise ValidationError([INVALID_CODE], fields={"code": [INVALID_CODE]})
    if not record.matches(code):
        record.attempts += 1
        db.session.commit()
        raise ValidationError([INVALID_CODE], fields={"code": [INVALID_CODE]})
    record.verified_at = record.verified_at or utcnow()
    db.session.commit()
    return record


def _consume_verified(email: str, purpose: str) -> VerificationCode:
    record = _latest(email, purpose)
    if record is None or not record.verified_at or record.is_expired():
        raise ValidationError(["Please verify your email first"])
    record.consumed_at = utcnow()
    return record


# ─────────────────────────────────────────────────────────────
# Flows
# ─────────────────────────────────────────────────────────────
def start_registration(email: str) -> None:
    if User.query.filter_by(email=_norm(email)).first() is not None:
        raise Conflict("An account with this email already exists")
    issue_code(email, PURPOSE_REGISTER)


def register_user(form) -> User:
    email = _norm(form.email.data)
    if User.query.filter_by(email=email).first() is not None:
        raise Conflict("An account with this email already exists")
    _consume_verified(email, PURPOSE_REGISTER)
    user = User(
        name=form.name.data.strip(),
        email=email,
        phone=form.phone.data or None,
        country=form.country.data or None,
        email_verified_at=utcnow(),
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    log.info("Registered donor %s", email)
    return user


def _reset_target(model, email: str):
    q = model.query.filter(model.email == _norm(email))
    if hasattr(model, "deleted"):
        q = q.filter(model.deleted.is_(False))
    return q.first()


def start_password_reset(model, email: str) -> bool:
    """Issue a reset code if the account exists. Callers answer the same either way."""
    purpose = reset_purpose(model)
    if _reset_target(model, email) is None:
        log.info("Password reset requested for unknown %s %s", model.__name__.lower(), _norm(email))
        return False
    issue_code(email, purpose)
    return True


def reset_password(model, email: str, password: str) -> None:
    purpose = reset_purpose(model)
    principal = _reset_target(model, email)
    if principal is None:
        raise ValidationError([INVALID_CODE])
    _consume_verified(email, purpose)
    principal.set_password(password)
    db.session.commit()
    log.info("Password reset for %s %s", model.__name__.lower(), _norm(email))


def reset_purpose(model) -> str:
    return PURPOSE_RESET_ADMIN if model is Admin else PURPOSE_RESET_USER
