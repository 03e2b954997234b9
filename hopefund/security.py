# hopefund/security.py
# ─────────────────────────────────────────────────────────────────────────────
# 🔐 Token auth: PyJWT access tokens + Flask-Login request loader
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from functools import wraps
from typing import Any, Dict, Optional, Union

import jwt  # PyJWT
from flask import current_app, g, request
from flask_login import current_user

from hopefund.errors import AuthenticationRequired, PermissionDenied
from hopefund.extensions import db, login_manager
from hopefund.models import Admin, User
from hopefund.models.mixins import utcnow

log = logging.getLogger(__name__)

Principal = Union[Admin, User]

KIND_ADMIN = "admin"
KIND_USER = "user"


# =============================================================================
# Token Helpers
# =============================================================================
def _jwt_key() -> str:
    return str(current_app.config.get("JWT_SECRET") or current_app.config["SECRET_KEY"])


def _jwt_alg() -> str:
    return str(current_app.config.get("JWT_ALG") or "HS256")


def issue_token(principal: Principal) -> Dict[str, Any]:
    """Create an access token for an admin or donor."""
    ttl = timedelta(minutes=int(current_app.config.get("JWT_ACCESS_TTL_MIN", 720)))
    now = utcnow()
    claims = {
        "sub": str(principal.id),
        "kind": principal.kind,
        "iat": now,
        "exp": now + ttl,
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(claims, _jwt_key(), algorithm=_jwt_alg())
    return {
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": int(ttl.total_seconds()),
    }


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, _jwt_key(), algorithms=[_jwt_alg()])
    except jwt.ExpiredSignatureError:
        log.info("Rejected expired access token")
    except jwt.InvalidTokenError as e:
        log.info("Rejected invalid access token: %s", e)
    return None


def bearer_token() -> Optional[str]:
    """Token from `Authorization: Bearer <tok>`; a bare token is accepted too."""
    h = (request.headers.get("Authorization") or "").strip()
    if not h:
        return None
    if h.lower().startswith("bearer "):
        return h.split(" ", 1)[1].strip() or None
    return h


def principal_from_claims(claims: Dict[str, Any]) -> Optional[Principal]:
    try:
        pk = int(claims.get("sub", ""))
    except (TypeError, ValueError):
        return None

    kind = claims.get("kind")
    if kind == KIND_ADMIN:
        principal = db.session.get(Admin, pk)
    elif kind == KIND_USER:
        principal = db.session.get(User, pk)
    else:
        return None

    if principal is None or not principal.is_active:
        return None
    return principal


# =============================================================================
# Flask-Login wiring
# =============================================================================
@login_manager.user_loader
def _load_session_principal(identity: str) -> Optional[Principal]:
    kind, _, raw_id = (identity or "").partition(":")
    return principal_from_claims({"sub": raw_id, "kind": kind})


@login_manager.request_loader
def _load_request_principal(req) -> Optional[Principal]:
    tok = bearer_token()
    if not tok:
        return None
    claims = decode_token(tok)
    if not claims:
        return None
    principal = principal_from_claims(claims)
    if principal is not None:
        g.token_claims = claims
    return principal


@login_manager.unauthorized_handler
def _unauthorized():
    raise AuthenticationRequired()


def current_principal() -> Optional[Principal]:
    if not current_user or not current_user.is_authenticated:
        return None
    return current_user._get_current_object()  # type: ignore[attr-defined]


def current_admin() -> Optional[Admin]:
    p = current_principal()
    return p if isinstance(p, Admin) else None


def current_donor() -> Optional[User]:
    p = current_principal()
    return p if isinstance(p, User) else None


# =============================================================================
# Guards
# =============================================================================
def ensure_admin() -> Admin:
    admin = current_admin()
    if admin is None:
        if current_donor() is not None:
            raise PermissionDenied(message="Admin access required.")
        raise AuthenticationRequired()
    return admin


def user_required(fn):
    """Donor-only endpoints (cart checkout history, profile, my requests)."""

    @wraps(fn)
    def wrapped(*args, **kwargs):
        if current_donor() is None:
            raise AuthenticationRequired()
        return fn(*args, **kwargs)

    return wrapped
