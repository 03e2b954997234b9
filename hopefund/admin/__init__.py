# hopefund/admin/__init__.py
"""
Admin JSON API, mounted at /api/admin/v1.

Every endpoint needs an admin bearer token except the ones listed in
`PUBLIC_ENDPOINTS` (login and the forgot-password flow). Per-action
permission checks live on the views via `require_permission`.
"""

from __future__ import annotations

from flask import Blueprint, request

from hopefund.extensions import csrf
from hopefund.security import ensure_admin

bp = Blueprint("admin_api", __name__)
admin_bp = bp

csrf.exempt(bp)

PUBLIC_ENDPOINTS = {
    "admin_api.login",
    "admin_api.forgot_password_email",
    "admin_api.forgot_password_code",
    "admin_api.forgot_password_reset",
}


@bp.before_request
def _require_admin():
    if request.method == "OPTIONS" or request.endpoint in PUBLIC_ENDPOINTS:
        return None
    ensure_admin()
    return None


# Route modules attach their views to `bp`.
from . import auth, content, dashboard, events, fund_requests, org, settings, users  # noqa: E402,F401

__all__ = ["bp", "admin_bp", "PUBLIC_ENDPOINTS"]
