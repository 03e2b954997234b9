# hopefund/api/__init__.py
"""
Public JSON API, mounted at /api.

Storefront content, donor auth, the session cart, Stripe checkout and
fundraising request submission. Donor-only views use `user_required`.
"""

from __future__ import annotations

from flask import Blueprint

from hopefund.extensions import csrf

bp = Blueprint("api", __name__)
api_bp = bp

csrf.exempt(bp)

from . import auth, cart, content, donations, fund_requests, payments  # noqa: E402,F401

__all__ = ["bp", "api_bp"]
