# hopefund/admin/dashboard.py
from __future__ import annotations

from hopefund.helpers import json_ok
from hopefund.security import current_admin
from hopefund.services import stats
from hopefund.services.permissions import current_permissions, has_permission

from . import bp


@bp.get("/dashboard")
def dashboard():
    data = {"totals": stats.totals()}
    if has_permission("donation_view", current_admin()):
        data["recent_donations"] = stats.recent_donations()
    if has_permission("event_view", current_admin()):
        data["events"] = stats.raised_by_event()
    data["permissions"] = current_permissions().grouped()
    return json_ok(data)
