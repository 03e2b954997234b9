# hopefund/admin/settings.py
"""Site settings, the about-us page and contact messages."""

from __future__ import annotations

from flask import request

from hopefund.errors import NotFound, ValidationError
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.content import ContactUpdateForm, SettingForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import ContactMessage, Setting
from hopefund.models.mixins import utcnow
from hopefund.services import content as content_service
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import require_permission

from . import bp

ABOUT_US_KEY = "about_us"


def _setting_or_404(setting_id: int) -> Setting:
    setting = db.session.get(Setting, setting_id)
    if setting is None:
        raise NotFound("Setting not found")
    return setting


@bp.get("/settings")
@require_permission("settings_view")
def list_settings():
    params = ListParams.from_request(sort="key", direction="asc", per_page=100)
    query = Setting.query
    kind = request.args.get("type")
    if kind:
        query = query.filter(Setting.type == kind)
    rows, meta = apply_listing(
        query,
        Setting,
        params,
        search=("key", "value"),
        sortable={"key": Setting.key, "type": Setting.type},
        default_sort="key",
    )
    return json_list([s.as_dict() for s in rows], meta)


@bp.post("/settings/create")
@require_permission("settings_edit")
def create_setting():
    form = validate_payload(SettingForm, request_payload())
    setting = content_service.save_setting(form)
    return json_ok(setting.as_dict(), status=201, message="Setting created successfully")


@bp.get("/settings/edit/<int:setting_id>")
@require_permission("settings_view")
def edit_setting(setting_id: int):
    return json_ok(_setting_or_404(setting_id).as_dict())


@bp.put("/settings/update/<int:setting_id>")
@require_permission("settings_edit")
def update_setting(setting_id: int):
    setting = _setting_or_404(setting_id)
    form = validate_payload(SettingForm, request_payload())
    content_service.save_setting(form, setting)
    return json_ok(setting.as_dict(), message="Setting updated successfully")


@bp.get("/about-us")
@require_permission("settings_view")
def about_us():
    setting = Setting.query.filter_by(key=ABOUT_US_KEY).first()
    return json_ok({"content": setting.value if setting else ""})


@bp.post("/about-us")
@require_permission("settings_edit")
def save_about_us():
    content = str(request_payload().get("content") or "").strip()
    if len(content) < 20:
        raise ValidationError(["Content must be at least 20 characters."], fields={"content": ["Too short"]})
    setting = Setting.query.filter_by(key=ABOUT_US_KEY).first() or Setting(key=ABOUT_US_KEY, type="general")
    setting.value = content
    db.session.add(setting)
    db.session.commit()
    return json_ok({"content": setting.value}, message="About us updated successfully")


# ─────────────────────────────────────────────────────────────
# Contact messages
# ─────────────────────────────────────────────────────────────
def _message_or_404(message_id: int) -> ContactMessage:
    msg = db.session.get(ContactMessage, message_id)
    if msg is None:
        raise NotFound("Message not found")
    return msg


@bp.get("/contact-us")
@require_permission("contact_view")
def list_contact_messages():
    params = ListParams.from_request()
    query = ContactMessage.query
    kind = request.args.get("kind")
    if kind:
        query = query.filter(ContactMessage.kind == kind)
    rows, meta = apply_listing(
        query,
        ContactMessage,
        params,
        search=("name", "email", "subject", "message"),
        sortable={"created_at": ContactMessage.created_at, "name": ContactMessage.name},
    )
    return json_list([m.as_dict() for m in rows], meta)


@bp.get("/contact-us/edit/<int:message_id>")
@require_permission("contact_view")
def contact_message(message_id: int):
    return json_ok(_message_or_404(message_id).as_dict())


@bp.put("/contact-us/update/<int:message_id>")
@require_permission("contact_edit")
def update_contact_message(message_id: int):
    msg = _message_or_404(message_id)
    form = validate_payload(ContactUpdateForm, request_payload())
    msg.status = form.status.data
    msg.admin_note = form.admin_note.data or None
    msg.handled_at = utcnow() if msg.status == "handled" else None
    db.session.commit()
    return json_ok(msg.as_dict(), message="Message updated successfully")
