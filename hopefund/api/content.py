# hopefund/api/content.py
"""Storefront content: menus, sliders, FAQs, settings, events, blogs, pages, contact."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from flask import request

from hopefund.errors import NotFound
from hopefund.extensions import db, emit_socket
from hopefund.forms import validate_payload
from hopefund.forms.content import ContactForm
from hopefund.helpers import json_list, json_ok, request_payload, truthy
from hopefund.models import FAQ, Blog, ContactMessage, Event, Menu, Page, Setting, Slider
from hopefund.services.content import settings_map
from hopefund.services.listing import ListParams, apply_listing

from . import bp

log = logging.getLogger(__name__)


@bp.get("/menus")
def menus():
    query = Menu.published().filter(Menu.parent_id.is_(None))
    position = request.args.get("position")
    if position:
        query = query.filter(Menu.position == position)
    rows = query.order_by(Menu.ordering, Menu.id).all()
    return json_ok([m.as_dict(with_children=True) for m in rows])


@bp.get("/sliders")
def sliders():
    rows = Slider.published().order_by(Slider.ordering, Slider.id).all()
    return json_ok([s.as_dict() for s in rows])


@bp.get("/faqs")
def faqs():
    rows = FAQ.published().order_by(FAQ.ordering, FAQ.id).all()
    return json_ok([f.as_dict() for f in rows])


@bp.get("/settings")
def settings():
    return json_ok(settings_map())


@bp.get("/about-us")
def about_us():
    setting = Setting.query.filter_by(key="about_us").first()
    return json_ok({"content": setting.value if setting else ""})


# ─────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────
@bp.get("/events")
def events():
    params = replace(ListParams.from_request(sort="start_date", direction="asc"), status=None)
    query = Event.published()
    if truthy(request.args.get("featured")):
        query = query.filter(Event.is_featured.is_(True))
    if not truthy(request.args.get("include_past")):
        query = query.filter(Event.end_date >= date.today())
    rows, meta = apply_listing(
        query,
        Event,
        params,
        search=("title", "location", "description"),
        sortable={
            "start_date": Event.start_date,
            "end_date": Event.end_date,
            "title": Event.title,
            "raised": Event.raised_cents,
        },
        default_sort="start_date",
    )
    return json_list([e.as_dict() for e in rows], meta)


@bp.get("/events/<int:event_id>")
def event_details(event_id: int):
    event = Event.published().filter(Event.id == event_id).first()
    if event is None:
        raise NotFound("Event not found")
    return json_ok(event.as_dict())


# ─────────────────────────────────────────────────────────────
# Blogs
# ─────────────────────────────────────────────────────────────
@bp.get("/blogs")
def blogs():
    params = replace(ListParams.from_request(sort="published_at"), status=None)
    query = Blog.published()
    category = request.args.get("category")
    if category:
        query = query.filter(Blog.category == category)
    rows, meta = apply_listing(
        query,
        Blog,
        params,
        search=("title", "excerpt", "content"),
        sortable={"published_at": Blog.published_at, "title": Blog.title},
        default_sort="published_at",
    )
    return json_list([b.as_dict(full=False) for b in rows], meta)


@bp.get("/blogs/<slug>")
def blog_details(slug: str):
    blog = Blog.published().filter(Blog.slug == slug).first()
    if blog is None:
        raise NotFound("Blog post not found")
    return json_ok(blog.as_dict())


@bp.get("/page-builder/view/<slug>")
def page_view(slug: str):
    page = Page.published().filter(Page.slug == slug).first()
    if page is None:
        raise NotFound("Page not found")
    return json_ok(page.as_dict())


# ─────────────────────────────────────────────────────────────
# Contact
# ─────────────────────────────────────────────────────────────
@bp.get("/contact-us")
def contact_details():
    return json_ok(settings_map().get("contact", {}))


def _store_message(kind: str) -> ContactMessage:
    form = validate_payload(ContactForm, request_payload())
    msg = ContactMessage(
        kind=kind,
        name=form.name.data.strip(),
        email=form.email.data.strip().lower(),
        phone=form.phone.data or None,
        subject=form.subject.data.strip(),
        message=form.message.data.strip(),
    )
    db.session.add(msg)
    db.session.commit()
    log.info("Stored %s message %s from %s", kind, msg.id, msg.email)
    emit_socket("contact:new", {"id": msg.id, "kind": kind, "subject": msg.subject})
    return msg


@bp.post("/contact-us")
def contact_us():
    msg = _store_message("contact")
    return json_ok({"id": msg.id}, status=201, message="Thank you! Your message has been sent.")


@bp.post("/customer-inquiry")
def customer_inquiry():
    msg = _store_message("inquiry")
    return json_ok({"id": msg.id}, status=201, message="Thank you! We will get back to you shortly.")
