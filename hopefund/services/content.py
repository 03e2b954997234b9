# hopefund/services/content.py
"""
Create / update rules for admin-managed content that go beyond single-field
validation: ordering uniqueness, slug generation, image presence, publish
timestamps. Views validate with the WTForms forms first, then call these.
"""

from __future__ import annotations

import json
import re
from datetime import date
from typing import Any, Dict, List, Optional

from hopefund.errors import ValidationError
from hopefund.extensions import db
from hopefund.helpers import to_cents
from hopefund.models import FAQ, Blog, Event, Menu, Page, Setting, Slider
from hopefund.models.content import PAGE_COMPONENT_TYPES
from hopefund.models.mixins import utcnow

ORDERING_TAKEN = "This ordering position is already taken"

_SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
_SLUG_DASH = re.compile(r"[\s_-]+")


# ─────────────────────────────────────────────────────────────
# Ordering
# ─────────────────────────────────────────────────────────────
def _scoped(model, **scope):
    q = model.query
    for col, value in scope.items():
        column = getattr(model, col)
        q = q.filter(column.is_(None) if value is None else column == value)
    return q


def is_ordering_in_use(model, ordering: int, exclude_id: Optional[int] = None, **scope: Any) -> bool:
    q = _scoped(model, **scope).filter(model.ordering == int(ordering))
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def next_available_ordering(model, **scope: Any) -> int:
    used = {row[0] for row in _scoped(model, **scope).with_entities(model.ordering).all()}
    n = 1
    while n in used:
        n += 1
    return n


def ensure_ordering_free(model, ordering: int, exclude_id: Optional[int] = None, **scope: Any) -> None:
    if is_ordering_in_use(model, ordering, exclude_id, **scope):
        raise ValidationError(
            [ORDERING_TAKEN],
            fields={"ordering": [ORDERING_TAKEN]},
        )


# ─────────────────────────────────────────────────────────────
# Slugs
# ─────────────────────────────────────────────────────────────
def slugify(text: str) -> str:
    s = _SLUG_STRIP.sub("", (text or "").lower()).strip()
    return _SLUG_DASH.sub("-", s).strip("-")


def unique_slug(model, source: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(source) or "post"
    slug, n = base, 2
    while True:
        q = model.query.filter(model.slug == slug)
        if exclude_id is not None:
            q = q.filter(model.id != exclude_id)
        if not db.session.query(q.exists()).scalar():
            return slug
        slug = f"{base}-{n}"
        n += 1


# ─────────────────────────────────────────────────────────────
# Savers
# ─────────────────────────────────────────────────────────────
def save_faq(form, faq: Optional[FAQ] = None) -> FAQ:
    ensure_ordering_free(FAQ, form.ordering.data, exclude_id=faq.id if faq else None)
    faq = faq or FAQ()
    faq.question = form.question.data.strip()
    faq.answer = form.answer.data.strip()
    faq.ordering = form.ordering.data
    faq.status = form.status.data
    db.session.add(faq)
    db.session.commit()
    return faq


def save_slider(form, image: Optional[str], slider: Optional[Slider] = None) -> Slider:
    image = image or form.image.data or (slider.image if slider else None)
    if not image:
        raise ValidationError(["Image is required for new sliders"], fields={"image": ["Image is required for new sliders"]})
    ensure_ordering_free(Slider, form.ordering.data, exclude_id=slider.id if slider else None)

    slider = slider or Slider()
    slider.title = form.title.data.strip()
    slider.subtitle = form.subtitle.data or None
    slider.button_text = form.button_text.data or None
    slider.button_link = form.button_link.data or None
    slider.image = image
    slider.ordering = form.ordering.data
    slider.status = form.status.data
    db.session.add(slider)
    db.session.commit()
    return slider


def save_menu(form, menu: Optional[Menu] = None) -> Menu:
    parent_id = form.parent_id.data or None
    if parent_id is not None:
        parent = db.session.get(Menu, parent_id)
        if parent is None:
            raise ValidationError(["Parent menu not found"], fields={"parent_id": ["Parent menu not found"]})
        if menu is not None and parent.id == menu.id:
            raise ValidationError(["A menu cannot be its own parent"])
    ensure_ordering_free(Menu, form.ordering.data, exclude_id=menu.id if menu else None, parent_id=parent_id)

    menu = menu or Menu()
    menu.name = form.name.data.strip()
    menu.slug = slugify(form.slug.data) or form.slug.data.strip()
    menu.url = form.url.data or None
    menu.position = form.position.data or "header"
    menu.parent_id = parent_id
    menu.ordering = form.ordering.data
    menu.status = form.status.data
    db.session.add(menu)
    db.session.commit()
    return menu


def resolve_slug(model, requested: Optional[str], title: str, obj=None) -> str:
    """An explicit slug must be free; otherwise keep the current one or derive a unique one from the title."""
    if requested:
        slug = slugify(requested)
        clash = model.query.filter(model.slug == slug)
        if obj is not None:
            clash = clash.filter(model.id != obj.id)
        if db.session.query(clash.exists()).scalar():
            raise ValidationError(["This slug is already in use."], fields={"slug": ["This slug is already in use."]})
        return slug
    if obj is not None:
        return obj.slug
    return unique_slug(model, title)


def save_blog(form, author_id: Optional[int], blog: Optional[Blog] = None) -> Blog:
    slug = resolve_slug(Blog, form.slug.data, form.title.data, blog)

    blog = blog or Blog(author_id=author_id)
    blog.title = form.title.data.strip()
    blog.slug = slug
    blog.excerpt = form.excerpt.data or None
    blog.content = form.content.data
    blog.category = form.category.data or None
    blog.tags = list(form.tags.data or [])
    blog.featured_image = form.featured_image.data or blog.featured_image
    blog.seo_title = form.seo_title.data or None
    blog.meta_description = form.meta_description.data or None
    blog.status = form.status.data or "draft"
    if blog.status == "published" and blog.published_at is None:
        blog.published_at = utcnow()
    db.session.add(blog)
    db.session.commit()
    return blog


# ─────────────────────────────────────────────────────────────
# Page builder
# ─────────────────────────────────────────────────────────────
def parse_components(raw: Any) -> List[Dict[str, Any]]:
    """
    `content_data` arrives as a JSON list (or a JSON string from multipart
    posts) of `{type, content, id?}` components. Returns the normalized list.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError(["content_data must be valid JSON"], fields={"content_data": ["Invalid JSON"]})
    if raw is None:
        raise ValidationError(["content_data is required"], fields={"content_data": ["content_data is required"]})
    if not isinstance(raw, list):
        raise ValidationError(["content_data must be an array"], fields={"content_data": ["content_data must be an array"]})

    components: List[Dict[str, Any]] = []
    errors: List[str] = []
    for n, comp in enumerate(raw, start=1):
        kind = comp.get("type") if isinstance(comp, dict) else None
        if kind not in PAGE_COMPONENT_TYPES:
            errors.append(f"Component {n}: unknown component type {kind!r}")
            continue
        content = comp.get("content") or {}
        if not isinstance(content, dict):
            errors.append(f"Component {n}: content must be an object")
            continue
        components.append({"id": str(comp.get("id") or f"{kind}-{n}"), "type": kind, "content": content})
    if errors:
        raise ValidationError(errors, fields={"content_data": errors})
    return components


def save_page(form, components: List[Dict[str, Any]], page: Optional[Page] = None) -> Page:
    slug = resolve_slug(Page, form.slug.data, form.title.data, page)

    page = page or Page()
    page.title = form.title.data
    page.slug = slug
    page.content_data = components
    page.meta_title = form.meta_title.data or None
    page.meta_description = form.meta_description.data or None
    page.status = form.status.data
    db.session.add(page)
    db.session.commit()
    return page


def save_event(form, image: Optional[str], event: Optional[Event] = None) -> Event:
    if event is None and form.end_date.data < date.today():
        raise ValidationError(["End date cannot be in the past"], fields={"end_date": ["End date cannot be in the past"]})
    price_cents = to_cents(form.price.data) or 0
    if form.is_fixed_donation.data and not price_cents:
        raise ValidationError(
            ["Fixed-donation events need a price greater than 0"],
            fields={"price": ["Fixed-donation events need a price greater than 0"]},
        )

    event = event or Event()
    event.title = form.title.data.strip()
    event.description = form.description.data.strip()
    event.location = form.location.data.strip()
    event.start_date = form.start_date.data
    event.end_date = form.end_date.data
    event.price_cents = price_cents
    event.target_amount_cents = to_cents(form.target_amount.data) or 0
    event.is_fixed_donation = bool(form.is_fixed_donation.data)
    event.is_featured = bool(form.is_featured.data)
    event.feature_image = image or form.feature_image.data or event.feature_image
    event.status = form.status.data
    db.session.add(event)
    db.session.commit()
    return event


def save_setting(form, setting: Optional[Setting] = None) -> Setting:
    key = form.key.data.strip()
    clash = Setting.query.filter(Setting.key == key)
    if setting is not None:
        clash = clash.filter(Setting.id != setting.id)
    if db.session.query(clash.exists()).scalar():
        raise ValidationError([f"Setting '{key}' already exists"], fields={"key": ["Already exists"]})

    setting = setting or Setting()
    setting.key = key
    setting.value = form.value.data
    setting.type = form.type.data or "general"
    db.session.add(setting)
    db.session.commit()
    return setting


def settings_map() -> Dict[str, Dict[str, Optional[str]]]:
    """{type: {key: value}} for the public site."""
    out: Dict[str, Dict[str, Optional[str]]] = {}
    for s in Setting.query.order_by(Setting.type, Setting.key).all():
        out.setdefault(s.type, {})[s.key] = s.value
    return out
