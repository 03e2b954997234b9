# hopefund/admin/content.py
"""FAQ, slider, menu, blog and page-builder management plus image uploads."""

from __future__ import annotations

import logging
from typing import Optional

from flask import request

from hopefund.errors import NotFound, ValidationError
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.content import BlogForm, FAQForm, MenuForm, PageForm, SliderForm, StatusForm
from hopefund.helpers import json_list, json_ok, request_payload
from hopefund.models import FAQ, Blog, Menu, Page, Slider
from hopefund.security import current_admin
from hopefund.services import content as content_service
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import require_permission
from hopefund.services.uploads import delete_upload, save_upload

from . import bp

log = logging.getLogger(__name__)


def _get_or_404(model, pk: int, label: str):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def _uploaded_image(field: str = "image") -> Optional[str]:
    storage = request.files.get(field)
    if storage is None or not storage.filename:
        return None
    return save_upload(storage, "image")


# ─────────────────────────────────────────────────────────────
# FAQs
# ─────────────────────────────────────────────────────────────
@bp.get("/faqs")
@require_permission("faq_view")
def list_faqs():
    params = ListParams.from_request(sort="ordering", direction="asc")
    rows, meta = apply_listing(
        FAQ.query,
        FAQ,
        params,
        search=("question", "answer"),
        sortable={"ordering": FAQ.ordering, "question": FAQ.question, "created_at": FAQ.created_at},
        default_sort="ordering",
    )
    return json_list(
        [f.as_dict() for f in rows],
        meta,
        next_ordering=content_service.next_available_ordering(FAQ),
    )


@bp.post("/faqs/create")
@require_permission("faq_create")
def create_faq():
    form = validate_payload(FAQForm, request_payload())
    faq = content_service.save_faq(form)
    return json_ok(faq.as_dict(), status=201, message="FAQ created successfully")


@bp.get("/faqs/edit/<int:faq_id>")
@require_permission("faq_view")
def edit_faq(faq_id: int):
    return json_ok(_get_or_404(FAQ, faq_id, "FAQ").as_dict())


@bp.post("/faqs/edit/<int:faq_id>")
@require_permission("faq_edit")
def update_faq(faq_id: int):
    faq = _get_or_404(FAQ, faq_id, "FAQ")
    form = validate_payload(FAQForm, request_payload())
    content_service.save_faq(form, faq)
    return json_ok(faq.as_dict(), message="FAQ updated successfully")


@bp.delete("/faqs/delete/<int:faq_id>")
@require_permission("faq_delete")
def delete_faq(faq_id: int):
    db.session.delete(_get_or_404(FAQ, faq_id, "FAQ"))
    db.session.commit()
    return json_ok(None, message="FAQ deleted successfully")


# ─────────────────────────────────────────────────────────────
# Sliders
# ─────────────────────────────────────────────────────────────
@bp.get("/sliders")
@require_permission("slider_view")
def list_sliders():
    params = ListParams.from_request(sort="ordering", direction="asc")
    rows, meta = apply_listing(
        Slider.query,
        Slider,
        params,
        search=("title", "subtitle"),
        sortable={"ordering": Slider.ordering, "title": Slider.title, "created_at": Slider.created_at},
        default_sort="ordering",
    )
    return json_list(
        [s.as_dict() for s in rows],
        meta,
        next_ordering=content_service.next_available_ordering(Slider),
    )


@bp.post("/sliders/create")
@require_permission("slider_create")
def create_slider():
    form = validate_payload(SliderForm, request_payload())
    slider = content_service.save_slider(form, _uploaded_image())
    return json_ok(slider.as_dict(), status=201, message="Slider created successfully")


@bp.get("/sliders/edit/<int:slider_id>")
@require_permission("slider_view")
def edit_slider(slider_id: int):
    return json_ok(_get_or_404(Slider, slider_id, "Slider").as_dict())


@bp.put("/sliders/update/<int:slider_id>")
@require_permission("slider_edit")
def update_slider(slider_id: int):
    slider = _get_or_404(Slider, slider_id, "Slider")
    form = validate_payload(SliderForm, request_payload())
    previous = slider.image
    content_service.save_slider(form, _uploaded_image(), slider)
    if previous and previous != slider.image:
        delete_upload(previous)
    return json_ok(slider.as_dict(), message="Slider updated successfully")


@bp.patch("/sliders/<int:slider_id>/status")
@require_permission("slider_edit")
def slider_status(slider_id: int):
    slider = _get_or_404(Slider, slider_id, "Slider")
    form = validate_payload(StatusForm, request_payload())
    slider.status = form.status.data
    db.session.commit()
    return json_ok(slider.as_dict(), message="Slider status updated")


@bp.delete("/sliders/delete/<int:slider_id>")
@require_permission("slider_delete")
def delete_slider(slider_id: int):
    slider = _get_or_404(Slider, slider_id, "Slider")
    image = slider.image
    db.session.delete(slider)
    db.session.commit()
    delete_upload(image)
    return json_ok(None, message="Slider deleted successfully")


# ─────────────────────────────────────────────────────────────
# Menus
# ─────────────────────────────────────────────────────────────
@bp.get("/menus")
@require_permission("menu_view")
def list_menus():
    params = ListParams.from_request(sort="ordering", direction="asc")
    query = Menu.query
    position = request.args.get("position")
    if position:
        query = query.filter(Menu.position == position)
    rows, meta = apply_listing(
        query,
        Menu,
        params,
        search=("name", "slug"),
        sortable={"ordering": Menu.ordering, "name": Menu.name, "created_at": Menu.created_at},
        default_sort="ordering",
    )
    return json_list([m.as_dict() for m in rows], meta)


@bp.post("/menus/create")
@require_permission("menu_create")
def create_menu():
    form = validate_payload(MenuForm, request_payload())
    menu = content_service.save_menu(form)
    return json_ok(menu.as_dict(), status=201, message="Menu created successfully")


@bp.get("/menus/edit/<int:menu_id>")
@require_permission("menu_view")
def edit_menu(menu_id: int):
    return json_ok(_get_or_404(Menu, menu_id, "Menu").as_dict(with_children=True))


@bp.put("/menus/update/<int:menu_id>")
@require_permission("menu_edit")
def update_menu(menu_id: int):
    menu = _get_or_404(Menu, menu_id, "Menu")
    form = validate_payload(MenuForm, request_payload())
    content_service.save_menu(form, menu)
    return json_ok(menu.as_dict(), message="Menu updated successfully")


@bp.delete("/menus/delete/<int:menu_id>")
@require_permission("menu_delete")
def delete_menu(menu_id: int):
    menu = _get_or_404(Menu, menu_id, "Menu")
    for child in list(menu.children):
        child.parent_id = None
    db.session.delete(menu)
    db.session.commit()
    return json_ok(None, message="Menu deleted successfully")


# ─────────────────────────────────────────────────────────────
# Blogs
# ─────────────────────────────────────────────────────────────
@bp.get("/blogs")
@require_permission("blog_view")
def list_blogs():
    params = ListParams.from_request()
    query = Blog.query
    category = request.args.get("category")
    if category:
        query = query.filter(Blog.category == category)
    rows, meta = apply_listing(
        query,
        Blog,
        params,
        search=("title", "excerpt", "category"),
        sortable={
            "title": Blog.title,
            "created_at": Blog.created_at,
            "published_at": Blog.published_at,
        },
    )
    return json_list([b.as_dict(full=False) for b in rows], meta)


@bp.post("/blogs/create")
@require_permission("blog_create")
def create_blog():
    payload = request_payload()
    image = _uploaded_image("featured_image")
    if image:
        payload = {**payload, "featured_image": image}
    form = validate_payload(BlogForm, payload)
    blog = content_service.save_blog(form, current_admin().id)
    return json_ok(blog.as_dict(), status=201, message="Blog created successfully")


@bp.get("/blogs/edit/<int:blog_id>")
@require_permission("blog_view")
def edit_blog(blog_id: int):
    return json_ok(_get_or_404(Blog, blog_id, "Blog").as_dict())


@bp.put("/blogs/update/<int:blog_id>")
@require_permission("blog_edit")
def update_blog(blog_id: int):
    blog = _get_or_404(Blog, blog_id, "Blog")
    payload = request_payload()
    image = _uploaded_image("featured_image")
    if image:
        payload = {**payload, "featured_image": image}
    form = validate_payload(BlogForm, payload)
    content_service.save_blog(form, current_admin().id, blog)
    return json_ok(blog.as_dict(), message="Blog updated successfully")


@bp.delete("/blogs/delete/<int:blog_id>")
@require_permission("blog_delete")
def delete_blog(blog_id: int):
    blog = _get_or_404(Blog, blog_id, "Blog")
    db.session.delete(blog)
    db.session.commit()
    return json_ok(None, message="Blog deleted successfully")


@bp.get("/blogs/categories")
@require_permission("blog_view")
def blog_categories():
    rows = (
        db.session.query(Blog.category)
        .filter(Blog.category.isnot(None), Blog.category != "")
        .distinct()
        .order_by(Blog.category)
        .all()
    )
    return json_ok([r[0] for r in rows])


# ─────────────────────────────────────────────────────────────
# Page builder
# ─────────────────────────────────────────────────────────────
def _page_form_and_components():
    payload = request_payload()
    form = validate_payload(PageForm, {k: v for k, v in payload.items() if k != "content_data"})
    components = content_service.parse_components(payload.get("content_data"))
    return form, components


@bp.get("/page-builder")
@require_permission("page_view")
def list_pages():
    params = ListParams.from_request()
    rows, meta = apply_listing(
        Page.query,
        Page,
        params,
        search=("title", "slug"),
        sortable={"title": Page.title, "created_at": Page.created_at, "updated_at": Page.updated_at},
    )
    return json_list([p.as_dict(full=False) for p in rows], meta)


@bp.get("/page-builder/edit/<int:page_id>")
@require_permission("page_view")
def edit_page(page_id: int):
    return json_ok(_get_or_404(Page, page_id, "Page").as_dict())


@bp.post("/page-builder/create")
@require_permission("page_create")
def create_page():
    form, components = _page_form_and_components()
    page = content_service.save_page(form, components)
    log.info("Page %s (/%s) created", page.id, page.slug)
    return json_ok(page.as_dict(), status=201, message="Page created successfully")


@bp.put("/page-builder/update/<int:page_id>")
@require_permission("page_edit")
def update_page(page_id: int):
    page = _get_or_404(Page, page_id, "Page")
    form, components = _page_form_and_components()
    content_service.save_page(form, components, page)
    return json_ok(page.as_dict(), message="Page updated successfully")


@bp.delete("/page-builder/delete/<int:page_id>")
@require_permission("page_delete")
def delete_page(page_id: int):
    page = _get_or_404(Page, page_id, "Page")
    db.session.delete(page)
    db.session.commit()
    return json_ok(None, message="Page deleted successfully")


# ─────────────────────────────────────────────────────────────
# Image upload
# ─────────────────────────────────────────────────────────────
@bp.post("/upload/image")
def upload_image():
    path = _uploaded_image()
    if path is None:
        raise ValidationError(["Image is required"], fields={"image": ["Image is required"]})
    return json_ok({"path": path, "url": request.host_url.rstrip("/") + path}, status=201, message="Image uploaded")


@bp.post("/upload/image/delete")
def delete_image():
    path = str(request_payload().get("path") or "").strip()
    if not path:
        raise ValidationError(["Image path is required"], fields={"path": ["Image path is required"]})
    removed = delete_upload(path)
    return json_ok({"deleted": removed}, message="Image deleted" if removed else "Image not found")
