"""
Admin-managed storefront content: FAQs, home sliders, navigation menus, blogs
and page-builder pages.

FAQ and Slider orderings are unique across the table; Menu orderings are
unique among siblings (same parent).
"""

from __future__ import annotations

from typing import Any, Dict

from hopefund.extensions import db

from .mixins import StatusMixin, TimestampMixin, iso

BLOG_STATUSES = ("draft", "published", "archived")
MENU_POSITIONS = ("header", "footer")
PAGE_COMPONENT_TYPES = ("hero", "text", "image", "cta", "testimonial", "columns", "spacer", "video", "form")


class FAQ(db.Model, TimestampMixin, StatusMixin):
    __tablename__ = "faqs"

    id = db.Column(db.Integer, primary_key=True)
    question = db.Column(db.String(500), nullable=False)
    answer = db.Column(db.Text, nullable=False)
    ordering = db.Column(db.Integer, nullable=False, index=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "ordering": self.ordering,
            "status": self.status,
            "created_at": iso(self.created_at),
        }


class Slider(db.Model, TimestampMixin, StatusMixin):
    __tablename__ = "sliders"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    subtitle = db.Column(db.String(500), nullable=True)
    image = db.Column(db.String(500), nullable=False)
    button_text = db.Column(db.String(80), nullable=True)
    button_link = db.Column(db.String(500), nullable=True)
    ordering = db.Column(db.Integer, nullable=False, index=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "image": self.image,
            "button_text": self.button_text,
            "button_link": self.button_link,
            "ordering": self.ordering,
            "status": self.status,
            "created_at": iso(self.created_at),
        }


class Menu(db.Model, TimestampMixin, StatusMixin):
    __tablename__ = "menus"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(160), nullable=False, index=True)
    url = db.Column(db.String(500), nullable=True)
    position = db.Column(db.String(20), default="header", nullable=False)
    ordering = db.Column(db.Integer, nullable=False)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey("menus.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    children = db.relationship(
        "Menu",
        backref=db.backref("parent", remote_side=[id]),
        order_by="Menu.ordering",
    )

    def as_dict(self, with_children: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "url": self.url,
            "position": self.position,
            "ordering": self.ordering,
            "parent_id": self.parent_id,
            "status": self.status,
        }
        if with_children:
            data["children"] = [
                c.as_dict(with_children=True) for c in self.children if c.is_enabled
            ]
        return data


class Blog(db.Model, TimestampMixin):
    __tablename__ = "blogs"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(280), unique=True, nullable=False, index=True)
    excerpt = db.Column(db.String(300), nullable=True)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(120), nullable=True, index=True)
    tags = db.Column(db.JSON, nullable=True, doc="List of tag strings")
    featured_image = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(20), default="draft", nullable=False, index=True)
    seo_title = db.Column(db.String(60), nullable=True)
    meta_description = db.Column(db.String(160), nullable=True)
    published_at = db.Column(db.DateTime, nullable=True, index=True)

    author_id = db.Column(db.Integer, db.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    author = db.relationship("Admin", lazy="joined")

    @classmethod
    def published(cls):
        return cls.query.filter(cls.status == "published")

    def as_dict(self, full: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "category": self.category,
            "tags": list(self.tags or []),
            "featured_image": self.featured_image,
            "status": self.status,
            "seo_title": self.seo_title,
            "meta_description": self.meta_description,
            "author": self.author.name if self.author else None,
            "published_at": iso(self.published_at),
            "created_at": iso(self.created_at),
        }
        if full:
            data["content"] = self.content
        return data


class Page(db.Model, TimestampMixin, StatusMixin):
    """A page-builder page: an ordered list of typed components rendered at /<slug>."""

    __tablename__ = "pages"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(280), unique=True, nullable=False, index=True)
    content_data = db.Column(db.JSON, nullable=False, default=list, doc="[{type, content, id?}, ...]")
    meta_title = db.Column(db.String(60), nullable=True)
    meta_description = db.Column(db.String(160), nullable=True)

    def as_dict(self, full: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "status": self.status,
            "components": len(self.content_data or []),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if full:
            data["content_data"] = list(self.content_data or [])
        return data
