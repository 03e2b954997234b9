from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable

import pytest

from hopefund import create_app
from hopefund.config import TestingConfig
from hopefund.extensions import db
from hopefund.models import Admin, Event, FundraisingCategory, Permission, Role, User
from hopefund.models.mixins import STATUS_ACTIVE, utcnow
from hopefund.security import issue_token
from hopefund.services.permissions import SUPER_ADMIN_ROLE, clear_permission_cache, sync_permissions

PASSWORD = "s3cret-pass"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    monkeypatch.delenv("DISABLE_BPS", raising=False)
    app = create_app(TestingConfig)
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    with app.app_context():
        sync_permissions()

    yield app

    with app.app_context():
        clear_permission_cache()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _role(name: str, permissions: Iterable[str] = ()) -> Role:
    role = Role.query.filter_by(name=name).first()
    if role is None:
        role = Role(name=name, status=STATUS_ACTIVE)
        db.session.add(role)
    if permissions:
        role.permissions = Permission.query.filter(Permission.name.in_(list(permissions))).all()
    return role


def make_admin(app, email: str, role_name: str, permissions: Iterable[str] = ()) -> dict:
    """Create an admin with the given role; returns plain data (id, email, token)."""
    with app.app_context():
        admin = Admin(name=email.split("@")[0].title(), email=email, status=STATUS_ACTIVE)
        admin.role = _role(role_name, permissions)
        admin.set_password(PASSWORD)
        db.session.add(admin)
        db.session.commit()
        return {
            "id": admin.id,
            "email": admin.email,
            "role_id": admin.role_id,
            "token": issue_token(admin)["access_token"],
        }


@pytest.fixture()
def super_admin(app):
    return make_admin(app, "root@example.com", SUPER_ADMIN_ROLE)


@pytest.fixture()
def editor(app):
    """Limited admin: can read and create FAQs and view events, nothing else."""
    return make_admin(app, "editor@example.com", "Editor", ["faq_view", "faq_create", "event_view"])


@pytest.fixture()
def plain_admin(app):
    """An `Admin`-tier role that may manage roles below it."""
    return make_admin(
        app,
        "manager@example.com",
        "Admin",
        ["role_view", "role_create", "role_edit", "role_delete", "admin_view", "admin_create", "admin_edit"],
    )


@pytest.fixture()
def donor(app):
    with app.app_context():
        user = User(name="Dana Donor", email="dana@example.com", country="Canada", email_verified_at=utcnow())
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return {"id": user.id, "email": user.email, "token": issue_token(user)["access_token"]}


@pytest.fixture()
def make_event(app):
    def _make(**overrides) -> int:
        today = date.today()
        fields = dict(
            title="Clean Water Drive",
            description="Wells for three villages.",
            location="Nairobi",
            start_date=today - timedelta(days=1),
            end_date=today + timedelta(days=30),
            price_cents=2500,
            target_amount_cents=1_000_000,
            status=STATUS_ACTIVE,
        )
        fields.update(overrides)
        with app.app_context():
            event = Event(**fields)
            db.session.add(event)
            db.session.commit()
            return event.id

    return _make


@pytest.fixture()
def category(app):
    with app.app_context():
        cat = FundraisingCategory(name="Medical", status=STATUS_ACTIVE)
        db.session.add(cat)
        db.session.commit()
        return cat.id
