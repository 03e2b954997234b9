from __future__ import annotations

import importlib

import pytest

from hopefund import create_app
from hopefund.config import TestingConfig
from hopefund.extensions import db
from hopefund.models import Permission, Role
from hopefund.services.permissions import SUPER_ADMIN_ROLE, all_required_permissions

from .conftest import bearer


def test_request_id_is_echoed_and_generated(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "abc123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "abc123"
    assert resp.get_json()["request_id"] == "abc123"

    resp = client.get("/healthz")
    assert len(resp.headers["X-Request-ID"]) == 32
    assert "X-Response-Time-ms" in resp.headers


def test_unknown_route_uses_json_error_envelope(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    body = resp.get_json()
    assert body["ok"] is False
    assert body["error"]["code"] == 404
    assert body["error"]["request_id"] == resp.headers["X-Request-ID"]


def test_service_error_envelope_for_validation(client):
    resp = client.post("/api/login", json={"email": "not-an-email"})
    assert resp.status_code == 422
    err = resp.get_json()["error"]
    assert err["type"] == "validation_error"
    assert "Please enter a valid email." in err["errors"]
    assert "Password is required" in err["errors"]
    assert set(err["fields"]) == {"email", "password"}


def test_admin_api_requires_token(client):
    resp = client.get("/api/admin/v1/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["type"] == "authentication_required"


def test_donor_token_cannot_reach_admin_api(client, donor):
    resp = client.get("/api/admin/v1/me", headers=bearer(donor["token"]))
    assert resp.status_code == 403
    assert resp.get_json()["error"]["message"] == "Admin access required."


def test_garbage_token_is_rejected(client):
    resp = client.get("/api/admin/v1/me", headers=bearer("not.a.jwt"))
    assert resp.status_code == 401


def test_health_reports_parts(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["parts"]["database"]["status"] == "ok"
    assert body["parts"]["stripe"]["mode"] == "demo"
    assert body["status"] == "ok"

    assert client.get("/health/ready").status_code == 200
    assert client.get("/health/live").get_json()["status"] == "ok"


def test_version_endpoint(client):
    body = client.get("/version").get_json()
    assert body["brand"] == "HopeFund"
    assert body["env"] == "testing"


def test_required_blueprint_cannot_be_disabled(monkeypatch):
    monkeypatch.setenv("DISABLE_BPS", "api")
    with pytest.raises(RuntimeError):
        create_app(TestingConfig)


def test_optional_blueprint_can_be_disabled(monkeypatch):
    monkeypatch.setenv("DISABLE_BPS", "health")
    app = create_app(TestingConfig)
    assert "health" not in app.blueprints
    assert "api" in app.blueprints


def test_config_resolves_by_name():
    app = create_app("testing")
    assert app.config["TESTING"] is True
    assert app.config["JWT_SECRET"] == app.config["SECRET_KEY"]


# ─────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────
def test_cli_sync_and_audit_permissions(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["hopefund", "sync-permissions"])
    assert result.exit_code == 0
    assert "0 permission(s) created" in result.output

    result = runner.invoke(args=["hopefund", "audit-permissions"])
    assert result.exit_code == 0
    assert "in sync" in result.output

    with app.app_context():
        db.session.add(Permission(name="legacy_thing"))
        db.session.commit()
        role = Role.query.filter_by(name=SUPER_ADMIN_ROLE).one()
        assert sorted(role.permission_names) == all_required_permissions()

    result = runner.invoke(args=["hopefund", "audit-permissions"])
    assert result.exit_code == 1
    assert "legacy_thing" in result.output


def test_cli_create_superadmin_then_login(app, client):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["hopefund", "create-superadmin", "--email", "Boss@Example.com", "--password", "longpassword"]
    )
    assert result.exit_code == 0, result.output

    resp = client.post("/api/admin/v1/login", json={"email": "boss@example.com", "password": "longpassword"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["permissions"]["is_super_admin"] is True
    assert data["token_type"] == "Bearer"


def test_cli_create_superadmin_rejects_short_password(app):
    result = app.test_cli_runner().invoke(
        args=["hopefund", "create-superadmin", "--email", "a@example.com", "--password", "short"]
    )
    assert result.exit_code != 0


def test_cli_seed_demo(app, client):
    result = app.test_cli_runner().invoke(args=["hopefund", "seed-demo", "--events", "3", "--donors", "2", "--seed", "7"])
    assert result.exit_code == 0, result.output

    faqs = client.get("/api/faqs").get_json()["data"]
    assert len(faqs) == 5
    events = client.get("/api/events?include_past=1").get_json()
    assert events["meta"]["total"] == 3


@pytest.mark.parametrize(
    "module",
    ["hopefund.models.content", "hopefund.models.donation", "hopefund.models.fund_request", "hopefund.models.user"],
)
def test_model_modules_keep_their_docstrings(module):
    assert importlib.import_module(module).__doc__.strip()
