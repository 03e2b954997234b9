from __future__ import annotations

from datetime import timedelta

import pytest

from hopefund.extensions import db, get_mail_env
from hopefund.models import User, VerificationCode
from hopefund.models.mixins import utcnow
from hopefund.services import auth as auth_service

from .conftest import PASSWORD, bearer

CODE = "123456"


@pytest.fixture()
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(auth_service, "_generate_code", lambda: CODE)
    monkeypatch.setattr(
        auth_service,
        "send_email_async",
        lambda app, subject, recipients, **kw: sent.append({"subject": subject, "to": recipients, **kw}),
    )
    return sent


def _register(client, email="new@example.com", password="password123"):
    client.post("/api/email-verification", json={"email": email})
    client.post("/api/code-verification", json={"email": email, "code": CODE})
    return client.post(
        "/api/registration",
        json={"name": "New Donor", "email": email, "password": password, "password_confirmation": password},
    )


# ─────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────
def test_registration_flow(client, outbox):
    resp = client.post("/api/email-verification", json={"email": "New@Example.com"})
    assert resp.status_code == 200
    assert outbox[0]["to"] == ["new@example.com"]
    assert outbox[0]["context"]["code"] == CODE
    assert outbox[0]["context"]["purpose"] == "register"
    assert outbox[0]["text_template"] == "verification_code.txt"

    early = client.post(
        "/api/registration",
        json={"name": "New Donor", "email": "new@example.com", "password": "password123", "password_confirmation": "password123"},
    )
    assert early.status_code == 422
    assert early.get_json()["error"]["message"] == "Please verify your email first"

    wrong = client.post("/api/code-verification", json={"email": "new@example.com", "code": "000000"})
    assert wrong.status_code == 422
    assert wrong.get_json()["error"]["fields"]["code"] == ["Invalid or expired verification code"]

    ok = client.post("/api/code-verification", json={"email": "new@example.com", "code": CODE})
    assert ok.get_json()["data"] == {"verified": True}

    resp = client.post(
        "/api/registration",
        json={"name": "New Donor", "email": "new@example.com", "password": "password123", "password_confirmation": "password123"},
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["token_type"] == "Bearer"
    assert data["user"]["email_verified"] is True

    again = client.post("/api/email-verification", json={"email": "new@example.com"})
    assert again.status_code == 409


def test_registration_form_rules(client):
    resp = client.post(
        "/api/registration",
        json={"name": "N", "email": "x@example.com", "password": "short", "password_confirmation": "other"},
    )
    assert resp.status_code == 422
    errors = resp.get_json()["error"]["errors"]
    assert "Name must be at least 2 characters long" in errors
    assert "Password must be at least 8 characters long" in errors
    assert "Passwords do not match" in errors

    resp = client.post("/api/code-verification", json={"email": "x@example.com", "code": "12ab"})
    assert resp.get_json()["error"]["errors"] == ["Verification code must be 6 digits"]


def test_code_is_locked_after_too_many_attempts(client, outbox):
    client.post("/api/email-verification", json={"email": "new@example.com"})
    for _ in range(5):
        client.post("/api/code-verification", json={"email": "new@example.com", "code": "999999"})
    resp = client.post("/api/code-verification", json={"email": "new@example.com", "code": CODE})
    assert resp.status_code == 422


def test_expired_code_is_rejected(app, client, outbox):
    client.post("/api/email-verification", json={"email": "new@example.com"})
    with app.app_context():
        record = VerificationCode.query.filter_by(email="new@example.com").one()
        record.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()
    resp = client.post("/api/code-verification", json={"email": "new@example.com", "code": CODE})
    assert resp.status_code == 422


def test_new_code_retires_the_old_one(app, client, outbox):
    client.post("/api/email-verification", json={"email": "new@example.com"})
    client.post("/api/email-verification", json={"email": "new@example.com"})
    with app.app_context():
        codes = VerificationCode.query.filter_by(email="new@example.com").order_by(VerificationCode.id).all()
        assert [c.consumed_at is not None for c in codes] == [True, False]
        assert codes[1].code_hash != CODE


# ─────────────────────────────────────────────────────────────
# Login / profile / passwords
# ─────────────────────────────────────────────────────────────
def test_login(client, donor):
    resp = client.post("/api/login", json={"email": "DANA@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["user"]["email"] == donor["email"]

    resp = client.post("/api/login", json={"email": donor["email"], "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["message"] == "Invalid email or password"


def test_disabled_donor_cannot_log_in_or_use_token(client, super_admin, donor):
    resp = client.patch(
        f"/api/admin/v1/users/status/{donor['id']}",
        json={"status": 0},
        headers=bearer(super_admin["token"]),
    )
    assert resp.get_json()["message"] == "User disabled"

    resp = client.post("/api/login", json={"email": donor["email"], "password": PASSWORD})
    assert resp.status_code == 401
    assert "disabled" in resp.get_json()["error"]["message"]
    assert client.get("/api/profile", headers=bearer(donor["token"])).status_code == 401


def test_profile_read_and_update(client, donor):
    h = bearer(donor["token"])
    data = client.get("/api/profile", headers=h).get_json()["data"]
    assert data["summary"] == {"donations": 0, "total_donated": 0.0, "last_donation_at": None}

    resp = client.put("/api/profile", json={"name": "Dana D. Donor", "country": "Chile"}, headers=h)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["country"] == "Chile"
    assert client.get("/api/profile").status_code == 401


def test_change_password(client, donor):
    h = bearer(donor["token"])
    resp = client.post("/api/change-password", json={"current_password": "wrong-one", "new_password": "brand-new-pass"}, headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Current password is incorrect"

    resp = client.post("/api/change-password", json={"current_password": PASSWORD, "new_password": PASSWORD}, headers=h)
    assert resp.get_json()["error"]["errors"] == ["New password must be different from current password"]

    resp = client.post("/api/change-password", json={"current_password": PASSWORD, "new_password": "brand-new-pass"}, headers=h)
    assert resp.status_code == 200
    assert client.post("/api/login", json={"email": donor["email"], "password": "brand-new-pass"}).status_code == 200


def test_donor_forgot_password(client, donor, outbox):
    resp = client.post("/api/forgot-password/email-verification", json={"email": "ghost@example.com"})
    assert resp.status_code == 200
    assert outbox == []

    client.post("/api/forgot-password/email-verification", json={"email": donor["email"]})
    assert outbox[0]["context"]["purpose"] == "reset_user"

    reset = {"email": donor["email"], "password": "reset-pass-123", "password_confirmation": "reset-pass-123"}
    assert client.post("/api/forgot-password/reset-password", json=reset).status_code == 422

    client.post("/api/forgot-password/code-verification", json={"email": donor["email"], "code": CODE})
    assert client.post("/api/forgot-password/reset-password", json=reset).status_code == 200
    # the verified code is single use
    assert client.post("/api/forgot-password/reset-password", json=reset).status_code == 422

    assert client.post("/api/login", json={"email": donor["email"], "password": "reset-pass-123"}).status_code == 200


# ─────────────────────────────────────────────────────────────
# Admin side
# ─────────────────────────────────────────────────────────────
def test_admin_login_and_me(client, editor):
    resp = client.post("/api/admin/v1/login", json={"email": editor["email"], "password": PASSWORD})
    assert resp.status_code == 200
    token = resp.get_json()["data"]["access_token"]

    me = client.get("/api/admin/v1/me", headers=bearer(token)).get_json()["data"]
    assert me["admin"]["email"] == editor["email"]
    assert me["permissions"]["modules"]["faq"] == ["create", "view"]
    assert client.post("/api/admin/v1/logout", headers=bearer(token)).status_code == 200


def test_donor_credentials_do_not_open_admin_login(client, donor):
    resp = client.post("/api/admin/v1/login", json={"email": donor["email"], "password": PASSWORD})
    assert resp.status_code == 401


def test_admin_profile_access(client, editor, super_admin):
    h = bearer(editor["token"])
    resp = client.put("/api/admin/v1/profile/me", json={"name": "Eddie Editor", "phone": "555-0101"}, headers=h)
    assert resp.get_json()["data"]["name"] == "Eddie Editor"

    assert client.get(f"/api/admin/v1/profile/{editor['id']}", headers=h).status_code == 200
    assert client.get(f"/api/admin/v1/profile/{super_admin['id']}", headers=h).status_code == 403
    assert client.get(f"/api/admin/v1/profile/{editor['id']}", headers=bearer(super_admin["token"])).status_code == 200


def test_admin_forgot_password_uses_its_own_codes(client, editor, outbox):
    client.post("/api/admin/v1/forgot-password/email-verification", json={"email": editor["email"]})
    assert outbox[0]["context"]["purpose"] == "reset_admin"

    # a donor-side verification does not count for the admin reset
    resp = client.post("/api/forgot-password/code-verification", json={"email": editor["email"], "code": CODE})
    assert resp.status_code == 422

    client.post("/api/admin/v1/forgot-password/code-verification", json={"email": editor["email"], "code": CODE})
    resp = client.post(
        "/api/admin/v1/forgot-password/reset-password",
        json={"email": editor["email"], "password": "admin-reset-1", "password_confirmation": "admin-reset-1"},
    )
    assert resp.status_code == 200
    login = client.post("/api/admin/v1/login", json={"email": editor["email"], "password": "admin-reset-1"})
    assert login.status_code == 200


def test_admin_resets_donor_password(client, super_admin, donor):
    resp = client.patch(
        "/api/admin/v1/users/reset-password",
        json={"user_id": donor["id"], "password": "from-support-1"},
        headers=bearer(super_admin["token"]),
    )
    assert resp.status_code == 200
    assert client.post("/api/login", json={"email": donor["email"], "password": "from-support-1"}).status_code == 200


def test_dashboard_totals(client, super_admin, donor, make_event):
    make_event()
    data = client.get("/api/admin/v1/dashboard", headers=bearer(super_admin["token"])).get_json()["data"]
    assert data["totals"]["registered_users"] == 1
    assert data["totals"]["active_events"] == 1
    assert data["totals"]["total_raised"] == 0.0
    assert "recent_donations" in data


# ─────────────────────────────────────────────────────────────
# Email templates
# ─────────────────────────────────────────────────────────────
def test_verification_email_templates_render():
    env = get_mail_env()
    text = env.get_template("verification_code.txt").render(code=CODE, ttl=15, brand="HopeFund", purpose="register")
    assert CODE in text
    assert "verify your email" in text

    html = env.get_template("verification_code.html").render(code=CODE, ttl=15, brand="HopeFund", purpose="reset_user")
    assert CODE in html


def test_users_listing_hides_deleted(app, client, super_admin, donor):
    with app.app_context():
        ghost = User(name="Gone Person", email="gone@example.com", deleted=True)
        ghost.set_password("whatever-123")
        db.session.add(ghost)
        db.session.commit()
    body = client.get("/api/admin/v1/users", headers=bearer(super_admin["token"])).get_json()
    assert [u["email"] for u in body["data"]] == [donor["email"]]
