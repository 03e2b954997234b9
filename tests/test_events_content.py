from __future__ import annotations

import io
from datetime import date, timedelta

from hopefund.extensions import db
from hopefund.models import Donation, DonationItem
from hopefund.models.mixins import utcnow

from .conftest import bearer

TODAY = date.today()


def _event_payload(**overrides):
    data = {
        "title": "Winter coats",
        "description": "Warm coats for children this winter.",
        "location": "Oslo",
        "start_date": TODAY.isoformat(),
        "end_date": (TODAY + timedelta(days=20)).isoformat(),
        "price": "15",
        "target_amount": "3000",
        "status": 1,
    }
    data.update(overrides)
    return data


def _paid_donation(app, event_id, amount_cents, email, status="succeeded"):
    with app.app_context():
        donation = Donation(
            donor_name="Sam Giver",
            donor_email=email,
            amount_cents=amount_cents,
            tip_cents=100,
            status=status,
            paid_at=utcnow() if status == "succeeded" else None,
        )
        donation.items.append(DonationItem(event_id=event_id, title="Winter coats", quantity=1, unit_amount_cents=amount_cents))
        db.session.add(donation)
        db.session.commit()
        return donation.id


# ─────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────
def test_create_event_and_validation(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post("/api/admin/v1/events", json=_event_payload(), headers=h)
    assert resp.status_code == 201, resp.get_json()
    event = resp.get_json()["data"]
    assert event["price"] == 15.0
    assert event["target_amount"] == 3000.0
    assert event["progress"] == 0.0

    past = _event_payload(start_date=(TODAY - timedelta(days=9)).isoformat(), end_date=(TODAY - timedelta(days=2)).isoformat())
    resp = client.post("/api/admin/v1/events", json=past, headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "End date cannot be in the past"

    resp = client.post("/api/admin/v1/events", json=_event_payload(price="0", is_fixed_donation=True), headers=h)
    assert resp.status_code == 422


def test_create_event_with_image_upload(client, super_admin):
    data = {k: str(v) for k, v in _event_payload().items()}
    data["image"] = (io.BytesIO(b"\x89PNG fake"), "coats.png")
    resp = client.post(
        "/api/admin/v1/events",
        data=data,
        content_type="multipart/form-data",
        headers=bearer(super_admin["token"]),
    )
    assert resp.status_code == 201, resp.get_json()
    image = resp.get_json()["data"]["feature_image"]
    assert image.startswith("/uploads/images/coats-")
    assert client.get(image).status_code == 200


def test_archived_filter_and_soft_delete(client, super_admin, make_event):
    h = bearer(super_admin["token"])
    live = make_event(title="Live one")
    make_event(title="Old one", start_date=TODAY - timedelta(days=40), end_date=TODAY - timedelta(days=10))

    archived = client.get("/api/admin/v1/events?archived=1", headers=h).get_json()["data"]
    assert [e["title"] for e in archived] == ["Old one"]
    assert archived[0]["is_archived"] is True

    current = client.get("/api/admin/v1/events?archived=0", headers=h).get_json()["data"]
    assert [e["title"] for e in current] == ["Live one"]

    assert client.delete(f"/api/admin/v1/events/{live}", headers=h).status_code == 200
    assert client.get(f"/api/admin/v1/events/{live}", headers=h).status_code == 404
    assert client.get(f"/api/events/{live}").status_code == 404


def test_event_status_hides_from_storefront(client, super_admin, make_event):
    event_id = make_event()
    assert client.get("/api/events").get_json()["meta"]["total"] == 1

    resp = client.patch(f"/api/admin/v1/events/status/{event_id}", json={"status": 0}, headers=bearer(super_admin["token"]))
    assert resp.status_code == 200
    assert client.get("/api/events").get_json()["meta"]["total"] == 0


def test_storefront_event_filters(client, make_event):
    make_event(title="Featured well", is_featured=True)
    make_event(title="Library books")
    make_event(title="Past marathon", start_date=TODAY - timedelta(days=20), end_date=TODAY - timedelta(days=5))

    def titles(qs):
        return [e["title"] for e in client.get(f"/api/events{qs}").get_json()["data"]]

    assert titles("?featured=1") == ["Featured well"]
    assert sorted(titles("")) == ["Featured well", "Library books"]
    assert len(titles("?include_past=1")) == 3
    assert titles("?q=library") == ["Library books"]


def test_event_donation_stats_and_export(app, client, super_admin, make_event):
    h = bearer(super_admin["token"])
    event_id = make_event()
    _paid_donation(app, event_id, 2500, "a@example.com")
    _paid_donation(app, event_id, 1500, "b@example.com")
    _paid_donation(app, event_id, 9900, "c@example.com", status="pending")

    stats = client.get(f"/api/admin/v1/events/{event_id}/stats", headers=h).get_json()["data"]
    assert stats["donations"] == 2
    assert stats["donors"] == 2
    assert stats["raised_amount"] == 40.0

    listing = client.get(f"/api/admin/v1/events/{event_id}/donations", headers=h).get_json()
    assert listing["meta"]["total"] == 3
    assert listing["stats"]["donations"] == 2
    assert sorted(d["event_amount"] for d in listing["data"]) == [15.0, 25.0, 99.0]

    resp = client.get(f"/api/admin/v1/events/{event_id}/donations/export", headers=h)
    assert resp.mimetype == "text/csv"
    assert f"event-{event_id}-donations.csv" in resp.headers["Content-Disposition"]
    lines = resp.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("Invoice,Date,Donor,Email")
    assert len(lines) == 4
    assert lines[1].startswith("HF-000001,")
    assert ",25.00,26.00,USD,succeeded" in lines[1]

    receipt = client.get("/api/admin/v1/donations/1/receipt", headers=h).get_json()["data"]
    assert receipt["formatted_total"] == "$26.00"


def test_multi_event_donation_reports_each_event_share(app, client, super_admin, make_event):
    h = bearer(super_admin["token"])
    wells = make_event(title="Wells")
    books = make_event(title="Books")
    with app.app_context():
        donation = Donation(donor_name="Sam", donor_email="s@example.com", amount_cents=5000, status="succeeded", paid_at=utcnow())
        donation.items.append(DonationItem(event_id=wells, title="Wells", quantity=1, unit_amount_cents=1000))
        donation.items.append(DonationItem(event_id=books, title="Books", quantity=2, unit_amount_cents=2000))
        db.session.add(donation)
        db.session.commit()

    assert client.get(f"/api/admin/v1/events/{wells}/stats", headers=h).get_json()["data"]["raised_amount"] == 10.0
    listing = client.get(f"/api/admin/v1/events/{wells}/donations", headers=h).get_json()
    assert listing["data"][0]["event_amount"] == 10.0
    assert listing["data"][0]["amount"] == 50.0

    rows = client.get(f"/api/admin/v1/events/{wells}/donations/export", headers=h).get_data(as_text=True).splitlines()
    assert ",10.00,50.00,USD,succeeded" in rows[1]
    rows = client.get(f"/api/admin/v1/events/{books}/donations/export", headers=h).get_data(as_text=True).splitlines()
    assert ",40.00,50.00,USD,succeeded" in rows[1]


# ─────────────────────────────────────────────────────────────
# Sliders and uploads
# ─────────────────────────────────────────────────────────────
def test_slider_requires_image_and_unique_ordering(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post("/api/admin/v1/sliders/create", json={"title": "Spring appeal", "ordering": 1, "status": 1}, headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Image is required for new sliders"

    resp = client.post(
        "/api/admin/v1/sliders/create",
        data={"title": "Spring appeal", "ordering": "1", "status": "1", "image": (io.BytesIO(b"GIF89a"), "hero.gif")},
        content_type="multipart/form-data",
        headers=h,
    )
    assert resp.status_code == 201, resp.get_json()
    slider = resp.get_json()["data"]
    assert slider["image"].startswith("/uploads/images/hero-")

    resp = client.post(
        "/api/admin/v1/sliders/create",
        json={"title": "Summer appeal", "ordering": 1, "status": 1, "image": "https://cdn.example.com/s.png"},
        headers=h,
    )
    assert resp.status_code == 422

    resp = client.delete(f"/api/admin/v1/sliders/delete/{slider['id']}", headers=h)
    assert resp.status_code == 200
    assert client.get(slider["image"]).status_code == 404


def test_image_upload_and_delete(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post(
        "/api/admin/v1/upload/image",
        data={"image": (io.BytesIO(b"fake"), "photo.JPG")},
        content_type="multipart/form-data",
        headers=h,
    )
    assert resp.status_code == 201
    path = resp.get_json()["data"]["path"]
    assert path.endswith(".jpg")

    assert client.post("/api/admin/v1/upload/image/delete", json={"path": path}, headers=h).get_json()["data"] == {"deleted": True}
    assert client.post("/api/admin/v1/upload/image/delete", json={"path": path}, headers=h).get_json()["data"] == {"deleted": False}
    assert client.post("/api/admin/v1/upload/image/delete", json={"path": "/uploads/../secrets"}, headers=h).status_code == 422

    resp = client.post(
        "/api/admin/v1/upload/image",
        data={"image": (io.BytesIO(b"x"), "notes.txt")},
        content_type="multipart/form-data",
        headers=h,
    )
    assert resp.status_code == 422


# ─────────────────────────────────────────────────────────────
# Settings, about us, contact
# ─────────────────────────────────────────────────────────────
def test_settings_are_grouped_for_the_site(client, super_admin):
    h = bearer(super_admin["token"])
    client.post("/api/admin/v1/settings/create", json={"key": "email", "value": "hello@hopefund.org", "type": "contact"}, headers=h)
    client.post("/api/admin/v1/settings/create", json={"key": "site_name", "value": "HopeFund"}, headers=h)

    resp = client.post("/api/admin/v1/settings/create", json={"key": "site_name", "value": "Other"}, headers=h)
    assert resp.status_code == 422

    assert client.get("/api/settings").get_json()["data"] == {
        "contact": {"email": "hello@hopefund.org"},
        "general": {"site_name": "HopeFund"},
    }
    assert client.get("/api/contact-us").get_json()["data"] == {"email": "hello@hopefund.org"}


def test_about_us(client, super_admin):
    h = bearer(super_admin["token"])
    assert client.post("/api/admin/v1/about-us", json={"content": "Too short"}, headers=h).status_code == 422

    text = "We connect donors with causes that matter."
    assert client.post("/api/admin/v1/about-us", json={"content": text}, headers=h).status_code == 200
    assert client.get("/api/about-us").get_json()["data"]["content"] == text


def test_contact_messages_round_trip(client, super_admin):
    resp = client.post(
        "/api/contact-us",
        json={"name": "Lee", "email": "lee@example.com", "subject": "Volunteering", "message": "How can I volunteer on weekends?"},
    )
    assert resp.status_code == 201
    message_id = resp.get_json()["data"]["id"]

    resp = client.post("/api/customer-inquiry", json={"name": "Lee", "email": "bad", "subject": "x", "message": "short"})
    assert resp.status_code == 422

    h = bearer(super_admin["token"])
    listing = client.get("/api/admin/v1/contact-us?kind=contact", headers=h).get_json()
    assert listing["meta"]["total"] == 1

    resp = client.put(
        f"/api/admin/v1/contact-us/update/{message_id}",
        json={"status": "handled", "admin_note": "Replied by email"},
        headers=h,
    )
    data = resp.get_json()["data"]
    assert data["status"] == "handled"
    assert data["handled_at"] is not None
