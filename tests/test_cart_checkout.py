from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
import stripe

from hopefund.errors import NotFound, ValidationError
from hopefund.extensions import db
from hopefund.forms.checkout import DonationForm
from hopefund.models import Donation, StripeEvent
from hopefund.services import cart as cart_ops
from hopefund.services import donations as donation_service
from hopefund.services.payments import GENERIC_PAYMENT_ERROR, payment_error_message

from .conftest import bearer


def _item(event_id, price_cents=1000, quantity=1, fixed=False):
    return {"event_id": event_id, "title": f"Event {event_id}", "price_cents": price_cents,
            "quantity": quantity, "is_fixed_donation": fixed}


# ─────────────────────────────────────────────────────────────
# Pure cart operations
# ─────────────────────────────────────────────────────────────
def test_add_item_bumps_existing_quantity():
    items = cart_ops.add_item([], _item(1))
    items = cart_ops.add_item(items, _item(1, price_cents=1500, quantity=2))
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    assert items[0]["price_cents"] == 1500
    assert cart_ops.cart_total_cents(items) == 4500


def test_fixed_donation_price_cannot_change():
    items = cart_ops.add_item([], _item(1, price_cents=2000, fixed=True))
    items = cart_ops.add_item(items, _item(1, price_cents=5, fixed=True))
    assert items[0]["price_cents"] == 2000
    assert cart_ops.set_price(items, 1, 9999)[0]["price_cents"] == 2000


def test_cart_operations_reject_bad_input():
    items = [_item(1)]
    with pytest.raises(ValidationError):
        cart_ops.set_quantity(items, 1, 0)
    with pytest.raises(NotFound):
        cart_ops.set_quantity(items, 2, 1)
    with pytest.raises(ValidationError):
        cart_ops.set_price(items, 1, 0)
    assert cart_ops.remove_item(items, 1) == []
    assert items == [_item(1)]


def test_item_public_uses_dollars():
    assert cart_ops.item_public(_item(7, price_cents=1250, quantity=2)) == {
        "event_id": 7,
        "title": "Event 7",
        "image": None,
        "price": 12.5,
        "quantity": 2,
        "is_fixed_donation": False,
        "line_total": 25.0,
    }


@pytest.mark.parametrize(
    "code, decline, expected",
    [
        ("card_declined", None, "Your card was declined. Please try a different card."),
        ("card_declined", "insufficient_funds", "Your card has insufficient funds. Please try a different card."),
        ("something_new", None, GENERIC_PAYMENT_ERROR),
        (None, None, GENERIC_PAYMENT_ERROR),
    ],
)
def test_payment_error_message(code, decline, expected):
    assert payment_error_message(code, decline) == expected


# ─────────────────────────────────────────────────────────────
# Session cart over HTTP
# ─────────────────────────────────────────────────────────────
def test_cart_add_update_remove(client, make_event):
    event_id = make_event()

    body = client.post("/api/cart", json={"event_id": event_id, "quantity": 2}).get_json()["data"]
    assert body["count"] == 2
    assert body["total_amount"] == 50.0

    body = client.put(f"/api/cart/{event_id}", json={"quantity": 3, "price": "10"}).get_json()["data"]
    assert body["items"][0]["price"] == 10.0
    assert body["total_amount"] == 30.0

    assert client.get("/api/cart").get_json()["data"]["count"] == 3
    assert client.delete(f"/api/cart/{event_id}").get_json()["data"]["items"] == []
    assert client.delete(f"/api/cart/{event_id}").status_code == 404


def test_cart_custom_and_fixed_amounts(client, make_event):
    open_id = make_event(title="Open amount")
    fixed_id = make_event(title="Gala ticket", is_fixed_donation=True, price_cents=10_000)

    client.post("/api/cart", json={"event_id": open_id, "price": "12.50"})
    body = client.post("/api/cart", json={"event_id": fixed_id, "price": "1"}).get_json()["data"]
    prices = {i["title"]: i["price"] for i in body["items"]}
    assert prices == {"Open amount": 12.5, "Gala ticket": 100.0}
    assert body["total_amount"] == 112.5


def test_cart_rejects_ended_and_unknown_events(client, make_event):
    today = date.today()
    ended = make_event(start_date=today - timedelta(days=30), end_date=today - timedelta(days=1))

    resp = client.post("/api/cart", json={"event_id": ended})
    assert resp.status_code == 409
    assert client.post("/api/cart", json={"event_id": 9999}).status_code == 404
    assert client.post("/api/cart", json={"quantity": 1}).status_code == 422


# ─────────────────────────────────────────────────────────────
# Checkout (demo mode)
# ─────────────────────────────────────────────────────────────
def _checkout(client, event_id, quantity=3, tip="5", headers=None):
    client.post("/api/cart", json={"event_id": event_id, "quantity": quantity})
    resp = client.post("/api/stripe/payment-intent", json={"tip_amount": tip}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _webhook(client, event_id, etype, obj, headers=None):
    payload = json.dumps({"id": event_id, "type": etype, "data": {"object": obj}})
    return client.post("/api/stripe/webhook", data=payload, content_type="application/json", headers=headers)


@pytest.fixture()
def sent_mail(monkeypatch):
    sent = []
    monkeypatch.setattr(donation_service, "send_email_async", lambda app, subject, to, **kw: sent.append((subject, to, kw)))
    return sent


def test_stripe_config_reports_demo(client):
    data = client.get("/api/stripe/config").get_json()["data"]
    assert data["mode"] == "demo"
    assert data["min_amount"] == 1.0


def test_payment_intent_needs_cart_or_amount(client):
    resp = client.post("/api/stripe/payment-intent", json={})
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Your cart is empty"

    resp = client.post("/api/stripe/payment-intent", json={"total_amount": "0.50"})
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Minimum donation is $1.00"


def test_demo_checkout_records_pending_donation(client, make_event):
    event_id = make_event()
    intent = _checkout(client, event_id)
    assert intent["demo"] is True
    assert intent["amount"] == 80.0
    assert intent["payment_intent_id"].startswith("pi_demo_")

    resp = client.post(
        "/api/donations",
        json={"payment_intent_id": intent["payment_intent_id"], "name": "Ada Lovelace", "email": "ADA@example.com"},
    )
    assert resp.status_code == 201, resp.get_json()
    donation = resp.get_json()["data"]
    assert donation["status"] == "pending"
    assert donation["invoice_number"] == "HF-000001"
    assert donation["donor_email"] == "ada@example.com"
    assert donation["amount"] == 75.0
    assert donation["tip"] == 5.0
    assert donation["display_name"] == "Ada L."
    assert [i["quantity"] for i in donation["items"]] == [3]

    assert client.get("/api/cart").get_json()["data"]["items"] == []


def test_donation_tip_comes_from_the_checkout_intent(client, make_event):
    event_id = make_event()
    intent = _checkout(client, event_id, quantity=1, tip="2")
    resp = client.post(
        "/api/donations",
        json={"payment_intent_id": intent["payment_intent_id"], "name": "Ada", "email": "a@example.com", "tip_amount": "40"},
    )
    assert resp.status_code == 201, resp.get_json()
    donation = resp.get_json()["data"]
    assert donation["tip"] == 2.0
    assert donation["amount"] == 25.0
    assert not hasattr(DonationForm, "tip_amount")


def test_donation_must_match_checkout_intent(client, make_event):
    event_id = make_event()
    _checkout(client, event_id)
    resp = client.post("/api/donations", json={"payment_intent_id": "pi_someone_else", "name": "Ada", "email": "a@example.com"})
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Payment intent does not match this checkout"


def test_donation_needs_name_and_email_for_guests(client, make_event):
    intent = _checkout(client, make_event())
    resp = client.post("/api/donations", json={"payment_intent_id": intent["payment_intent_id"]})
    assert resp.status_code == 422
    assert resp.get_json()["error"]["errors"] == ["Name is required", "Email is required"]


def test_signed_in_donor_sees_history(client, make_event, donor):
    h = bearer(donor["token"])
    intent = _checkout(client, make_event(), quantity=1, tip="0", headers=h)
    resp = client.post("/api/donations", json={"payment_intent_id": intent["payment_intent_id"]}, headers=h)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["donor_email"] == donor["email"]

    history = client.get("/api/donations", headers=h).get_json()
    assert history["meta"]["total"] == 1
    donation_id = history["data"][0]["id"]
    detail = client.get(f"/api/donations/{donation_id}", headers=h).get_json()["data"]
    assert detail["formatted_total"] == "$25.00"

    assert client.get("/api/donations").status_code == 401


# ─────────────────────────────────────────────────────────────
# Webhook
# ─────────────────────────────────────────────────────────────
def test_webhook_marks_success_once(app, client, make_event, sent_mail):
    event_id = make_event()
    intent = _checkout(client, event_id)
    pi = intent["payment_intent_id"]
    client.post("/api/donations", json={"payment_intent_id": pi, "name": "Ada Lovelace", "email": "ada@example.com"})

    obj = {"id": pi, "status": "succeeded"}
    assert _webhook(client, "evt_1", "payment_intent.succeeded", obj).get_json()["data"]["outcome"] == "processed"
    assert _webhook(client, "evt_1", "payment_intent.succeeded", obj).get_json()["data"]["outcome"] == "duplicate"
    # a second, distinct delivery must not double count
    assert _webhook(client, "evt_2", "payment_intent.succeeded", obj).get_json()["data"]["outcome"] == "processed"

    event = client.get(f"/api/events/{event_id}").get_json()["data"]
    assert event["raised_amount"] == 75.0

    with app.app_context():
        donation = Donation.query.filter_by(provider_intent_id=pi).one()
        assert donation.status == "succeeded"
        assert donation.paid_at is not None
        assert StripeEvent.query.count() == 2

    assert len(sent_mail) == 1
    subject, to, kw = sent_mail[0]
    assert "HF-000001" in subject
    assert to == ["ada@example.com"]
    assert kw["context"]["total"] == "$80.00"


def test_webhook_failure_and_cancel(app, client, make_event, sent_mail):
    intent = _checkout(client, make_event())
    pi = intent["payment_intent_id"]
    client.post("/api/donations", json={"payment_intent_id": pi, "name": "Ada Lovelace", "email": "ada@example.com"})

    failed = {"id": pi, "last_payment_error": {"code": "card_declined", "decline_code": "insufficient_funds"}}
    assert _webhook(client, "evt_f", "payment_intent.payment_failed", failed).get_json()["data"]["outcome"] == "processed"

    with app.app_context():
        donation = Donation.query.filter_by(provider_intent_id=pi).one()
        assert donation.status == "failed"
        assert donation.failure_code == "insufficient_funds"
        assert donation.failure_message.startswith("Your card has insufficient funds")

    _webhook(client, "evt_c", "payment_intent.canceled", {"id": pi})
    with app.app_context():
        assert Donation.query.filter_by(provider_intent_id=pi).one().status == "failed"
    assert sent_mail == []


def test_webhook_unmatched_and_ignored(client):
    assert _webhook(client, "evt_u", "payment_intent.succeeded", {"id": "pi_unknown"}).get_json()["data"]["outcome"] == "unmatched"
    assert _webhook(client, "evt_i", "charge.refunded", {"id": "ch_1", "payment_intent": "pi_x"}).get_json()["data"]["outcome"] == "ignored"

    resp = client.post("/api/stripe/webhook", data="not json", content_type="application/json")
    assert resp.status_code == 422


def _signature(secret: str, payload: str, timestamp: int) -> str:
    mac = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={mac}"


def test_webhook_signature_is_verified_when_secret_set(app, client):
    app.config["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
    payload = json.dumps({"id": "evt_s", "type": "payment_intent.created", "data": {"object": {"id": "pi_s"}}})

    resp = client.post(
        "/api/stripe/webhook",
        data=payload,
        content_type="application/json",
        headers={"Stripe-Signature": "t=1,v1=deadbeef"},
    )
    assert resp.status_code == 422
    assert resp.get_json()["error"]["message"] == "Invalid webhook signature"

    resp = client.post(
        "/api/stripe/webhook",
        data=payload,
        content_type="application/json",
        headers={"Stripe-Signature": _signature("whsec_test_secret", payload, int(time.time()))},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["outcome"] == "ignored"


# ─────────────────────────────────────────────────────────────
# Live Stripe path (mocked client)
# ─────────────────────────────────────────────────────────────
@pytest.fixture()
def live_stripe(app):
    app.config.update(DEMO_MODE=False, STRIPE_SECRET_KEY="sk_test_123", STRIPE_PUBLISHABLE_KEY="pk_test_123")
    return app


def test_card_error_maps_to_friendly_message(client, make_event, live_stripe, monkeypatch):
    def declined(**kwargs):
        raise stripe.CardError("Your card was declined.", param=None, code="card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "create", declined)
    client.post("/api/cart", json={"event_id": make_event()})
    resp = client.post("/api/stripe/payment-intent", json={})
    assert resp.status_code == 402
    err = resp.get_json()["error"]
    assert err["message"] == "Your card was declined. Please try a different card."
    assert err["provider_code"] == "card_declined"


def test_live_intent_and_donation(app, client, make_event, live_stripe, monkeypatch):
    calls = {}

    def create(**kwargs):
        calls.update(kwargs)
        return SimpleNamespace(
            id="pi_live_1", client_secret="pi_live_1_secret_x", amount=kwargs["amount"],
            currency=kwargs["currency"], status="requires_payment_method",
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "retrieve",
        lambda intent_id: SimpleNamespace(id=intent_id, amount=2500, currency="usd", status="succeeded"),
    )

    client.post("/api/cart", json={"event_id": make_event()})
    intent = client.post("/api/stripe/payment-intent", json={"email": "pat@example.com"}).get_json()["data"]
    assert intent["demo"] is False
    assert intent["publishable_key"] == "pk_test_123"
    assert calls["amount"] == 2500
    assert calls["receipt_email"] == "pat@example.com"
    assert calls["idempotency_key"].startswith("hf-pi-")

    resp = client.post("/api/donations", json={"payment_intent_id": "pi_live_1", "name": "Pat Doe", "email": "pat@example.com"})
    assert resp.status_code == 201
    with app.app_context():
        assert db.session.query(Donation).count() == 1


def test_changing_receipt_email_gets_a_fresh_idempotency_key(client, make_event, live_stripe, monkeypatch):
    seen = {}

    def create(idempotency_key=None, **params):
        if idempotency_key in seen and seen[idempotency_key] != params:
            raise stripe.IdempotencyError("Keys for idempotent requests can only be used with the same parameters")
        seen[idempotency_key] = params
        return SimpleNamespace(
            id=f"pi_live_{len(seen)}", client_secret="secret", amount=params["amount"],
            currency=params["currency"], status="requires_payment_method",
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    client.post("/api/cart", json={"event_id": make_event()})

    first = client.post("/api/stripe/payment-intent", json={"email": "typo@example.con"})
    second = client.post("/api/stripe/payment-intent", json={"email": "fixed@example.com"})
    assert (first.status_code, second.status_code) == (201, 201)
    assert len(seen) == 2

    # retrying with identical details reuses the key
    again = client.post("/api/stripe/payment-intent", json={"email": "fixed@example.com"})
    assert again.status_code == 201
    assert len(seen) == 2
