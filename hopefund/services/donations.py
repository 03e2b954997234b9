# hopefund/services/donations.py
"""
Checkout orchestration and donation lifecycle.

    cart -> create_payment_intent() -> (browser confirms with Stripe.js)
         -> record_donation()        -> Donation(status=pending)
         -> webhook                  -> succeeded | failed | canceled
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from typing import Any, Dict, List, Optional

from flask import current_app, session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from hopefund.errors import Conflict, ValidationError
from hopefund.extensions import db, emit_socket, send_email_async
from hopefund.helpers import cents_to_dollars, format_currency
from hopefund.models import Donation, DonationItem, Event, StripeEvent, User
from hopefund.models.mixins import utcnow

from .cart import SessionCart
from .payments import PaymentService, payment_error_message

log = logging.getLogger(__name__)

INTENT_KEY = "checkout_intent"
TOKEN_KEY = "checkout_token"


# ─────────────────────────────────────────────────────────────
# Payment intent
# ─────────────────────────────────────────────────────────────
def _checkout_token() -> str:
    tok = session.get(TOKEN_KEY)
    if not tok:
        tok = uuid.uuid4().hex
        session[TOKEN_KEY] = tok
    return tok


def _idempotency_key(
    amount_cents: int,
    currency: str,
    cart: SessionCart,
    receipt_email: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> str:
    """Hash of every parameter sent with the create call; Stripe refuses a reused key with different parameters."""
    fingerprint = "|".join(
        f"{i['event_id']}:{i['quantity']}:{i['price_cents']}" for i in sorted(cart.items, key=lambda i: i["event_id"])
    )
    meta = ",".join(f"{k}={v}" for k, v in sorted((metadata or {}).items()))
    raw = f"{_checkout_token()}|{amount_cents}|{currency}|{fingerprint}|{receipt_email or ''}|{meta}"
    return "hf-pi-" + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:40]


def create_payment_intent(
    *,
    total_cents: Optional[int] = None,
    tip_cents: int = 0,
    email: Optional[str] = None,
    payments: Optional[PaymentService] = None,
) -> Dict[str, Any]:
    """
    Amount is the explicit `total_cents` when given, otherwise the session
    cart total plus the optional platform contribution.
    """
    payments = payments or PaymentService()
    cart = SessionCart()
    if total_cents is None:
        if cart.is_empty:
            raise ValidationError(["Your cart is empty"])
        total_cents = cart.total_cents + int(tip_cents or 0)

    currency = payments.settings.currency
    email = (email or "").strip() or None
    metadata = {"checkout": _checkout_token(), "items": str(len(cart.items))}
    intent = payments.create_intent(
        int(total_cents),
        currency=currency,
        metadata=metadata,
        receipt_email=email,
        idempotency_key=_idempotency_key(int(total_cents), currency, cart, email, metadata),
    )
    session[INTENT_KEY] = {
        "id": intent["id"],
        "amount": int(intent["amount"]),
        "currency": intent["currency"],
        "tip_cents": int(tip_cents or 0),
    }
    log.info("Created payment intent %s for %s cents", intent["id"], intent["amount"])
    return {
        "client_secret": intent["client_secret"],
        "payment_intent_id": intent["id"],
        "publishable_key": payments.settings.publishable_key,
        "amount": cents_to_dollars(intent["amount"]),
        "currency": intent["currency"],
        "demo": bool(intent.get("demo")),
    }


# ─────────────────────────────────────────────────────────────
# Recording
# ─────────────────────────────────────────────────────────────
def record_donation(form, donor: Optional[User] = None, payments: Optional[PaymentService] = None) -> Donation:
    payments = payments or PaymentService()
    intent_id = form.payment_intent_id.data.strip()
    pending = session.get(INTENT_KEY) or {}
    if pending.get("id") != intent_id:
        raise ValidationError(["Payment intent does not match this checkout"])

    cart = SessionCart()
    if cart.is_empty:
        raise ValidationError(["Your cart is empty"])

    name = (form.name.data or (donor.name if donor else "") or "").strip()
    email = (form.email.data or (donor.email if donor else "") or "").strip().lower()
    errors: List[str] = []
    if not name:
        errors.append("Name is required")
    if not email:
        errors.append("Email is required")
    if errors:
        raise ValidationError(errors)

    tip_cents = int(pending.get("tip_cents") or 0)
    amount_cents = cart.total_cents
    if amount_cents + tip_cents != int(pending["amount"]):
        raise ValidationError(["Donation total does not match the payment amount"])
    if not payments.settings.demo:
        remote = payments.retrieve_intent(intent_id)
        if int(remote["amount"]) != amount_cents + tip_cents:
            raise ValidationError(["Donation total does not match the payment amount"])

    if Donation.query.filter_by(provider_intent_id=intent_id).first() is not None:
        raise Conflict("A donation has already been recorded for this payment")

    donation = Donation(
        user_id=donor.id if donor else None,
        donor_name=name,
        donor_email=email,
        donor_phone=form.phone.data or None,
        is_anonymous=bool(form.is_anonymous.data),
        note=form.note.data or None,
        currency=pending.get("currency") or payments.settings.currency,
        amount_cents=amount_cents,
        tip_cents=tip_cents,
        provider_intent_id=intent_id,
        provider_status="requires_confirmation",
        status="pending",
    )
    for item in cart.items:
        donation.items.append(
            DonationItem(
                event_id=int(item["event_id"]),
                title=item.get("title") or "Donation",
                quantity=int(item["quantity"]),
                unit_amount_cents=int(item["price_cents"]),
            )
        )
    db.session.add(donation)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("A donation has already been recorded for this payment")

    cart.clear()
    session.pop(INTENT_KEY, None)
    session.pop(TOKEN_KEY, None)
    log.info("Recorded donation %s (%s) for intent %s", donation.id, donation.invoice_number, intent_id)
    emit_socket("donation:created", {"id": donation.id, "total": donation.total_amount, "status": donation.status})
    return donation


# ─────────────────────────────────────────────────────────────
# Webhook
# ─────────────────────────────────────────────────────────────
def _store_event(event: Dict[str, Any], intent_id: Optional[str]) -> bool:
    """Insert the StripeEvent row; False when this event was already handled."""
    db.session.add(
        StripeEvent(
            event_id=str(event["id"])[:120],
            type=str(event.get("type"))[:120],
            livemode=bool(event.get("livemode")),
            payment_intent_id=(intent_id or None),
        )
    )
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        return False
    return True


def mark_succeeded(donation: Donation, provider_status: str = "succeeded") -> bool:
    """Returns True when this call moved the donation to succeeded."""
    donation.provider_status = provider_status
    if donation.status == "succeeded":
        return False
    donation.status = "succeeded"
    donation.paid_at = utcnow()
    donation.failure_code = None
    donation.failure_message = None
    for item in donation.items:
        if item.event is not None:
            item.event.raised_cents = (item.event.raised_cents or 0) + item.line_total_cents
    return True


def mark_failed(donation: Donation, error: Dict[str, Any]) -> None:
    code = error.get("code")
    decline_code = error.get("decline_code")
    donation.status = "failed"
    donation.provider_status = "requires_payment_method"
    donation.failure_code = (decline_code or code or "unknown")[:80]
    donation.failure_message = payment_error_message(code, decline_code)[:255]


def send_receipt(donation: Donation) -> None:
    app = current_app._get_current_object()
    send_email_async(
        app,
        f"Thank you for your donation ({donation.invoice_number})",
        [donation.donor_email],
        html_template="donation_receipt.html",
        text_template="donation_receipt.txt",
        context={
            "brand": app.config.get("BRAND_NAME", "HopeFund"),
            "donation": donation.as_dict(),
            "total": format_currency(donation.total_amount, donation.currency),
        },
    )


def handle_webhook_event(event: Dict[str, Any]) -> str:
    """
    Apply a verified Stripe event. Returns a short outcome label
    (processed / duplicate / ignored / unmatched).
    """
    etype = str(event.get("type") or "")
    obj = ((event.get("data") or {}).get("object")) or {}
    intent_id = str(obj.get("id") or "") if etype.startswith("payment_intent.") else str(obj.get("payment_intent") or "")

    if not _store_event(event, intent_id):
        log.info("Duplicate Stripe event %s ignored", event.get("id"))
        return "duplicate"

    if etype not in ("payment_intent.succeeded", "payment_intent.payment_failed", "payment_intent.canceled"):
        db.session.commit()
        return "ignored"

    donation = Donation.query.filter_by(provider_intent_id=intent_id).first() if intent_id else None
    if donation is None:
        db.session.commit()
        log.warning("Stripe event %s for unknown intent %s", etype, intent_id)
        return "unmatched"

    paid_now = False
    if etype == "payment_intent.succeeded":
        paid_now = mark_succeeded(donation, str(obj.get("status") or "succeeded"))
    elif etype == "payment_intent.payment_failed":
        if donation.status != "succeeded":
            mark_failed(donation, obj.get("last_payment_error") or {})
    else:
        if donation.status == "pending":
            donation.status = "canceled"
            donation.provider_status = "canceled"
    db.session.commit()

    if paid_now:
        send_receipt(donation)
        emit_socket(
            "donation:succeeded",
            {"id": donation.id, "name": donation.display_name, "total": donation.total_amount},
        )
    elif donation.status == "failed":
        emit_socket("donation:failed", {"id": donation.id, "reason": donation.failure_message})
    return "processed"


# ─────────────────────────────────────────────────────────────
# Reporting
# ─────────────────────────────────────────────────────────────
def event_donation_stats(event: Event) -> Dict[str, Any]:
    row = (
        db.session.query(
            func.count(func.distinct(Donation.id)),
            func.coalesce(func.sum(DonationItem.unit_amount_cents * DonationItem.quantity), 0),
            func.count(func.distinct(Donation.donor_email)),
        )
        .join(DonationItem, DonationItem.donation_id == Donation.id)
        .filter(DonationItem.event_id == event.id, Donation.status == "succeeded")
        .one()
    )
    count, raised_cents, donors = row
    return {
        "event_id": event.id,
        "donations": int(count or 0),
        "donors": int(donors or 0),
        "raised_amount": cents_to_dollars(int(raised_cents or 0)),
        "target_amount": event.target_amount,
        "progress": event.progress,
    }


def event_share_cents(donation: Donation, event_id: int) -> int:
    """The part of a (possibly multi-event) donation that went to one event."""
    return sum(i.line_total_cents for i in donation.items if i.event_id == event_id)


def event_donations_query(event_id: int):
    return (
        Donation.query.join(DonationItem, DonationItem.donation_id == Donation.id)
        .filter(DonationItem.event_id == event_id)
        .distinct()
    )
