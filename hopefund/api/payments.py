# hopefund/api/payments.py
"""Stripe PaymentIntent creation and the Stripe webhook."""

from __future__ import annotations

import logging

from flask import request

from hopefund.forms import validate_payload
from hopefund.forms.checkout import PaymentIntentForm
from hopefund.helpers import json_ok, request_payload, to_cents
from hopefund.security import current_donor
from hopefund.services.donations import create_payment_intent, handle_webhook_event
from hopefund.services.payments import PaymentService

from . import bp

log = logging.getLogger(__name__)


@bp.get("/stripe/config")
def stripe_config():
    settings = PaymentService().settings
    return json_ok(
        {
            "publishable_key": settings.publishable_key,
            "currency": settings.currency,
            "mode": settings.mode,
            "min_amount": settings.min_cents / 100,
            "max_amount": settings.max_cents / 100,
        }
    )


@bp.post("/stripe/payment-intent")
def payment_intent():
    form = validate_payload(PaymentIntentForm, request_payload())
    donor = current_donor()
    email = form.email.data or (donor.email if donor else None)
    data = create_payment_intent(
        total_cents=to_cents(form.total_amount.data),
        tip_cents=to_cents(form.tip_amount.data) or 0,
        email=email,
    )
    return json_ok(data, status=201)


@bp.post("/stripe/webhook")
def stripe_webhook():
    payments = PaymentService()
    event = payments.parse_webhook(request.get_data(), request.headers.get("Stripe-Signature", ""))
    outcome = handle_webhook_event(event)
    log.info("Stripe event %s (%s): %s", event.get("id"), event.get("type"), outcome)
    return json_ok({"received": True, "outcome": outcome})
