# hopefund/services/payments.py
"""
Stripe wrapper with a demo-mode toggle.

Card data never touches this service: we create PaymentIntents server-side,
the browser confirms them with Stripe.js, and the webhook reports the outcome.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe
from flask import current_app

from hopefund.errors import PaymentError, ValidationError
from hopefund.extensions import guess_stripe_mode
from hopefund.helpers import format_currency

log = logging.getLogger(__name__)

# Stripe error / decline codes -> what the donor sees
PAYMENT_ERROR_MESSAGES: Dict[str, str] = {
    "card_declined": "Your card was declined. Please try a different card.",
    "insufficient_funds": "Your card has insufficient funds. Please try a different card.",
    "expired_card": "Your card has expired. Please use a different card.",
    "incorrect_cvc": "Your card's security code is incorrect.",
    "invalid_cvc": "Your card's security code is invalid.",
    "incorrect_number": "Your card number is incorrect.",
    "invalid_number": "Your card number is invalid.",
    "invalid_expiry_month": "Your card's expiration month is invalid.",
    "invalid_expiry_year": "Your card's expiration year is invalid.",
    "incorrect_zip": "Your postal code is incorrect.",
    "processing_error": "An error occurred while processing your card. Please try again.",
    "authentication_required": "Your bank requires authentication. Please complete the verification and try again.",
    "payment_intent_authentication_failure": "We couldn't verify your payment. Please try again.",
    "lost_card": "Your card was declined. Please contact your card issuer.",
    "stolen_card": "Your card was declined. Please contact your card issuer.",
    "fraudulent": "Your card was declined. Please contact your card issuer.",
    "do_not_honor": "Your card was declined. Please contact your card issuer.",
    "card_velocity_exceeded": "Your card has exceeded its limit. Please try again later or use another card.",
    "rate_limit": "Too many payment attempts. Please wait a moment and try again.",
}
GENERIC_PAYMENT_ERROR = "Your payment could not be processed. Please try again or use a different payment method."


def payment_error_message(code: Optional[str], decline_code: Optional[str] = None) -> str:
    """Prefer the decline code (more specific), then the error code."""
    for key in (decline_code, code):
        if key and key in PAYMENT_ERROR_MESSAGES:
            return PAYMENT_ERROR_MESSAGES[key]
    return GENERIC_PAYMENT_ERROR


@dataclass(frozen=True)
class PaymentSettings:
    secret_key: str
    publishable_key: str
    webhook_secret: str
    currency: str
    min_cents: int
    max_cents: int
    demo: bool
    env: str

    @property
    def mode(self) -> str:
        return "demo" if self.demo else guess_stripe_mode(self.secret_key)

    @classmethod
    def load(cls) -> "PaymentSettings":
        cfg = current_app.config
        return cls(
            secret_key=str(cfg.get("STRIPE_SECRET_KEY") or "").strip(),
            publishable_key=str(cfg.get("STRIPE_PUBLISHABLE_KEY") or "").strip(),
            webhook_secret=str(cfg.get("STRIPE_WEBHOOK_SECRET") or "").strip(),
            currency=str(cfg.get("DEFAULT_CURRENCY") or "usd").lower(),
            min_cents=int(cfg.get("MIN_DONATION_CENTS", 100)),
            max_cents=int(cfg.get("MAX_DONATION_CENTS", 5_000_000)),
            demo=bool(cfg.get("DEMO_MODE")),
            env=str(cfg.get("ENV") or "").lower(),
        )

    def check_amount(self, amount_cents: int) -> None:
        if amount_cents < self.min_cents:
            raise ValidationError([f"Minimum donation is {format_currency(self.min_cents / 100, self.currency)}"])
        if amount_cents > self.max_cents:
            raise ValidationError([f"Maximum donation is {format_currency(self.max_cents / 100, self.currency)}"])


class PaymentService:
    """PaymentIntent create / retrieve and webhook verification."""

    def __init__(self, settings: Optional[PaymentSettings] = None) -> None:
        self.settings = settings or PaymentSettings.load()

    def _require_keys(self) -> None:
        if not self.settings.secret_key:
            raise PaymentError("Payments are not configured. Please try again later.")
        stripe.api_key = self.settings.secret_key

    # ---------------- Intents ----------------
    def create_intent(
        self,
        amount_cents: int,
        *,
        currency: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        receipt_email: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        currency = (currency or self.settings.currency).lower()
        self.settings.check_amount(amount_cents)

        if self.settings.demo:
            pi_id = f"pi_demo_{uuid.uuid4().hex[:16]}"
            return {
                "id": pi_id,
                "client_secret": f"{pi_id}_secret_demo",
                "amount": amount_cents,
                "currency": currency,
                "status": "requires_payment_method",
                "demo": True,
            }

        self._require_keys()
        params: Dict[str, Any] = {
            "amount": int(amount_cents),
            "currency": currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata or {},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email

        try:
            pi = stripe.PaymentIntent.create(**params, idempotency_key=idempotency_key)
        except stripe.CardError as e:
            raise PaymentError(payment_error_message(e.code, getattr(e, "decline_code", None)), provider_code=e.code)
        except stripe.StripeError as e:
            log.error("Stripe error creating intent: %s", getattr(e, "user_message", None) or e)
            raise PaymentError(payment_error_message(getattr(e, "code", None)), provider_code=getattr(e, "code", None))

        if not getattr(pi, "client_secret", None):
            raise PaymentError("Stripe did not return a client secret")
        return {
            "id": pi.id,
            "client_secret": pi.client_secret,
            "amount": int(pi.amount),
            "currency": pi.currency,
            "status": pi.status,
            "demo": False,
        }

    def retrieve_intent(self, intent_id: str) -> Dict[str, Any]:
        self._require_keys()
        try:
            pi = stripe.PaymentIntent.retrieve(intent_id)
        except stripe.InvalidRequestError:
            raise ValidationError(["Payment intent not found"])
        except stripe.StripeError as e:
            log.error("Stripe error retrieving %s: %s", intent_id, e)
            raise PaymentError(payment_error_message(getattr(e, "code", None)))
        return {"id": pi.id, "amount": int(pi.amount), "currency": pi.currency, "status": pi.status}

    # ---------------- Webhooks ----------------
    def parse_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify the Stripe-Signature header and return the event as a dict.
        Without a webhook secret, unsigned events are accepted outside production.
        """
        secret = self.settings.webhook_secret
        if secret:
            try:
                stripe.Webhook.construct_event(payload, signature, secret)
            except (stripe.SignatureVerificationError, ValueError):
                raise ValidationError(["Invalid webhook signature"])
        elif self.settings.env == "production":
            raise ValidationError(["Webhook secret is not configured"])

        try:
            event = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise ValidationError(["Invalid webhook payload"])
        if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
            raise ValidationError(["Invalid webhook payload"])
        return event
