"""Payment processor integration (Stripe SDK).

Covers the three calls the portal needs (create customer, create an embedded
checkout session, retrieve a session) and webhook signature verification.
SDK failures surface as ``PaymentProcessorError`` / ``WebhookSignatureError``
so routes never depend on Stripe's exception types.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Iterable

import stripe

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300

INVOICE_STATUS_PENDING = "pending"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUS_FAILED = "failed"

PAID_EVENTS: Iterable[str] = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
)
FAILED_EVENTS: Iterable[str] = ("checkout.session.async_payment_failed",)


class PaymentProcessorError(Exception):
    pass


class WebhookSignatureError(Exception):
    pass


def to_minor_units(amount: float | int | None) -> int:
    return int(round(float(amount or 0) * 100))


def from_minor_units(amount: int | None) -> float:
    return (amount or 0) / 100


def _as_dict(obj: Any) -> dict:
    # StripeObject serializes itself as JSON; plain dicts pass through.
    if type(obj) is dict:
        return obj
    return json.loads(str(obj))


def _without_none(params: dict) -> dict:
    return {key: value for key, value in params.items() if value is not None}


class StripeClient:
    def __init__(self, secret_key: str | None = None):
        self.secret_key = secret_key if secret_key is not None else os.getenv("STRIPE_SECRET_KEY", "")

    def _call(self, operation: str, fn, **params) -> dict:
        if not self.secret_key:
            raise PaymentProcessorError("STRIPE_SECRET_KEY is not configured")
        try:
            return _as_dict(fn(api_key=self.secret_key, **params))
        except stripe.StripeError as exc:
            message = getattr(exc, "user_message", None) or str(exc) or "payment processor error"
            logger.warning("stripe %s failed: %s", operation, message)
            raise PaymentProcessorError(message) from exc

    def create_customer(self, *, email: str | None, name: str | None, metadata: dict) -> dict:
        return self._call(
            "create_customer",
            stripe.Customer.create,
            **_without_none({"email": email, "name": name, "metadata": metadata}),
        )

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        currency: str,
        unit_amount: int,
        product_name: str,
        product_description: str | None,
        return_url: str,
        metadata: dict,
    ) -> dict:
        return self._call(
            "create_checkout_session",
            stripe.checkout.Session.create,
            ui_mode="embedded",
            mode="payment",
            payment_method_types=["card"],
            customer=customer_id,
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": _without_none(
                            {"name": product_name, "description": product_description}
                        ),
                        "unit_amount": unit_amount,
                    },
                    "quantity": 1,
                }
            ],
            return_url=return_url,
            metadata=metadata,
            allow_promotion_codes=True,
        )

    def retrieve_checkout_session(self, session_id: str) -> dict:
        return self._call("retrieve_checkout_session", stripe.checkout.Session.retrieve, id=session_id)


def construct_webhook_event(
    payload: bytes,
    signature_header: str,
    secret: str,
    *,
    tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
) -> dict:
    """Verifies a webhook delivery with the SDK and returns the decoded event."""
    try:
        event = stripe.Webhook.construct_event(payload, signature_header, secret, tolerance=tolerance)
    except stripe.SignatureVerificationError as exc:
        raise WebhookSignatureError(str(exc)) from exc
    except ValueError as exc:
        raise WebhookSignatureError("payload is not valid JSON") from exc
    return _as_dict(event)


_CLIENT: StripeClient | None = None


def get_payment_client() -> StripeClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = StripeClient()
    return _CLIENT
