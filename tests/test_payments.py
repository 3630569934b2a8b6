import json
import time

import pytest
import stripe

from payments import (
    PaymentProcessorError,
    StripeClient,
    WebhookSignatureError,
    construct_webhook_event,
    from_minor_units,
    to_minor_units,
)

SECRET = "whsec_unit"


def _event_payload(event_type: str = "checkout.session.completed") -> bytes:
    return json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": event_type,
            "data": {"object": {"id": "cs_1", "object": "checkout.session"}},
        }
    ).encode()


def test_construct_webhook_event_accepts_valid_signature(sign_stripe_payload):
    payload = _event_payload()

    event = construct_webhook_event(payload, sign_stripe_payload(payload, SECRET), SECRET)
    assert event["type"] == "checkout.session.completed"
    assert event["data"]["object"]["id"] == "cs_1"


def test_construct_webhook_event_rejects_tampering_and_stale_deliveries(sign_stripe_payload):
    payload = _event_payload()
    header = sign_stripe_payload(payload, SECRET)

    with pytest.raises(WebhookSignatureError):
        construct_webhook_event(_event_payload("customer.created"), header, SECRET)
    with pytest.raises(WebhookSignatureError):
        construct_webhook_event(payload, header, "whsec_other")
    with pytest.raises(WebhookSignatureError):
        stale = sign_stripe_payload(payload, SECRET, timestamp=int(time.time()) - 301)
        construct_webhook_event(payload, stale, SECRET)
    with pytest.raises(WebhookSignatureError):
        construct_webhook_event(payload, "garbage", SECRET)


def test_minor_unit_conversion_rounds():
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(None) == 0
    assert from_minor_units(150000) == 1500.0


def test_checkout_session_is_created_through_the_sdk(monkeypatch):
    calls = []

    def fake_create(**params):
        calls.append(params)
        return {"id": "cs_1", "client_secret": "sec"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    client = StripeClient(secret_key="sk_test")

    result = client.create_checkout_session(
        customer_id="cus_1",
        currency="usd",
        unit_amount=2500,
        product_name="Invoice INV-1",
        product_description=None,
        return_url="http://localhost:3000/dashboard",
        metadata={"invoiceId": "inv-1"},
    )
    assert result == {"id": "cs_1", "client_secret": "sec"}
    params = calls[0]
    assert params["api_key"] == "sk_test"
    assert params["ui_mode"] == "embedded"
    assert params["mode"] == "payment"
    assert params["customer"] == "cus_1"
    assert params["line_items"][0]["price_data"]["unit_amount"] == 2500
    assert params["line_items"][0]["price_data"]["product_data"] == {"name": "Invoice INV-1"}
    assert params["metadata"] == {"invoiceId": "inv-1"}


def test_customer_creation_skips_missing_fields(monkeypatch):
    calls = []
    monkeypatch.setattr(stripe.Customer, "create", lambda **params: calls.append(params) or {"id": "cus_9"})

    customer = StripeClient(secret_key="sk_test").create_customer(email=None, name="Dana", metadata={})
    assert customer["id"] == "cus_9"
    assert "email" not in calls[0]
    assert calls[0]["name"] == "Dana"


def test_sdk_errors_become_processor_errors(monkeypatch):
    def declined(**params):
        raise stripe.StripeError("Your card was declined.")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", declined)

    with pytest.raises(PaymentProcessorError, match="declined"):
        StripeClient(secret_key="sk_test").retrieve_checkout_session("cs_1")


def test_client_requires_secret_key():
    with pytest.raises(PaymentProcessorError):
        StripeClient(secret_key="").create_customer(email=None, name=None, metadata={})
