import hashlib
import hmac
import json
import time

import pytest
import stripe

from services.payment_service.gateway import CheckoutLineItem, StripeGateway
from shared.errors import NotFound, UpstreamFailure

WEBHOOK_SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def stripe_gateway():
    return StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET, currency="usd")


def event_payload(event_type="checkout.session.completed", object_id="cs_test_1") -> bytes:
    return json.dumps({
        "id": "evt_1",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": object_id, "object": "checkout.session"}},
    }).encode()


def test_construct_event_accepts_valid_signature(stripe_gateway):
    payload = event_payload()

    event = stripe_gateway.construct_event(payload, sign(payload))

    assert event.event_id == "evt_1"
    assert event.event_type == "checkout.session.completed"
    assert event.object_id == "cs_test_1"


def test_construct_event_rejects_wrong_secret(stripe_gateway):
    payload = event_payload()

    with pytest.raises(UpstreamFailure) as exc:
        stripe_gateway.construct_event(payload, sign(payload, secret="whsec_other"))

    assert exc.value.status_code == 400


def test_construct_event_rejects_missing_signature(stripe_gateway):
    with pytest.raises(UpstreamFailure) as exc:
        stripe_gateway.construct_event(event_payload(), None)

    assert exc.value.status_code == 400


async def test_create_checkout_session_builds_price_data(stripe_gateway, monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    redirect = await stripe_gateway.create_checkout_session(
        line_items=[
            CheckoutLineItem(name="Chicken Momo", unit_amount=800, quantity=2, image="https://img/c.jpg"),
            CheckoutLineItem(name="Tax", unit_amount=168, quantity=1),
        ],
        success_url="http://shop/success",
        cancel_url="http://shop/checkout",
        customer_email="alice@momohouse.com",
        metadata={"userId": "1"},
    )

    assert redirect.session_id == "cs_test_1"
    assert redirect.redirect_url.endswith("cs_test_1")
    sent = calls[0]
    assert sent["mode"] == "payment"
    assert sent["api_key"] == "sk_test_123"
    assert sent["line_items"][0] == {
        "price_data": {
            "currency": "usd",
            "product_data": {"name": "Chicken Momo", "images": ["https://img/c.jpg"]},
            "unit_amount": 800,
        },
        "quantity": 2,
    }
    assert sent["line_items"][1]["price_data"]["product_data"]["images"] == []


async def test_create_checkout_session_wraps_sdk_errors(stripe_gateway, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.APIConnectionError("connection refused")

    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)

    with pytest.raises(UpstreamFailure) as exc:
        await stripe_gateway.create_checkout_session([], "s", "c", "a@b.com", {})

    assert exc.value.status_code == 502


async def test_retrieve_session_maps_expanded_line_items(stripe_gateway, monkeypatch):
    def fake_retrieve(session_id, **kwargs):
        assert kwargs["expand"] == ["line_items"]
        return {
            "id": session_id,
            "payment_status": "paid",
            "amount_total": 2767,
            "customer_email": None,
            "customer_details": {"email": "alice@momohouse.com"},
            "metadata": {"userEmail": "alice@momohouse.com"},
            "line_items": {"data": [
                {"description": "Chicken Momo", "amount_total": 1600, "quantity": 2},
                {"description": "Tax", "amount_total": 168, "quantity": 1},
            ]},
        }

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    session = await stripe_gateway.retrieve_session("cs_test_1")

    assert session.is_paid
    assert session.customer_email == "alice@momohouse.com"
    assert [(li.description, li.amount_total, li.quantity) for li in session.line_items] == [
        ("Chicken Momo", 1600, 2),
        ("Tax", 168, 1),
    ]


async def test_retrieve_unknown_session_is_not_found(stripe_gateway, monkeypatch):
    def missing(session_id, **kwargs):
        raise stripe.InvalidRequestError("No such checkout.session", "id", http_status=404)

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", missing)

    with pytest.raises(NotFound):
        await stripe_gateway.retrieve_session("cs_missing")
