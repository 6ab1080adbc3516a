from urllib.parse import parse_qs

import httpx
import pytest

from contesto.services.payment.gateways.stripe import StripeGateway
from contesto.services.payment.gateways.factory import PaymentGatewayFactory


def make_gateway(handler):
    return StripeGateway({"secret_key": "sk_test_123", "currency": "usd"}, transport=httpx.MockTransport(handler))


async def test_create_checkout_session_sends_form_payload():
    captured = {}

    def handler(request: httpx.Request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["auth"] = request.headers["authorization"]
        captured["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        return httpx.Response(200, json={"id": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"})

    gateway = make_gateway(handler)
    result = await gateway.create_checkout_session(
        amount=12.5,
        product_name="Logo Design Sprint",
        customer_email="user@example.com",
        success_url="https://site/payment-success?session_id={CHECKOUT_SESSION_ID}",
        cancel_url="https://site/contests/1",
        metadata={"contestId": "c1", "email": "user@example.com"}
    )
    await gateway.close()

    assert result.success is True
    assert result.session_id == "cs_test_1"
    assert result.checkout_url == "https://checkout.stripe.com/c/cs_test_1"
    assert captured["method"] == "POST"
    assert captured["path"] == "/v1/checkout/sessions"
    assert captured["auth"].startswith("Basic ")
    form = captured["form"]
    assert form["mode"] == "payment"
    assert form["line_items[0][price_data][unit_amount]"] == "1250"
    assert form["line_items[0][price_data][currency]"] == "usd"
    assert form["line_items[0][price_data][product_data][name]"] == "Logo Design Sprint"
    assert form["metadata[contestId]"] == "c1"
    assert form["success_url"].endswith("{CHECKOUT_SESSION_ID}")


async def test_create_checkout_session_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Invalid currency"}})

    gateway = make_gateway(handler)
    result = await gateway.create_checkout_session(
        amount=1, product_name="x", customer_email="a@b.co", success_url="s", cancel_url="c"
    )
    await gateway.close()

    assert result.success is False
    assert result.error_message == "Invalid currency"


async def test_retrieve_checkout_session_maps_fields():
    def handler(request):
        assert request.url.path == "/v1/checkout/sessions/cs_test_1"
        return httpx.Response(200, json={
            "id": "cs_test_1",
            "payment_status": "paid",
            "payment_intent": "pi_999",
            "amount_total": 1000,
            "currency": "usd",
            "customer_email": None,
            "customer_details": {"email": "User@Example.com"},
            "metadata": {"contestId": "c1", "email": "user@example.com"},
        })

    gateway = make_gateway(handler)
    session = await gateway.retrieve_checkout_session("cs_test_1")
    await gateway.close()

    assert session.is_paid is True
    assert session.transaction_id == "pi_999"
    assert session.amount == 10.0
    assert session.customer_email == "user@example.com"
    assert session.metadata["contestId"] == "c1"


async def test_retrieve_unpaid_session_falls_back_to_session_id():
    def handler(request):
        return httpx.Response(200, json={"id": "cs_test_2", "payment_status": "unpaid", "payment_intent": None})

    gateway = make_gateway(handler)
    session = await gateway.retrieve_checkout_session("cs_test_2")
    await gateway.close()

    assert session.is_paid is False
    assert session.transaction_id == "cs_test_2"


async def test_retrieve_missing_session_reports_status():
    def handler(request):
        return httpx.Response(404, json={"error": {"message": "No such checkout.session"}})

    gateway = make_gateway(handler)
    session = await gateway.retrieve_checkout_session("cs_nope")
    await gateway.close()

    assert session.success is False
    assert session.http_status == 404


def test_missing_secret_key_is_rejected(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)

    with pytest.raises(ValueError):
        StripeGateway()


def test_factory_rejects_unknown_gateway():
    with pytest.raises(ValueError):
        PaymentGatewayFactory.get_gateway("paypal")


async def test_factory_closes_cached_gateways():
    closed = []

    class DummyGateway:
        async def close(self):
            closed.append(True)

    PaymentGatewayFactory.set_gateway("dummy", DummyGateway())
    await PaymentGatewayFactory.close_all()

    assert closed == [True]
    assert PaymentGatewayFactory._instances == {}
