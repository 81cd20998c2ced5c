import json
from decimal import Decimal

import httpx
import pytest

from membership_gateway.client import API_KEY_HEADER, UddoktaPayClient
from membership_gateway.exceptions import ConfigurationError, TransportError
from membership_gateway.schemas import IntentMetadata, PaymentIntent


def make_client(handler, **overrides):
    options = dict(api_key="test-api-key", api_url="https://sandbox.example.test/api/", timeout=5)
    options.update(overrides)
    return UddoktaPayClient(transport=httpx.MockTransport(handler), **options)


def make_intent():
    return PaymentIntent(
        full_name="Rahim Uddin",
        email="rahim@example.com",
        amount=Decimal("500.00"),
        metadata=IntentMetadata(order_id=1, user_id=7, membership_id=3, order_code="ABC123"),
        redirect_url="https://shop.example.test/webhook?type=success&order_id=1",
        cancel_url="https://shop.example.test/webhook?type=cancel&order_id=1",
        webhook_url="https://shop.example.test/webhook?type=ipn",
        success_url="https://shop.example.test/webhook?type=success&order_id=1",
    )


def test_create_payment_posts_intent_and_returns_url():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers[API_KEY_HEADER]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": True, "payment_url": "https://pay.example.test/abc"})

    result = make_client(handler).create_payment(make_intent())

    assert result.payment_url == "https://pay.example.test/abc"
    assert seen["url"] == "https://sandbox.example.test/api/checkout-v1"
    assert seen["key"] == "test-api-key"
    assert seen["body"]["amount"] == "500.00"
    assert seen["body"]["return_type"] == "GET"
    assert seen["body"]["metadata"]["order_code"] == "ABC123"


def test_create_payment_without_url_raises_provider_message():
    client = make_client(lambda request: httpx.Response(200, json={"status": False, "message": "Invalid amount"}))

    with pytest.raises(TransportError, match="Invalid amount"):
        client.create_payment(make_intent())


def test_create_payment_without_url_or_message():
    client = make_client(lambda request: httpx.Response(200, json={"status": False}))

    with pytest.raises(TransportError, match="Failed to get payment URL"):
        client.create_payment(make_intent())


def test_verify_payment_parses_response():
    def handler(request):
        assert json.loads(request.content) == {"invoice_id": "INV-1"}
        assert str(request.url).endswith("/verify-payment")
        return httpx.Response(200, json={
            "invoice_id": "INV-1",
            "status": "COMPLETED",
            "amount": "500.00",
            "transaction_id": "TX123",
            "payment_method": "bkash",
            "sender_number": "01700000000",
            "metadata": {"order_id": 1, "order_code": "ABC123"},
        })

    response = make_client(handler).verify_payment("INV-1")

    assert response.status == "COMPLETED"
    assert response.amount == Decimal("500.00")
    assert response.transaction_id == "TX123"
    assert response.metadata.order_code == "ABC123"
    assert response.metadata.order_id == "1"


def test_non_2xx_carries_provider_message():
    client = make_client(lambda request: httpx.Response(401, json={"message": "Unauthorized API key"}))

    with pytest.raises(TransportError, match="Unauthorized API key") as excinfo:
        client.verify_payment("INV-1")
    assert excinfo.value.status_code == 401


def test_non_2xx_without_body():
    client = make_client(lambda request: httpx.Response(500, text="oops"))

    with pytest.raises(TransportError, match="HTTP 500"):
        client.verify_payment("INV-1")


def test_malformed_body_raises_transport_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(TransportError, match="Invalid JSON"):
        client.verify_payment("INV-1")


def test_invalid_field_types_raise_transport_error():
    client = make_client(lambda request: httpx.Response(200, json={"status": "COMPLETED", "amount": "lots"}))

    with pytest.raises(TransportError, match="Malformed verification response"):
        client.verify_payment("INV-1")


def test_network_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransportError, match="timed out"):
        make_client(handler).verify_payment("INV-1")


def test_missing_credentials_fail_before_any_request():
    def handler(request):
        raise AssertionError("should not be called")

    with pytest.raises(ConfigurationError):
        make_client(handler, api_key="").verify_payment("INV-1")
