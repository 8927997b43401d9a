# mypy: ignore-errors
import json

import httpx
import pytest

from foundersocials.models import ProcessedWebhookEvent
from foundersocials.services.billing import (
    BillingError,
    BillingNotConfiguredError,
    PaypalClient,
    StripeGateway,
    StripeWebhookProcessor,
    WebhookSignatureError,
)
from tests.conftest import RecordingMailer, make_user


@pytest.fixture
def processor(db_session, notifier):
    return StripeWebhookProcessor(db_session, mailer=RecordingMailer(), notifier=notifier)


@pytest.mark.asyncio
async def test_processor_records_event_once(processor, db_session):
    user = make_user(db_session, "payer", stripe_customer_id="cus_1")
    event = {
        "id": "evt_1",
        "type": "invoice.payment_succeeded",
        "data": {"object": {"customer": "cus_1"}},
    }

    first = await processor.process(event)
    second = await processor.process(event)

    assert first.handled is True
    assert first.duplicate is False
    assert second.duplicate is True
    assert user.is_premium is True
    assert processor.mailer.subjects_for("payer@example.com") == [
        "FounderSocials Premium - Payment Confirmation"
    ]
    ledger = db_session.get(ProcessedWebhookEvent, "evt_1")
    assert ledger.provider == "stripe"
    assert ledger.event_type == "invoice.payment_succeeded"


@pytest.mark.asyncio
async def test_processor_accepts_expanded_customer_object(processor, db_session):
    user = make_user(db_session, "expanded", stripe_customer_id="cus_2")
    event = {
        "id": "evt_2",
        "type": "invoice.payment_failed",
        "data": {"object": {"customer": {"id": "cus_2", "object": "customer"}}},
    }

    await processor.process(event)

    assert user.payment_status == "failed"


@pytest.mark.asyncio
async def test_processor_ignores_unknown_type(processor):
    result = await processor.process({"id": "evt_3", "type": "charge.refunded", "data": {}})

    assert result.handled is False
    assert result.follow_ups == []


@pytest.mark.asyncio
async def test_processor_rejects_event_without_id(processor):
    with pytest.raises(WebhookSignatureError):
        await processor.process({"type": "invoice.paid"})


def test_gateway_requires_webhook_secret():
    gateway = StripeGateway(api_key="sk_test", webhook_secret="")

    assert gateway.enabled is True
    with pytest.raises(BillingNotConfiguredError):
        gateway.construct_event(b"{}", "t=1,v1=abc")


def test_gateway_rejects_bad_signature():
    gateway = StripeGateway(api_key="sk_test", webhook_secret="whsec_x")

    with pytest.raises(WebhookSignatureError):
        gateway.construct_event(b'{"id": "evt"}', "t=1,v1=deadbeef")


@pytest.mark.asyncio
async def test_gateway_without_key_raises_not_configured():
    gateway = StripeGateway(api_key="", webhook_secret="")

    with pytest.raises(BillingNotConfiguredError):
        await gateway.cancel_subscription("sub_1")


def _paypal(handler) -> PaypalClient:
    return PaypalClient(
        client_id="client",
        client_secret="secret",
        base_url="https://paypal.test/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_paypal_create_order_authenticates_first():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            assert request.headers["Authorization"].startswith("Basic ")
            return httpx.Response(200, json={"access_token": "A21AA"})
        assert request.headers["Authorization"] == "Bearer A21AA"
        return httpx.Response(201, json={"id": "ORDER-1", "status": "CREATED"})

    status_code, body = await _paypal(handler).create_order(
        amount="9.99", currency="usd", intent="capture",
    )

    assert status_code == 201
    assert body["id"] == "ORDER-1"
    order_request = requests[1]
    assert order_request.url == "https://paypal.test/v2/checkout/orders"
    assert json.loads(order_request.content) == {
        "intent": "CAPTURE",
        "purchase_units": [{"amount": {"currency_code": "USD", "value": "9.99"}}],
    }


@pytest.mark.asyncio
async def test_paypal_auth_failure():
    client = _paypal(lambda request: httpx.Response(401, json={"error": "invalid_client"}))

    with pytest.raises(BillingError):
        await client.client_token()


@pytest.mark.asyncio
async def test_paypal_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(BillingError):
        await _paypal(handler).capture_order("ORDER-1")


@pytest.mark.asyncio
async def test_paypal_unconfigured():
    client = PaypalClient(client_id="", client_secret="", base_url="https://paypal.test")

    assert client.enabled is False
    with pytest.raises(BillingNotConfiguredError):
        await client.capture_order("ORDER-1")
