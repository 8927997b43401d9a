# mypy: ignore-errors
import hashlib
import hmac
import json
import logging

import httpx
import pytest

from foundersocials.services.external_access import (
    EVENT_CANCELLED,
    EVENT_UPGRADED,
    SIGNATURE_HEADER,
    ExternalTokenError,
    WebhookNotifier,
    decode_access_token,
    issue_access_token,
    register_webhook,
    sign_payload,
)
from tests.conftest import make_user


def test_sign_payload_is_hex_hmac_sha256():
    body = b'{"event":"subscription.upgraded"}'
    expected = hmac.new(b"shared-secret", body, hashlib.sha256).hexdigest()

    assert sign_payload("shared-secret", body) == expected


def test_access_token_round_trip(db_session):
    user = make_user(db_session, "erin", plan="founder")

    claims = decode_access_token(issue_access_token(user))

    assert claims["sub"] == str(user.id)
    assert claims["email"] == "erin@example.com"
    assert claims["plan"] == "founder"


def test_decode_rejects_tampered_token(db_session):
    token = issue_access_token(make_user(db_session, "frank", plan="standard"))

    with pytest.raises(ExternalTokenError):
        decode_access_token(token[:-4] + "AAAA")


def test_register_webhook_dedupes_events(db_session):
    subscription = register_webhook(
        db_session,
        callback_url="https://pm.example.com/hook",
        events=[EVENT_UPGRADED, EVENT_UPGRADED, EVENT_CANCELLED],
        secret="0123456789abcdef",
    )

    assert subscription.events == [EVENT_UPGRADED, EVENT_CANCELLED]
    assert len(subscription.id) == 32


@pytest.mark.asyncio
async def test_notifier_only_posts_to_interested_callbacks(db_session):
    user = make_user(db_session, "grace", plan="standard")
    register_webhook(
        db_session, callback_url="https://a.example.com/hook",
        events=[EVENT_UPGRADED], secret="a" * 16,
    )
    register_webhook(
        db_session, callback_url="https://b.example.com/hook",
        events=[EVENT_CANCELLED], secret="b" * 16,
    )
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    notifier = WebhookNotifier(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    delivered = await notifier.notify_subscription_change(db_session, user, EVENT_UPGRADED)

    assert delivered == 1
    [request] = received
    assert request.url.host == "a.example.com"
    assert request.headers[SIGNATURE_HEADER] == sign_payload("a" * 16, request.content)
    payload = json.loads(request.content)
    assert payload["userId"] == user.id
    assert payload["username"] == "grace"
    assert payload["plan"] == "standard"
    assert payload["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_notifier_logs_failures_without_raising(db_session, caplog):
    user = make_user(db_session, "heidi", plan="standard")
    register_webhook(
        db_session, callback_url="https://down.example.com/hook",
        events=[EVENT_UPGRADED], secret="c" * 16,
    )
    register_webhook(
        db_session, callback_url="https://broken.example.com/hook",
        events=[EVENT_UPGRADED], secret="d" * 16,
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "down.example.com":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(500)

    notifier = WebhookNotifier(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with caplog.at_level(logging.ERROR, logger="foundersocials.services.external_access"):
        delivered = await notifier.notify_subscription_change(db_session, user, EVENT_UPGRADED)

    assert delivered == 0
    assert "down.example.com" in caplog.text
    assert "broken.example.com" in caplog.text


@pytest.mark.asyncio
async def test_notifier_without_subscribers(db_session):
    user = make_user(db_session, "ivan")

    assert await WebhookNotifier().notify_subscription_change(db_session, user, EVENT_CANCELLED) == 0
