"""Single sign-on bridge to the external project-management app.

Tokens issued here are signed with ``JWT_SECRET`` (falling back to the API
secret) and carry the ``project-management-platform`` audience. Subscription
changes are pushed to registered callbacks as JSON bodies signed with
HMAC-SHA256 in the ``X-Webhook-Signature`` header.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import uuid
from datetime import timedelta
from typing import Any

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from foundersocials.core.settings import settings
from foundersocials.db.time import utcnow
from foundersocials.models import ExternalWebhookSubscription, User

logger = logging.getLogger(__name__)

EVENT_UPGRADED = "subscription.upgraded"
EVENT_DOWNGRADED = "subscription.downgraded"
EVENT_CANCELLED = "subscription.cancelled"
WEBHOOK_EVENTS = (EVENT_UPGRADED, EVENT_DOWNGRADED, EVENT_CANCELLED)

SIGNATURE_HEADER = "X-Webhook-Signature"
ACCESS_LINK_PURPOSE = "single-access"


class ExternalTokenError(Exception):
    """Raised when an external access token cannot be accepted."""

    code = "invalid_token"
    message = "Invalid token"


class ExternalTokenExpiredError(ExternalTokenError):
    code = "token_expired"
    message = "Token expired"


def issue_access_token(user: User) -> str:
    """Return a one-hour JWT describing ``user`` for the external app."""
    now = utcnow()
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "plan": user.subscription_plan,
        "aud": settings.external_audience,
        "iss": settings.external_issuer,
        "iat": now,
        "exp": now + timedelta(seconds=settings.external_token_ttl_seconds),
    }
    token = jwt.encode(payload, settings.external_signing_key, algorithm=settings.jwt_algorithm)
    logger.info("External access token issued for user %s (%s)", user.id, user.username)
    return token


def decode_access_token(token: str) -> dict[str, Any]:
    """Validate an external access token and return its claims.

    Raises:
        ExternalTokenExpiredError: The token's ``exp`` has passed.
        ExternalTokenError: Bad signature, audience, issuer or structure.
    """
    try:
        return jwt.decode(
            token,
            settings.external_signing_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.external_audience,
            issuer=settings.external_issuer,
        )
    except ExpiredSignatureError as err:
        raise ExternalTokenExpiredError() from err
    except JWTError as err:
        raise ExternalTokenError() from err


def issue_access_link(user: User) -> str:
    """Return a short-lived SSO link into the external app."""
    payload = {
        "sub": str(user.id),
        "purpose": ACCESS_LINK_PURPOSE,
        "exp": utcnow() + timedelta(seconds=settings.access_link_ttl_seconds),
    }
    token = jwt.encode(payload, settings.external_signing_key, algorithm=settings.jwt_algorithm)
    return f"{settings.project_management_app_url.rstrip('/')}/sso?token={token}"


def sign_payload(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of ``body`` keyed by the subscription secret."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def register_webhook(
    db: Session,
    *,
    callback_url: str,
    events: list[str],
    secret: str,
) -> ExternalWebhookSubscription:
    """Persist a callback registration and return it."""
    subscription = ExternalWebhookSubscription(
        id=uuid.uuid4().hex,
        callback_url=callback_url,
        events=list(dict.fromkeys(events)),
        secret=secret,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("Registered external webhook %s -> %s", subscription.id, callback_url)
    return subscription


class WebhookNotifier:
    """Deliver subscription-change notifications to registered callbacks."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _post(self, url: str, body: bytes, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, content=body, headers=headers)
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            return await client.post(url, content=body, headers=headers)

    async def notify_subscription_change(self, db: Session, user: User, event: str) -> int:
        """POST ``event`` for ``user`` to every interested callback.

        Returns the number of successful deliveries. Delivery failures are
        logged and never raised.
        """
        subscriptions = [
            sub for sub in db.query(ExternalWebhookSubscription).all()
            if event in (sub.events or [])
        ]
        if not subscriptions:
            return 0

        payload = {
            "event": event,
            "userId": user.id,
            "username": user.username,
            "plan": user.subscription_plan,
            "timestamp": utcnow().isoformat().replace("+00:00", "Z"),
        }
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")

        delivered = 0
        for sub in subscriptions:
            headers = {
                "Content-Type": "application/json",
                SIGNATURE_HEADER: sign_payload(sub.secret, body),
            }
            try:
                response = await self._post(sub.callback_url, body, headers)
            except httpx.HTTPError as exc:
                logger.error("Error delivering webhook to %s: %s", sub.callback_url, exc)
                continue
            if response.is_success:
                delivered += 1
            else:
                logger.error(
                    "Failed to deliver webhook to %s: %s", sub.callback_url, response.status_code
                )
        return delivered


def get_webhook_notifier() -> WebhookNotifier:
    """Return a new notifier using a per-call HTTP client."""
    return WebhookNotifier()
