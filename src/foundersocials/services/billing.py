"""Billing adapters (Stripe, PayPal) and webhook-driven subscription sync.

Stripe webhook deliveries are applied at most once: the event id is written to
``processed_webhook_events`` in the same transaction as the user mutation, so
a replayed delivery is acknowledged without touching the account again.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foundersocials.core.settings import settings
from foundersocials.models import ProcessedWebhookEvent, User
from foundersocials.models.user import (
    PAID_PLANS,
    PAYMENT_CANCELLED,
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PLAN_FREE,
    PLAN_STANDARD,
)
from foundersocials.repositories import UserRepository
from foundersocials.services.email import Mailer
from foundersocials.services.external_access import (
    EVENT_CANCELLED,
    EVENT_UPGRADED,
    WebhookNotifier,
)

logger = logging.getLogger(__name__)

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")
# Statuses after which Stripe no longer retries payment. "past_due" and
# "incomplete" keep the paid plan while retries are pending.
ENDED_SUBSCRIPTION_STATUSES = ("canceled", "unpaid", "incomplete_expired")


class BillingError(RuntimeError):
    """Base exception raised for payment provider failures."""


class BillingNotConfiguredError(BillingError):
    """Raised when a payment provider is used without credentials."""


class WebhookSignatureError(BillingError):
    """Raised when a webhook payload fails signature verification."""


@dataclass(frozen=True)
class SubscriptionIntent:
    """Incomplete subscription awaiting client-side payment confirmation."""

    subscription_id: str
    client_secret: str | None


def _dig(obj: Any, *keys: str) -> Any:
    for key in keys:
        if obj is None:
            return None
        try:
            obj = obj[key]
        except (KeyError, TypeError, AttributeError):
            return None
    return obj


class StripeGateway:
    """Async facade over the synchronous ``stripe`` SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        price_id: str | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )
        self.price_id = price_id if price_id is not None else settings.stripe_price_id

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _require_key(self) -> str:
        if not self.api_key:
            raise BillingNotConfiguredError("Stripe is not configured")
        return self.api_key

    async def create_customer(self, *, email: str, name: str) -> str:
        api_key = self._require_key()
        try:
            customer = await asyncio.to_thread(
                stripe.Customer.create, email=email, name=name, api_key=api_key
            )
        except stripe.StripeError as exc:
            raise BillingError(f"Stripe customer creation failed: {exc}") from exc
        return str(customer["id"])

    async def create_subscription(self, *, customer_id: str, price_id: str) -> SubscriptionIntent:
        api_key = self._require_key()
        try:
            subscription = await asyncio.to_thread(
                stripe.Subscription.create,
                customer=customer_id,
                items=[{"price": price_id}],
                payment_behavior="default_incomplete",
                payment_settings={"save_default_payment_method": "on_subscription"},
                expand=["latest_invoice.payment_intent"],
                api_key=api_key,
            )
        except stripe.StripeError as exc:
            raise BillingError(f"Stripe subscription creation failed: {exc}") from exc
        return SubscriptionIntent(
            subscription_id=str(subscription["id"]),
            client_secret=_dig(subscription, "latest_invoice", "payment_intent", "client_secret"),
        )

    async def cancel_subscription(self, subscription_id: str) -> None:
        api_key = self._require_key()
        try:
            await asyncio.to_thread(stripe.Subscription.cancel, subscription_id, api_key=api_key)
        except stripe.StripeError as exc:
            raise BillingError(f"Stripe cancellation failed: {exc}") from exc

    def construct_event(self, payload: bytes, signature_header: str) -> dict[str, Any]:
        """Verify a webhook delivery and return the event as a plain dict."""
        if not self.webhook_secret:
            raise BillingNotConfiguredError("Stripe webhook secret is not configured")
        try:
            stripe.Webhook.construct_event(payload, signature_header, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise WebhookSignatureError(str(exc)) from exc
        return json.loads(payload)


class PaypalClient:
    """Minimal PayPal REST client (OAuth client credentials + Orders v2)."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id if client_id is not None else settings.paypal_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.paypal_client_secret
        )
        self.base_url = (base_url or settings.paypal_base_url).rstrip("/")
        self._http = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if not self.enabled:
            raise BillingNotConfiguredError("PayPal is not configured")
        url = f"{self.base_url}{path}"
        try:
            if self._http is not None:
                return await self._http.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise BillingError(f"PayPal request failed: {exc}") from exc

    async def _access_token(self) -> str:
        response = await self._request(
            "POST",
            "/v1/oauth2/token",
            auth=(self.client_id or "", self.client_secret or ""),
            data={"grant_type": "client_credentials"},
        )
        if response.status_code != 200:
            raise BillingError(f"PayPal authentication failed ({response.status_code})")
        return str(response.json()["access_token"])

    async def _authorized(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._access_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        return await self._request(method, path, headers=headers, **kwargs)

    async def client_token(self) -> str:
        response = await self._authorized("POST", "/v1/identity/generate-token")
        if response.status_code != 200:
            raise BillingError(f"PayPal client token failed ({response.status_code})")
        return str(response.json()["client_token"])

    async def create_order(self, *, amount: str, currency: str, intent: str) -> tuple[int, Any]:
        body = {
            "intent": intent.upper(),
            "purchase_units": [{"amount": {"currency_code": currency.upper(), "value": amount}}],
        }
        response = await self._authorized("POST", "/v2/checkout/orders", json=body)
        return response.status_code, response.json()

    async def capture_order(self, order_id: str) -> tuple[int, Any]:
        response = await self._authorized("POST", f"/v2/checkout/orders/{order_id}/capture")
        return response.status_code, response.json()


FollowUp = Callable[[], Awaitable[Any]]


@dataclass
class WebhookResult:
    """Outcome of applying one provider event."""

    duplicate: bool = False
    handled: bool = False
    follow_ups: list[FollowUp] = field(default_factory=list)


class StripeWebhookProcessor:
    """Apply verified Stripe events to user accounts exactly once."""

    def __init__(self, db: Session, *, mailer: Mailer, notifier: WebhookNotifier) -> None:
        self.db = db
        self.users = UserRepository(db)
        self.mailer = mailer
        self.notifier = notifier

    async def process(self, event: dict[str, Any]) -> WebhookResult:
        """Apply ``event``; emails and outbound notifications run after commit."""
        event_id = str(event.get("id") or "")
        event_type = str(event.get("type") or "")
        if not event_id:
            raise WebhookSignatureError("Event has no id")

        if self.db.get(ProcessedWebhookEvent, event_id) is not None:
            logger.info("Ignoring replayed Stripe event %s (%s)", event_id, event_type)
            return WebhookResult(duplicate=True)

        obj = _dig(event, "data", "object") or {}
        handler = self._handlers().get(event_type)
        result = WebhookResult()
        try:
            if handler is None:
                logger.info("Unhandled Stripe event type %s", event_type)
            else:
                result.handled = True
                handler(obj, result)
            self.db.add(
                ProcessedWebhookEvent(event_id=event_id, provider="stripe", event_type=event_type)
            )
            self.db.commit()
        except IntegrityError:
            # A concurrent delivery of the same event won the ledger insert.
            self.db.rollback()
            logger.info("Stripe event %s was applied concurrently", event_id)
            return WebhookResult(duplicate=True)
        except Exception:
            self.db.rollback()
            raise

        for follow_up in result.follow_ups:
            await follow_up()
        return result

    def _handlers(self) -> dict[str, Callable[[dict[str, Any], WebhookResult], None]]:
        return {
            "payment_intent.succeeded": self._on_payment_succeeded,
            "invoice.payment_succeeded": self._on_payment_succeeded,
            "invoice.paid": self._on_payment_succeeded,
            "invoice.payment_failed": self._on_payment_failed,
            "customer.subscription.created": self._on_subscription_changed,
            "customer.subscription.updated": self._on_subscription_changed,
            "customer.subscription.deleted": self._on_subscription_deleted,
        }

    def _user_for(self, obj: dict[str, Any]) -> User | None:
        customer_id = obj.get("customer")
        if isinstance(customer_id, dict):
            customer_id = customer_id.get("id")
        if not customer_id:
            return None
        user = self.users.get_by_stripe_customer_id(str(customer_id))
        if user is None:
            logger.warning("Stripe event for unknown customer %s", customer_id)
        return user

    def _on_payment_succeeded(self, obj: dict[str, Any], result: WebhookResult) -> None:
        user = self._user_for(obj)
        if user is None:
            return
        user.is_premium = True
        user.is_active = True
        user.payment_status = PAYMENT_COMPLETED
        if user.subscription_plan not in PAID_PLANS:
            user.subscription_plan = PLAN_STANDARD
        result.follow_ups.append(lambda: self.mailer.send_payment_confirmation(user))

    def _on_payment_failed(self, obj: dict[str, Any], result: WebhookResult) -> None:
        user = self._user_for(obj)
        if user is None:
            return
        user.payment_status = PAYMENT_FAILED
        result.follow_ups.append(lambda: self.mailer.send_payment_failed(user))

    def _on_subscription_changed(self, obj: dict[str, Any], result: WebhookResult) -> None:
        user = self._user_for(obj)
        if user is None:
            return
        if obj.get("id"):
            user.stripe_subscription_id = str(obj["id"])
        if obj.get("status") in ACTIVE_SUBSCRIPTION_STATUSES:
            plan = _dig(obj, "metadata", "plan")
            user.subscription_plan = plan if plan in PAID_PLANS else PLAN_STANDARD
            user.is_premium = True
            user.is_active = True
            result.follow_ups.append(
                lambda: self.notifier.notify_subscription_change(self.db, user, EVENT_UPGRADED)
            )
        elif obj.get("status") in ENDED_SUBSCRIPTION_STATUSES:
            self._downgrade(user, result)
        else:
            user.is_active = False

    def _on_subscription_deleted(self, obj: dict[str, Any], result: WebhookResult) -> None:
        user = self._user_for(obj)
        if user is None:
            return
        user.stripe_subscription_id = None
        self._downgrade(user, result)

    def _downgrade(self, user: User, result: WebhookResult) -> None:
        user.subscription_plan = PLAN_FREE
        user.is_premium = False
        user.is_active = False
        user.payment_status = PAYMENT_CANCELLED
        result.follow_ups.append(
            lambda: self.notifier.notify_subscription_change(self.db, user, EVENT_CANCELLED)
        )


def get_stripe_gateway() -> StripeGateway:
    """Return a Stripe gateway bound to the current settings."""
    return StripeGateway()


def get_paypal_client() -> PaypalClient:
    """Return a PayPal client bound to the current settings."""
    return PaypalClient()
