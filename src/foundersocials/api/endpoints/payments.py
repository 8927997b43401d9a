"""Stripe and PayPal payment routes."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from fastapi import APIRouter, Header, HTTPException, Request, status

from foundersocials.api.dependencies import (
    CurrentUserDep,
    MailerDep,
    NotifierDep,
    PaypalDep,
    SessionDep,
    StripeDep,
)
from foundersocials.models.user import PAYMENT_CANCELLED, PAYMENT_COMPLETED, PLAN_FREE, PLAN_STANDARD
from foundersocials.repositories import UserRepository
from foundersocials.schemas.billing import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    PaymentStatusResponse,
    PaypalOrderRequest,
)
from foundersocials.schemas.common import MessageResponse
from foundersocials.services.billing import (
    BillingError,
    BillingNotConfiguredError,
    StripeWebhookProcessor,
    WebhookSignatureError,
)
from foundersocials.services.external_access import EVENT_CANCELLED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _payment_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post("/stripe/create-subscription", response_model=CreateSubscriptionResponse)
async def create_stripe_subscription(
    current_user: CurrentUserDep,
    db: SessionDep,
    stripe_gateway: StripeDep,
    payload: CreateSubscriptionRequest | None = None,
) -> CreateSubscriptionResponse:
    """Start an incomplete subscription and hand back the payment client secret."""
    if not stripe_gateway.enabled:
        raise _payment_error("Stripe is not configured")

    price_id = (payload.price_id if payload else None) or stripe_gateway.price_id
    if not price_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Price ID is required")

    users = UserRepository(db)
    try:
        customer_id = current_user.stripe_customer_id
        if not customer_id:
            if not current_user.email:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="An email address is required to subscribe",
                )
            customer_id = await stripe_gateway.create_customer(
                email=current_user.email,
                name=current_user.display_name or current_user.username,
            )
            users.update(current_user, stripe_customer_id=customer_id)

        intent = await stripe_gateway.create_subscription(customer_id=customer_id, price_id=price_id)
    except BillingError as exc:
        logger.error("Stripe subscription for user %s failed: %s", current_user.id, exc)
        raise _payment_error("Failed to create subscription") from exc

    users.update(current_user, stripe_subscription_id=intent.subscription_id)
    return CreateSubscriptionResponse(
        subscription_id=intent.subscription_id,
        client_secret=intent.client_secret,
    )


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    db: SessionDep,
    stripe_gateway: StripeDep,
    mailer: MailerDep,
    notifier: NotifierDep,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> dict[str, Any]:
    """Apply a signed Stripe event; replays are acknowledged without side effects."""
    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header",
        )

    payload = await request.body()
    try:
        event = stripe_gateway.construct_event(payload, stripe_signature)
    except BillingNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stripe webhook secret is not configured",
        ) from exc
    except WebhookSignatureError as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {exc}",
        ) from exc

    processor = StripeWebhookProcessor(db, mailer=mailer, notifier=notifier)
    try:
        result = await processor.process(event)
    except WebhookSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if result.duplicate:
        return {"received": True, "duplicate": True}
    return {"received": True}


@router.get("/status", response_model=PaymentStatusResponse)
async def get_payment_status(current_user: CurrentUserDep) -> PaymentStatusResponse:
    return PaymentStatusResponse(
        payment_status=current_user.payment_status,
        is_premium=current_user.is_premium,
        is_active=current_user.is_active,
        has_stripe_subscription=bool(current_user.stripe_subscription_id),
        has_paypal_subscription=bool(current_user.paypal_subscription_id),
        subscription_plan=current_user.subscription_plan,
        remaining_prompts=current_user.remaining_prompts,
    )


@router.post("/cancel-subscription", response_model=MessageResponse)
async def cancel_subscription(
    current_user: CurrentUserDep,
    db: SessionDep,
    stripe_gateway: StripeDep,
    mailer: MailerDep,
    notifier: NotifierDep,
) -> MessageResponse:
    """Cancel the caller's subscription and drop them to the free plan."""
    if not current_user.stripe_subscription_id and not current_user.paypal_subscription_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active subscription found",
        )

    if current_user.stripe_subscription_id:
        try:
            await stripe_gateway.cancel_subscription(current_user.stripe_subscription_id)
        except BillingError as exc:
            logger.error("Cancelling subscription for user %s failed: %s", current_user.id, exc)
            raise _payment_error("Failed to cancel subscription") from exc

    user = UserRepository(db).update(
        current_user,
        stripe_subscription_id=None,
        paypal_subscription_id=None,
        subscription_plan=PLAN_FREE,
        is_premium=False,
        is_active=False,
        payment_status=PAYMENT_CANCELLED,
    )
    await mailer.send_subscription_cancelled(user)
    await notifier.notify_subscription_change(db, user, EVENT_CANCELLED)
    return MessageResponse(message="Subscription cancelled successfully")


@router.get("/paypal/setup")
async def paypal_setup(current_user: CurrentUserDep, paypal: PaypalDep) -> dict[str, str]:
    """Client token for the PayPal JS SDK."""
    try:
        return {"clientToken": await paypal.client_token()}
    except BillingError as exc:
        logger.error("PayPal setup failed: %s", exc)
        raise _payment_error("Failed to initialize PayPal") from exc


@router.post("/paypal/order")
async def create_paypal_order(
    payload: PaypalOrderRequest,
    current_user: CurrentUserDep,
    paypal: PaypalDep,
) -> Any:
    try:
        amount = Decimal(payload.amount)
    except InvalidOperation as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid amount. Amount must be a positive number.",
        ) from exc
    if not amount.is_finite() or amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid amount. Amount must be a positive number.",
        )

    try:
        status_code, body = await paypal.create_order(
            amount=payload.amount,
            currency=payload.currency,
            intent=payload.intent,
        )
    except BillingError as exc:
        logger.error("PayPal order creation failed: %s", exc)
        raise _payment_error("Failed to create order") from exc

    if status_code >= 400:
        raise HTTPException(status_code=status_code, detail=body)
    return body


@router.post("/paypal/order/{order_id}/capture")
async def capture_paypal_order(
    order_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    paypal: PaypalDep,
    mailer: MailerDep,
) -> Any:
    """Capture an approved order and activate the caller's premium plan."""
    try:
        status_code, body = await paypal.capture_order(order_id)
    except BillingError as exc:
        logger.error("PayPal capture of %s failed: %s", order_id, exc)
        raise _payment_error("Failed to capture order") from exc

    if status_code not in (200, 201):
        raise HTTPException(status_code=status_code, detail=body)

    user = UserRepository(db).update(
        current_user,
        paypal_subscription_id=order_id,
        is_premium=True,
        is_active=True,
        payment_status=PAYMENT_COMPLETED,
        subscription_plan=(
            current_user.subscription_plan
            if current_user.has_paid_plan
            else PLAN_STANDARD
        ),
    )
    await mailer.send_payment_confirmation(user)
    return body
