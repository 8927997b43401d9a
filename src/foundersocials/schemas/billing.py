"""Payment and subscription schemas."""

from pydantic import Field

from .common import CamelModel


class CreateSubscriptionRequest(CamelModel):
    price_id: str | None = None


class CreateSubscriptionResponse(CamelModel):
    subscription_id: str
    client_secret: str | None


class PaymentStatusResponse(CamelModel):
    payment_status: str
    is_premium: bool
    is_active: bool
    has_stripe_subscription: bool
    has_paypal_subscription: bool
    subscription_plan: str
    remaining_prompts: int


class PaypalOrderRequest(CamelModel):
    amount: str = Field(..., min_length=1)
    currency: str = Field("USD", min_length=3, max_length=3)
    intent: str = "CAPTURE"
