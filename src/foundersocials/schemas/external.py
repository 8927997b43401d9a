"""Schemas for the external project-management integration."""

from typing import Literal

from pydantic import Field, field_validator

from .common import CamelModel

WebhookEvent = Literal[
    "subscription.upgraded",
    "subscription.downgraded",
    "subscription.cancelled",
]


class ExternalTokenResponse(CamelModel):
    access_token: str
    expires_in: int
    token_type: str = "Bearer"


class VerifiedUserResponse(CamelModel):
    user_id: int
    username: str
    email: str | None
    plan: str
    is_valid: bool = True


class AccessLinkResponse(CamelModel):
    access_link: str
    expires_in: int


class WebhookRegistration(CamelModel):
    """Callback registration; the secret signs every delivery."""

    callback_url: str
    events: list[WebhookEvent] = Field(..., min_length=1)
    secret: str = Field(..., min_length=16)

    @field_validator("callback_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("callbackUrl must be an http(s) URL")
        return value


class WebhookRegistrationResponse(CamelModel):
    message: str
    subscription_id: str
