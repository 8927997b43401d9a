"""SSO bridge routes for the external project-management app."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from foundersocials.api.dependencies import CurrentUserDep, SessionDep, bearer_scheme
from foundersocials.core.settings import settings
from foundersocials.models import User
from foundersocials.models.user import PAID_PLANS
from foundersocials.repositories import UserRepository
from foundersocials.schemas.external import (
    AccessLinkResponse,
    ExternalTokenResponse,
    VerifiedUserResponse,
    WebhookRegistration,
    WebhookRegistrationResponse,
)
from foundersocials.services.external_access import (
    WEBHOOK_EVENTS,
    ExternalTokenError,
    decode_access_token,
    issue_access_link,
    issue_access_token,
    register_webhook,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/external", tags=["external"])

PREMIUM_REQUIRED = {
    "message": "This feature requires a premium subscription",
    "code": "premium_required",
}


def _require_paid_plan(user: User) -> None:
    if user.subscription_plan not in PAID_PLANS:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=PREMIUM_REQUIRED)


@router.post("/token", response_model=ExternalTokenResponse)
async def create_external_token(current_user: CurrentUserDep) -> ExternalTokenResponse:
    """Issue a one-hour token the external app can verify."""
    _require_paid_plan(current_user)
    return ExternalTokenResponse(
        access_token=issue_access_token(current_user),
        expires_in=settings.external_token_ttl_seconds,
    )


@router.post("/verify", response_model=VerifiedUserResponse)
async def verify_external_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> VerifiedUserResponse:
    """Called by the external app with the token in the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Authorization header missing or invalid", "code": "invalid_token"},
        )

    try:
        claims = decode_access_token(credentials.credentials)
        user_id = int(claims.get("sub"))
    except ExternalTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": exc.message, "code": exc.code},
        ) from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": ExternalTokenError.message, "code": ExternalTokenError.code},
        ) from exc

    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.subscription_plan not in PAID_PLANS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "User subscription has ended", "code": "subscription_ended"},
        )

    return VerifiedUserResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        plan=user.subscription_plan,
    )


@router.get("/access-link", response_model=AccessLinkResponse)
async def create_access_link(current_user: CurrentUserDep) -> AccessLinkResponse:
    _require_paid_plan(current_user)
    return AccessLinkResponse(
        access_link=issue_access_link(current_user),
        expires_in=settings.access_link_ttl_seconds,
    )


@router.post(
    "/webhooks",
    response_model=WebhookRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_webhook(payload: WebhookRegistration, db: SessionDep) -> WebhookRegistrationResponse:
    subscription = register_webhook(
        db,
        callback_url=payload.callback_url,
        events=list(payload.events),
        secret=payload.secret,
    )
    return WebhookRegistrationResponse(
        message="Webhook registered successfully",
        subscription_id=subscription.id,
    )


@router.get("/docs")
async def external_docs() -> dict[str, Any]:
    """Static description of the external integration surface."""
    return {
        "name": f"{settings.app_name} External API",
        "version": settings.app_version,
        "description": f"API for integrating with the {settings.app_name} platform",
        "documentation": {
            "authentication": {
                "description": "JWT-based authentication for premium users",
                "endpoints": [
                    {
                        "path": "/api/external/token",
                        "method": "POST",
                        "description": "Generate an access token for the external application",
                        "requires": "Premium subscription (Standard or Founder plan)",
                    },
                    {
                        "path": "/api/external/verify",
                        "method": "POST",
                        "description": "Verify a token from the external application",
                        "authorization": "Bearer token in Authorization header",
                    },
                    {
                        "path": "/api/external/access-link",
                        "method": "GET",
                        "description": "Generate a single-use access link to the external application",
                        "requires": "Premium subscription (Standard or Founder plan)",
                    },
                ],
            },
            "webhooks": {
                "path": "/api/external/webhooks",
                "method": "POST",
                "description": "Register a webhook to receive notifications about subscription changes",
                "events": list(WEBHOOK_EVENTS),
            },
        },
    }
