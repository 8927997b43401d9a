"""Authentication and password-reset endpoints."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from foundersocials.api.dependencies import CurrentUserDep, MailerDep, SessionDep
from foundersocials.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from foundersocials.core.settings import settings
from foundersocials.db.time import utcnow
from foundersocials.repositories import UserRepository
from foundersocials.schemas.common import MessageResponse
from foundersocials.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])

RESET_REQUESTED_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: SessionDep, mailer: MailerDep) -> AuthResponse:
    """Create an account on the free plan and return a bearer token."""
    users = UserRepository(db)
    if users.get_by_username(payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
    if payload.email and users.get_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already exists")

    user = users.create(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        display_name=payload.display_name or payload.username,
        remaining_prompts=settings.default_remaining_prompts,
    )
    logger.info("Registered user %s (%s)", user.id, user.username)
    await mailer.send_welcome(user)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, db: SessionDep) -> AuthResponse:
    user = UserRepository(db).get_by_username(payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(user.id),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Bearer tokens are stateless; clients discard theirs."""
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=UserResponse)
async def get_me(current_user: CurrentUserDep) -> UserResponse:
    """Return the authenticated user's account."""
    return UserResponse.model_validate(current_user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: SessionDep,
    mailer: MailerDep,
) -> MessageResponse:
    """Start a password reset without revealing whether the email is registered."""
    if not payload.email.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    users = UserRepository(db)
    user = users.get_by_email(payload.email)
    if user is not None and user.email:
        token = generate_reset_token()
        users.update(
            user,
            reset_token=token,
            reset_token_expiry=utcnow() + timedelta(minutes=settings.reset_token_ttl_minutes),
        )
        await mailer.send_password_reset(user.email, token)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: SessionDep) -> MessageResponse:
    if not payload.token or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token and password are required",
        )
    if len(payload.password) < settings.password_min_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {settings.password_min_length} characters long",
        )

    users = UserRepository(db)
    user = users.get_by_reset_token(payload.token)
    expiry = user.reset_token_expiry if user is not None else None
    if expiry is not None and expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=utcnow().tzinfo)
    if user is None or expiry is None or expiry < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired token")

    users.update(
        user,
        password_hash=hash_password(payload.password),
        reset_token=None,
        reset_token_expiry=None,
    )
    return MessageResponse(message="Password has been reset successfully")
