"""Profile, account settings, avatar upload and account deletion."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, UploadFile, status

from foundersocials.api.dependencies import CurrentUserDep, SessionDep, StripeDep
from foundersocials.core.security import hash_password
from foundersocials.repositories import UserRepository
from foundersocials.schemas.common import MessageResponse
from foundersocials.schemas.user import (
    AccountUpdate,
    ExtendedProfileUpdate,
    ProfileUpdate,
    UserResponse,
)
from foundersocials.services.billing import BillingError
from foundersocials.services.uploads import delete_upload, save_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["account"])


def _blank_to_none(value: str | None) -> str | None:
    return None if value == "" else value


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: CurrentUserDep) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserResponse:
    """Update display name, bio and avatar; empty strings clear a field."""
    changes = {
        name: _blank_to_none(value)
        for name, value in payload.model_dump(exclude_unset=True).items()
    }
    user = UserRepository(db).update(current_user, **changes)
    return UserResponse.model_validate(user)


@router.put("/user/profile", response_model=UserResponse)
async def update_extended_profile(
    payload: ExtendedProfileUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserResponse:
    changes = {
        name: value if name == "privacy" else _blank_to_none(value)
        for name, value in payload.model_dump(exclude_unset=True).items()
    }
    if changes.get("privacy") is None:
        changes.pop("privacy", None)
    user = UserRepository(db).update(current_user, **changes)
    return UserResponse.model_validate(user)


@router.patch("/account", response_model=UserResponse)
async def update_account(
    payload: AccountUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserResponse:
    """Change login details; phone and direct comments are premium settings."""
    users = UserRepository(db)
    changes: dict[str, object] = {}

    if payload.username and payload.username != current_user.username:
        existing = users.get_by_username(payload.username)
        if existing is not None and existing.id != current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")
        changes["username"] = payload.username

    if payload.email:
        email = payload.email.strip().lower()
        if "@" not in email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email address")
        if email != current_user.email:
            existing = users.get_by_email(email)
            if existing is not None and existing.id != current_user.id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
            changes["email"] = email

    if payload.password:
        changes["password_hash"] = hash_password(payload.password)

    if current_user.is_premium:
        fields = payload.model_fields_set
        if "phone" in fields:
            changes["phone"] = _blank_to_none(payload.phone)
        if "direct_comments_enabled" in fields and payload.direct_comments_enabled is not None:
            changes["direct_comments_enabled"] = payload.direct_comments_enabled

    user = users.update(current_user, **changes)
    return UserResponse.model_validate(user)


@router.post("/uploads/avatar", response_model=UserResponse)
async def upload_avatar(
    file: UploadFile,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserResponse:
    """Store an avatar image and point the user's ``avatarUrl`` at it."""
    content = await file.read()
    try:
        url = await save_upload(
            current_user.id, file.filename or "avatar.png", content, file.content_type
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    previous = current_user.avatar_url
    user = UserRepository(db).update(current_user, avatar_url=url)
    delete_upload(previous, user.id)
    return UserResponse.model_validate(user)


@router.post("/account/delete", response_model=MessageResponse)
async def delete_account(
    current_user: CurrentUserDep,
    db: SessionDep,
    stripe_gateway: StripeDep,
) -> MessageResponse:
    """Delete the account and everything the user authored.

    An active Stripe subscription is cancelled first; a cancellation failure
    is logged and does not block deletion.
    """
    if current_user.stripe_subscription_id:
        try:
            await stripe_gateway.cancel_subscription(current_user.stripe_subscription_id)
        except BillingError as exc:
            logger.error(
                "Error cancelling Stripe subscription for deleted user %s: %s",
                current_user.id,
                exc,
            )

    user_id, avatar = current_user.id, current_user.avatar_url
    UserRepository(db).delete_account(current_user)
    delete_upload(avatar, user_id)
    return MessageResponse(message="Account deleted successfully")
