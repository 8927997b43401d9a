"""User, authentication and profile schemas."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from .common import CamelModel

PASSWORD_MIN_LENGTH = 8


class RegisterRequest(CamelModel):
    """Payload for creating an account."""

    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    email: str | None = Field(None, max_length=255)
    display_name: str | None = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value.strip().lower()


class LoginRequest(CamelModel):
    username: str
    password: str


class PublicUserResponse(CamelModel):
    """Profile fields visible to anyone."""

    id: int
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    profile_image_url: str | None = None
    cover_image_url: str | None = None
    location: str | None = None
    website: str | None = None
    company: str | None = None
    job_title: str | None = None
    is_premium: bool = False
    created_at: datetime


class UserResponse(PublicUserResponse):
    """The authenticated user's own account, without secrets."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    privacy: str = "public"
    is_active: bool = False
    payment_status: str = "pending"
    subscription_plan: str = "free"
    direct_comments_enabled: bool = False
    remaining_prompts: int = 0


class AuthResponse(CamelModel):
    """Returned by register and login."""

    user: UserResponse
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(CamelModel):
    """Basic profile edit; an empty string clears the field."""

    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None


class ExtendedProfileUpdate(CamelModel):
    """Full profile edit used by the profile settings page."""

    display_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    company: str | None = None
    job_title: str | None = None
    profile_image_url: str | None = None
    cover_image_url: str | None = None
    privacy: Literal["public", "friends", "private"] | None = None


class AccountUpdate(CamelModel):
    """Account settings; ``phone`` and ``direct_comments_enabled`` are premium only."""

    username: str | None = Field(None, min_length=3, max_length=64)
    email: str | None = None
    password: str | None = Field(None, min_length=PASSWORD_MIN_LENGTH)
    phone: str | None = None
    direct_comments_enabled: bool | None = None


class ForgotPasswordRequest(CamelModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str | None = None
    password: str | None = None
