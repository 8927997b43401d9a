"""Community-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import CamelModel


class CommunityCreate(CamelModel):
    """Schema for creating a new community."""

    name: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    display_name: str = Field(..., min_length=3, max_length=128)
    description: str | None = Field(None, min_length=10)
    icon_url: str | None = None
    banner_url: str | None = None
    visibility: Literal["public", "restricted", "private"] = "public"


class CommunityResponse(CamelModel):
    """Schema for community information returned by the API."""

    id: int
    name: str
    display_name: str
    description: str | None
    icon_url: str | None
    banner_url: str | None
    visibility: str
    creator_id: int | None
    member_count: int
    created_at: datetime


class MembershipResponse(CamelModel):
    message: str
    member_count: int
