"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class PostCreate(CamelModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=5, max_length=300)
    content: str = Field(..., min_length=10)
    image_url: str | None = None


class AuthorSummary(CamelModel):
    id: int
    username: str
    display_name: str | None = None
    avatar_url: str | None = None


class CommunitySummary(CamelModel):
    id: int
    name: str
    display_name: str


class PostResponse(CamelModel):
    """Schema for post information returned by the API."""

    id: int
    title: str
    content: str
    image_url: str | None
    slug: str | None
    author_id: int
    community_id: int
    upvotes: int
    downvotes: int
    comment_count: int
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary | None = None
    community: CommunitySummary | None = None
