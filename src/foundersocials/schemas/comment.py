"""Comment and AI-assist schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel
from .post import AuthorSummary


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)
    parent_id: int | None = None


class CommentResponse(CamelModel):
    """A comment together with its moderation fields."""

    id: int
    content: str
    author_id: int
    post_id: int
    parent_id: int | None
    upvotes: int
    downvotes: int
    reply_count: int
    status: str
    ai_prompt: str | None
    ai_response: str | None
    process_flows_generated: bool
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary | None = None


class CommentThread(CommentResponse):
    """Top-level comment with its direct replies."""

    replies: list[CommentResponse] = Field(default_factory=list)


class RespondToAiRequest(CamelModel):
    response: str = Field(..., min_length=1)


class EnhanceRequest(CamelModel):
    content: str = Field(..., min_length=1)
    post_id: int


class EnhanceResponse(CamelModel):
    enhanced_content: str


class ProcessFlowStep(CamelModel):
    name: str
    description: str = ""


class ProcessFlow(CamelModel):
    title: str
    description: str = ""
    steps: list[ProcessFlowStep] = Field(default_factory=list)


class ProcessFlowsResponse(CamelModel):
    process_flows: list[ProcessFlow]
