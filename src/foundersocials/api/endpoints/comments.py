"""Comment threads, AI-assisted commenting and comment voting."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.orm import Session

from foundersocials.api.dependencies import (
    BroadcasterDep,
    CurrentUserDep,
    ModeratorDep,
    SessionDep,
)
from foundersocials.models import Comment, Post, User
from foundersocials.models.comment import STATUS_AI_PROCESSED, STATUS_APPROVED, STATUS_PENDING
from foundersocials.repositories import CommentRepository, PostRepository
from foundersocials.schemas.comment import (
    CommentCreate,
    CommentResponse,
    CommentThread,
    EnhanceRequest,
    EnhanceResponse,
    ProcessFlowsResponse,
    RespondToAiRequest,
)
from foundersocials.schemas.vote import VoteRequest, VoteResponse
from foundersocials.services.quota import PromptQuotaError, consume_prompt, ensure_prompt_available
from foundersocials.services.realtime import EVENT_COMMENT_VOTE, EVENT_NEW_COMMENT
from foundersocials.services.voting import VoteTargetNotFoundError, record_comment_vote

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comments"])


def _get_post_or_404(db: Session, post_id: int) -> Post:
    post = PostRepository(db).get(post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _get_comment_or_404(db: Session, comment_id: int) -> Comment:
    comment = CommentRepository(db).get(comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def _ensure_ai_allowed(user: User) -> None:
    try:
        ensure_prompt_available(user)
    except PromptQuotaError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


def _consume_prompt(db: Session, user: User) -> None:
    try:
        consume_prompt(db, user)
    except PromptQuotaError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


@router.get("/posts/{post_id}/comments", response_model=list[CommentThread])
async def list_comments(
    post_id: int,
    db: SessionDep,
    sort: Annotated[str | None, Query(description="top (default), new or old")] = None,
) -> list[CommentThread]:
    """Top-level comments for a post, each with its direct replies."""
    _get_post_or_404(db, post_id)
    threads = CommentRepository(db).list_threads(post_id, sort)
    return [
        CommentThread.model_validate(comment).model_copy(
            update={"replies": [CommentResponse.model_validate(reply) for reply in replies]}
        )
        for comment, replies in threads
    ]


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    moderator: ModeratorDep,
    broadcaster: BroadcasterDep,
) -> CommentResponse:
    """Create a comment after AI moderation.

    Premium users with direct comments enabled skip moderation. Otherwise the
    model's verdict sets the status; a moderation outage approves the comment
    with a generic follow-up question.
    """
    post = _get_post_or_404(db, post_id)
    comments = CommentRepository(db)

    parent = None
    if payload.parent_id is not None:
        parent = comments.get(payload.parent_id)
        if parent is None or parent.post_id != post.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment does not belong to this post",
            )

    ai_prompt = None
    ai_response = None
    if current_user.is_premium and current_user.direct_comments_enabled:
        comment_status = STATUS_APPROVED
    else:
        verdict = await moderator.moderate_comment(payload.content, post.title)
        if verdict.is_approved:
            comment_status = STATUS_APPROVED
            ai_prompt = verdict.ai_prompt
        else:
            comment_status = STATUS_PENDING
            ai_response = verdict.reason

    comment = comments.create(
        post=post,
        author_id=current_user.id,
        content=payload.content,
        status=comment_status,
        parent=parent,
        ai_prompt=ai_prompt,
        ai_response=ai_response,
    )
    response = CommentResponse.model_validate(comment)
    await broadcaster.broadcast(
        EVENT_NEW_COMMENT,
        {
            "postId": post.id,
            "comment": response.model_dump(mode="json", by_alias=True),
            "commentCount": post.comment_count,
        },
    )
    return response


@router.post("/comments/ai-enhance", response_model=EnhanceResponse)
async def enhance_comment(
    payload: EnhanceRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    moderator: ModeratorDep,
) -> EnhanceResponse:
    """Rewrite draft comment text with AI; consumes a prompt on the standard plan."""
    _ensure_ai_allowed(current_user)
    post = _get_post_or_404(db, payload.post_id)

    result = await moderator.enhance_comment(payload.content, post.title)
    if not result.is_approved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment content was flagged as inappropriate",
        )

    _consume_prompt(db, current_user)
    return EnhanceResponse(enhanced_content=result.enhanced_content)


@router.post("/comments/{comment_id}/respond-to-ai", response_model=CommentResponse)
async def respond_to_ai(
    comment_id: int,
    payload: RespondToAiRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    moderator: ModeratorDep,
) -> Comment:
    """Answer the AI follow-up question; the merged text replaces the comment."""
    comment = _get_comment_or_404(db, comment_id)
    if comment.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only respond to prompts on your own comments",
        )
    if not comment.ai_prompt:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This comment has no AI prompt to respond to",
        )

    result = await moderator.process_comment_response(
        comment.content,
        comment.ai_prompt,
        payload.response,
    )
    return CommentRepository(db).update(
        comment,
        content=result.final_comment,
        status=STATUS_APPROVED if result.is_approved else STATUS_PENDING,
        ai_response=payload.response,
    )


@router.post("/comments/{comment_id}/process-flows", response_model=ProcessFlowsResponse)
async def generate_process_flows(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    moderator: ModeratorDep,
) -> ProcessFlowsResponse:
    """Derive project process flows from a comment; consumes a prompt on the standard plan."""
    _ensure_ai_allowed(current_user)
    comment = _get_comment_or_404(db, comment_id)
    post = _get_post_or_404(db, comment.post_id)

    result = await moderator.generate_process_flows(comment.content, post.title)
    if not result.is_approved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not generate process flows for this comment",
        )

    _consume_prompt(db, current_user)
    CommentRepository(db).update(
        comment,
        status=STATUS_AI_PROCESSED,
        process_flows_generated=True,
    )
    return ProcessFlowsResponse.model_validate({"processFlows": result.process_flows})


@router.post("/comments/{comment_id}/vote", response_model=VoteResponse)
async def vote_on_comment(
    comment_id: int,
    payload: VoteRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    broadcaster: BroadcasterDep,
) -> VoteResponse:
    comment = _get_comment_or_404(db, comment_id)
    try:
        outcome = record_comment_vote(
            db,
            user_id=current_user.id,
            comment_id=comment.id,
            vote_type=payload.vote_type,
        )
    except VoteTargetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found") from exc

    await broadcaster.broadcast(
        EVENT_COMMENT_VOTE,
        {
            "commentId": comment.id,
            "postId": comment.post_id,
            "upvotes": outcome.upvotes,
            "downvotes": outcome.downvotes,
        },
    )
    return VoteResponse(
        message="Vote removed" if outcome.removed else "Vote recorded",
        upvotes=outcome.upvotes,
        downvotes=outcome.downvotes,
    )
