"""Post feeds, creation and voting."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from foundersocials.api.dependencies import (
    BroadcasterDep,
    CurrentUserDep,
    OptionalUserDep,
    SessionDep,
)
from foundersocials.api.endpoints.communities import get_community_or_404
from foundersocials.models import Post
from foundersocials.models.community import VISIBILITY_PUBLIC
from foundersocials.repositories import CommunityRepository, PostRepository
from foundersocials.repositories.post_repo import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from foundersocials.schemas.post import PostCreate, PostResponse
from foundersocials.schemas.vote import VoteRequest, VoteResponse
from foundersocials.services.realtime import EVENT_POST_VOTE
from foundersocials.services.voting import VoteTargetNotFoundError, record_post_vote

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])

SortQuery = Annotated[str | None, Query(description="hot (default), new or top")]
PageQuery = Annotated[int, Query(ge=1)]
LimitQuery = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)]


@router.get("/posts", response_model=list[PostResponse])
async def list_posts(
    db: SessionDep,
    current_user: OptionalUserDep,
    sort: SortQuery = None,
    page: PageQuery = 1,
    limit: LimitQuery = DEFAULT_PAGE_SIZE,
    feed: Annotated[str | None, Query(description="'subscribed' for joined communities")] = None,
) -> list[Post]:
    """Return the global feed, or the caller's subscribed feed."""
    community_ids = None
    if feed == "subscribed":
        if current_user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
            )
        community_ids = CommunityRepository(db).member_community_ids(current_user.id)

    return PostRepository(db).list_feed(
        sort=sort,
        page=page,
        limit=limit,
        community_ids=community_ids,
    )


@router.get("/communities/{community_id}/posts", response_model=list[PostResponse])
async def list_community_posts(
    community_id: int,
    db: SessionDep,
    sort: SortQuery = None,
    page: PageQuery = 1,
    limit: LimitQuery = DEFAULT_PAGE_SIZE,
) -> list[Post]:
    get_community_or_404(db, community_id)
    return PostRepository(db).list_feed(
        sort=sort,
        page=page,
        limit=limit,
        community_id=community_id,
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: SessionDep) -> Post:
    post = PostRepository(db).get(post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.post(
    "/communities/{community_id}/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    community_id: int,
    payload: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Post:
    """Create a post; non-public communities accept posts from members only."""
    community = get_community_or_404(db, community_id)
    if community.visibility != VISIBILITY_PUBLIC:
        membership = CommunityRepository(db).get_membership(current_user.id, community.id)
        if membership is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You must be a member to post in this community",
            )

    post = PostRepository(db).create(
        author_id=current_user.id,
        community_id=community.id,
        title=payload.title,
        content=payload.content,
        image_url=payload.image_url,
    )
    logger.info("Post %s created in community %s", post.id, community.id)
    return post


@router.post("/posts/{post_id}/vote", response_model=VoteResponse)
async def vote_on_post(
    post_id: int,
    payload: VoteRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    broadcaster: BroadcasterDep,
) -> VoteResponse:
    """Cast, flip or toggle off the caller's vote on a post."""
    try:
        outcome = record_post_vote(
            db,
            user_id=current_user.id,
            post_id=post_id,
            vote_type=payload.vote_type,
        )
    except VoteTargetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found") from exc

    await broadcaster.broadcast(
        EVENT_POST_VOTE,
        {"postId": post_id, "upvotes": outcome.upvotes, "downvotes": outcome.downvotes},
    )
    return VoteResponse(
        message="Vote removed" if outcome.removed else "Vote recorded",
        upvotes=outcome.upvotes,
        downvotes=outcome.downvotes,
    )
