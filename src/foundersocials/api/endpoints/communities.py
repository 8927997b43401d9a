"""Community-related endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.orm import Session

from foundersocials.api.dependencies import BroadcasterDep, CurrentUserDep, SessionDep
from foundersocials.models import Community
from foundersocials.repositories import CommunityRepository
from foundersocials.repositories.community_repo import AlreadyMemberError, MembershipError
from foundersocials.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    MembershipResponse,
)
from foundersocials.services.realtime import EVENT_COMMUNITY_CREATED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communities", tags=["communities"])


def get_community_or_404(db: Session, community_id: int) -> Community:
    community = CommunityRepository(db).get(community_id)
    if community is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Community not found")
    return community


@router.get("", response_model=list[CommunityResponse])
async def list_communities(db: SessionDep) -> list[Community]:
    """List all communities, largest first."""
    return CommunityRepository(db).list_all()


@router.get("/trending", response_model=list[CommunityResponse])
async def trending_communities(db: SessionDep) -> list[Community]:
    return CommunityRepository(db).list_trending()


@router.get("/{name}", response_model=CommunityResponse)
async def get_community(name: str, db: SessionDep) -> Community:
    """Get a community by its unique name."""
    community = CommunityRepository(db).get_by_name(name)
    if community is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Community not found")
    return community


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    payload: CommunityCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    broadcaster: BroadcasterDep,
) -> CommunityResponse:
    """Create a community; the creator becomes its first admin."""
    communities = CommunityRepository(db)
    if communities.get_by_name(payload.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Community name already exists",
        )

    community = communities.create(creator=current_user, **payload.model_dump())
    logger.info("Community %s created by user %s", community.name, current_user.id)

    response = CommunityResponse.model_validate(community)
    await broadcaster.broadcast(
        EVENT_COMMUNITY_CREATED,
        response.model_dump(mode="json", by_alias=True),
    )
    return response


@router.post("/{community_id}/join", response_model=MembershipResponse)
async def join_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MembershipResponse:
    community = get_community_or_404(db, community_id)
    try:
        community = CommunityRepository(db).join(current_user.id, community)
    except AlreadyMemberError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MembershipResponse(
        message="Successfully joined community",
        member_count=community.member_count,
    )


@router.post("/{community_id}/leave", response_model=MembershipResponse)
async def leave_community(
    community_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MembershipResponse:
    """Leave a community. The last remaining admin cannot leave."""
    community = get_community_or_404(db, community_id)
    try:
        community = CommunityRepository(db).leave(current_user.id, community)
    except MembershipError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MembershipResponse(
        message="Successfully left community",
        member_count=community.member_count,
    )
