"""Public profiles and the signed-in user's own content."""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.orm import Session

from foundersocials.api.dependencies import CurrentUserDep, SessionDep
from foundersocials.models import Comment, Community, Post, User
from foundersocials.repositories import (
    CommentRepository,
    CommunityRepository,
    PostRepository,
    UserRepository,
)
from foundersocials.schemas.comment import CommentResponse
from foundersocials.schemas.community import CommunityResponse
from foundersocials.schemas.post import PostResponse
from foundersocials.schemas.user import PublicUserResponse

router = APIRouter(tags=["users"])


def _get_user_or_404(db: Session, username: str) -> User:
    user = UserRepository(db).get_by_username(username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/user/communities", response_model=list[CommunityResponse])
async def list_my_communities(current_user: CurrentUserDep, db: SessionDep) -> list[Community]:
    """Communities the caller is a member of."""
    return CommunityRepository(db).list_for_user(current_user.id)


@router.get("/user/posts", response_model=list[PostResponse])
async def list_my_posts(current_user: CurrentUserDep, db: SessionDep) -> list[Post]:
    return PostRepository(db).list_by_author(current_user.id)


@router.get("/users/{username}", response_model=PublicUserResponse)
async def get_user_profile(username: str, db: SessionDep) -> User:
    """Public profile; never includes email, billing or password fields."""
    return _get_user_or_404(db, username)


@router.get("/users/{username}/posts", response_model=list[PostResponse])
async def list_user_posts(username: str, db: SessionDep) -> list[Post]:
    user = _get_user_or_404(db, username)
    return PostRepository(db).list_by_author(user.id)


@router.get("/users/{username}/comments", response_model=list[CommentResponse])
async def list_user_comments(username: str, db: SessionDep) -> list[Comment]:
    user = _get_user_or_404(db, username)
    return CommentRepository(db).list_by_author(user.id)
