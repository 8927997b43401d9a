"""Case-insensitive substring search across posts, communities and users."""

from typing import Annotated, Literal

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import Field

from foundersocials.api.dependencies import SessionDep
from foundersocials.models import Community, Post, User
from foundersocials.repositories import CommunityRepository, PostRepository, UserRepository
from foundersocials.schemas.common import CamelModel
from foundersocials.schemas.community import CommunityResponse
from foundersocials.schemas.post import PostResponse
from foundersocials.schemas.user import PublicUserResponse

router = APIRouter(prefix="/search", tags=["search"])

SearchQuery = Annotated[str | None, Query(description="Substring to look for")]


class SearchResults(CamelModel):
    """Combined results for ``GET /search``."""

    posts: list[PostResponse] = Field(default_factory=list)
    communities: list[CommunityResponse] = Field(default_factory=list)
    users: list[PublicUserResponse] = Field(default_factory=list)


def _clean(q: str | None) -> str:
    return (q or "").strip()


@router.get("", response_model=SearchResults)
async def search_all(
    db: SessionDep,
    q: SearchQuery = None,
    type: Literal["all", "posts", "communities", "users"] = "all",  # noqa: A002
) -> SearchResults:
    query = _clean(q)
    if not query:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required",
        )

    results = SearchResults()
    if type in ("all", "posts"):
        results.posts = [PostResponse.model_validate(p) for p in PostRepository(db).search(query)]
    if type in ("all", "communities"):
        results.communities = [
            CommunityResponse.model_validate(c) for c in CommunityRepository(db).search(query)
        ]
    if type in ("all", "users"):
        results.users = [
            PublicUserResponse.model_validate(u) for u in UserRepository(db).search(query)
        ]
    return results


@router.get("/posts", response_model=list[PostResponse])
async def search_posts(db: SessionDep, q: SearchQuery = None) -> list[Post]:
    query = _clean(q)
    if not query:
        return []
    return PostRepository(db).search(query)


@router.get("/communities", response_model=list[CommunityResponse])
async def search_communities(db: SessionDep, q: SearchQuery = None) -> list[Community]:
    query = _clean(q)
    if not query:
        return []
    return CommunityRepository(db).search(query)


@router.get("/users", response_model=list[PublicUserResponse])
async def search_users(db: SessionDep, q: SearchQuery = None) -> list[User]:
    query = _clean(q)
    if not query:
        return []
    return UserRepository(db).search(query)
