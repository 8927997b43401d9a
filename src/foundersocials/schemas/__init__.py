"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import CommunityCreate, CommunityResponse
from .comment import CommentCreate, CommentResponse, CommentThread
from .post import PostCreate, PostResponse
from .user import PublicUserResponse, UserResponse
from .vote import VoteRequest, VoteResponse

__all__ = [
    "CommunityCreate", "CommunityResponse",
    "CommentCreate", "CommentResponse", "CommentThread",
    "PostCreate", "PostResponse",
    "PublicUserResponse", "UserResponse",
    "VoteRequest", "VoteResponse",
]
