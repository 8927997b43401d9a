"""Data access helpers grouped by entity."""

from .comment_repo import CommentRepository
from .community_repo import CommunityRepository
from .post_repo import PostRepository
from .user_repo import UserRepository

__all__ = ["CommentRepository", "CommunityRepository", "PostRepository", "UserRepository"]
