"""SQLAlchemy models for the FounderSocials application."""

from .comment import Comment
from .community import Community, CommunityMember
from .post import Post
from .user import User
from .vote import CommentVote, PostVote
from .webhook import ExternalWebhookSubscription, ProcessedWebhookEvent

__all__ = [
    "Comment",
    "Community", "CommunityMember",
    "Post",
    "User",
    "CommentVote", "PostVote",
    "ExternalWebhookSubscription", "ProcessedWebhookEvent",
]
