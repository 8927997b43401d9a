"""Models capturing voting interactions on posts and comments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from foundersocials.db.session import Base
from foundersocials.db.time import utcnow

UPVOTE = "upvote"
DOWNVOTE = "downvote"
VOTE_TYPES = (UPVOTE, DOWNVOTE)


class PostVote(Base):
    """Per-user vote on a post."""

    __tablename__ = "post_votes"
    __table_args__ = (
        CheckConstraint("vote_type IN ('upvote', 'downvote')", name="ck_post_vote_type"),
        # At most one vote per (user, post).
        UniqueConstraint("user_id", "post_id", name="uq_post_vote_user_post"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vote_type: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class CommentVote(Base):
    """Per-user vote on a comment."""

    __tablename__ = "comment_votes"
    __table_args__ = (
        CheckConstraint("vote_type IN ('upvote', 'downvote')", name="ck_comment_vote_type"),
        UniqueConstraint("user_id", "comment_id", name="uq_comment_vote_user_comment"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    comment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vote_type: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
