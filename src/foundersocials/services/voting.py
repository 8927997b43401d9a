"""Vote tallying for posts and comments.

A user holds at most one vote per target. Submitting the same vote again
removes it, submitting the opposite vote flips it, otherwise a new vote is
inserted. After every mutation the target's ``upvotes`` and ``downvotes`` are
recomputed from the vote table, and the mutation plus recount are committed
together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from foundersocials.models import Comment, CommentVote, Post, PostVote
from foundersocials.models.vote import DOWNVOTE, UPVOTE, VOTE_TYPES

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_CHANGED = "changed"
ACTION_REMOVED = "removed"


class VoteError(ValueError):
    """Base exception for vote failures."""


class VoteTargetNotFoundError(VoteError):
    """Raised when the post or comment being voted on does not exist."""


class InvalidVoteTypeError(VoteError):
    """Raised for a vote type other than ``upvote`` or ``downvote``."""


@dataclass(frozen=True)
class VoteOutcome:
    """Result of a vote mutation and the freshly recounted totals."""

    action: str
    upvotes: int
    downvotes: int

    @property
    def removed(self) -> bool:
        return self.action == ACTION_REMOVED


def record_post_vote(db: Session, *, user_id: int, post_id: int, vote_type: str) -> VoteOutcome:
    """Apply ``vote_type`` from ``user_id`` to a post."""
    post = db.get(Post, post_id)
    if post is None:
        raise VoteTargetNotFoundError(f"Post {post_id} not found")
    return _record_vote(
        db,
        target=post,
        vote_model=PostVote,
        target_field="post_id",
        user_id=user_id,
        vote_type=vote_type,
    )


def record_comment_vote(
    db: Session, *, user_id: int, comment_id: int, vote_type: str
) -> VoteOutcome:
    """Apply ``vote_type`` from ``user_id`` to a comment."""
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise VoteTargetNotFoundError(f"Comment {comment_id} not found")
    return _record_vote(
        db,
        target=comment,
        vote_model=CommentVote,
        target_field="comment_id",
        user_id=user_id,
        vote_type=vote_type,
    )


def count_votes(db: Session, vote_model: Any, target_field: str, target_id: int) -> tuple[int, int]:
    """Return ``(upvotes, downvotes)`` counted from the vote table."""
    column = getattr(vote_model, target_field)

    def _count(vote_type: str) -> int:
        return db.query(func.count(vote_model.id)).filter(
            column == target_id,
            vote_model.vote_type == vote_type,
        ).scalar() or 0

    return _count(UPVOTE), _count(DOWNVOTE)


def _record_vote(
    db: Session,
    *,
    target: Post | Comment,
    vote_model: Any,
    target_field: str,
    user_id: int,
    vote_type: str,
) -> VoteOutcome:
    if vote_type not in VOTE_TYPES:
        raise InvalidVoteTypeError(f"Invalid vote type: {vote_type!r}")

    column = getattr(vote_model, target_field)
    try:
        existing = db.query(vote_model).filter(
            column == target.id,
            vote_model.user_id == user_id,
        ).first()

        if existing is None:
            db.add(vote_model(user_id=user_id, vote_type=vote_type, **{target_field: target.id}))
            action = ACTION_CREATED
        elif existing.vote_type == vote_type:
            db.delete(existing)
            action = ACTION_REMOVED
        else:
            existing.vote_type = vote_type
            action = ACTION_CHANGED

        db.flush()
        upvotes, downvotes = count_votes(db, vote_model, target_field, target.id)
        target.upvotes = upvotes
        target.downvotes = downvotes
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.debug(
        "Vote %s on %s %s by user %s (%s/%s)",
        action, target_field, target.id, user_id, upvotes, downvotes,
    )
    return VoteOutcome(action=action, upvotes=upvotes, downvotes=downvotes)
