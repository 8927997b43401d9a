"""Data access helpers for user accounts."""
from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from foundersocials.db.expressions import LIKE_ESCAPE, contains_pattern
from foundersocials.models import (
    Comment,
    CommentVote,
    Community,
    CommunityMember,
    Post,
    PostVote,
    User,
)
from foundersocials.services.voting import count_votes

__all__ = ["UserRepository"]

SEARCH_LIMIT = 20


class UserRepository:
    """Thin wrapper around database access for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> User | None:
        return self.session.query(User).filter(User.username == username).first()

    def get_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def get_by_stripe_customer_id(self, customer_id: str) -> User | None:
        return self.session.query(User).filter(User.stripe_customer_id == customer_id).first()

    def get_by_reset_token(self, token: str) -> User | None:
        return self.session.query(User).filter(User.reset_token == token).first()

    def create(self, **fields: Any) -> User:
        """Insert a new user and return the persisted row."""
        user = User(**fields)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update(self, user: User, **fields: Any) -> User:
        """Assign ``fields`` on ``user`` and commit."""
        for name, value in fields.items():
            setattr(user, name, value)
        self.session.commit()
        self.session.refresh(user)
        return user

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[User]:
        """Case-insensitive substring match on username and display name."""
        pattern = contains_pattern(query)
        return (
            self.session.query(User)
            .filter(
                or_(
                    User.username.ilike(pattern, escape=LIKE_ESCAPE),
                    User.display_name.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
            .order_by(User.username)
            .limit(limit)
            .all()
        )

    def consume_prompt(self, user_id: int) -> bool:
        """Atomically take one AI prompt from the user's quota.

        Returns False when the quota is already exhausted, including when a
        concurrent request consumed the last prompt first.
        """
        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.remaining_prompts > 0)
            .values(remaining_prompts=User.remaining_prompts - 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        user = self.session.get(User, user_id)
        if user is not None:
            self.session.refresh(user)
        return result.rowcount == 1

    def delete_account(self, user: User) -> None:
        """Delete the user and everything they authored, in one transaction.

        Replies written by other users under a deleted comment go with it, and
        the counters of surviving posts and comments are recounted.
        """
        db = self.session
        try:
            post_ids = [row.id for row in db.query(Post.id).filter(Post.author_id == user.id)]
            levels = [[
                row.id
                for row in db.query(Comment.id).filter(
                    or_(Comment.author_id == user.id, Comment.post_id.in_(post_ids))
                )
            ]]
            seen = set(levels[0])
            while levels[-1]:
                replies = [
                    row.id
                    for row in db.query(Comment.id).filter(Comment.parent_id.in_(levels[-1]))
                    if row.id not in seen
                ]
                seen.update(replies)
                levels.append(replies)
            comment_ids = list(seen)

            touched_posts = {
                row.post_id
                for row in db.query(Comment.post_id).filter(Comment.id.in_(comment_ids))
                if row.post_id not in post_ids
            }
            touched_parents = {
                row.parent_id
                for row in db.query(Comment.parent_id).filter(
                    Comment.id.in_(comment_ids), Comment.parent_id.is_not(None)
                )
                if row.parent_id not in seen
            }
            voted_posts = {
                row.post_id
                for row in db.query(PostVote.post_id).filter(PostVote.user_id == user.id)
                if row.post_id not in post_ids
            }
            voted_comments = {
                row.comment_id
                for row in db.query(CommentVote.comment_id).filter(CommentVote.user_id == user.id)
                if row.comment_id not in seen
            }

            db.query(CommentVote).filter(
                or_(CommentVote.user_id == user.id, CommentVote.comment_id.in_(comment_ids))
            ).delete(synchronize_session=False)
            db.query(PostVote).filter(
                or_(PostVote.user_id == user.id, PostVote.post_id.in_(post_ids))
            ).delete(synchronize_session=False)
            # Deepest replies first so self-referencing rows never dangle.
            for level in reversed(levels):
                if level:
                    db.query(Comment).filter(Comment.id.in_(level)).delete(
                        synchronize_session=False
                    )
            db.query(Post).filter(Post.id.in_(post_ids)).delete(synchronize_session=False)

            self._recount_after_delete(touched_posts, touched_parents)
            self._recount_votes(voted_posts, voted_comments)

            memberships = db.query(CommunityMember).filter(CommunityMember.user_id == user.id).all()
            for membership in memberships:
                community = db.get(Community, membership.community_id)
                if community is not None:
                    community.member_count = max(0, community.member_count - 1)
                db.delete(membership)
            db.query(Community).filter(Community.creator_id == user.id).update(
                {Community.creator_id: None}, synchronize_session=False
            )

            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            raise

    def _recount_after_delete(self, post_ids: set[int], parent_ids: set[int]) -> None:
        db = self.session
        for post_id in post_ids:
            count = db.query(func.count(Comment.id)).filter(Comment.post_id == post_id).scalar()
            db.query(Post).filter(Post.id == post_id).update(
                {Post.comment_count: count or 0}, synchronize_session=False
            )
        for parent_id in parent_ids:
            count = db.query(func.count(Comment.id)).filter(Comment.parent_id == parent_id).scalar()
            db.query(Comment).filter(Comment.id == parent_id).update(
                {Comment.reply_count: count or 0}, synchronize_session=False
            )

    def _recount_votes(self, post_ids: set[int], comment_ids: set[int]) -> None:
        db = self.session
        for post_id in post_ids:
            upvotes, downvotes = count_votes(db, PostVote, "post_id", post_id)
            db.query(Post).filter(Post.id == post_id).update(
                {Post.upvotes: upvotes, Post.downvotes: downvotes}, synchronize_session=False
            )
        for comment_id in comment_ids:
            upvotes, downvotes = count_votes(db, CommentVote, "comment_id", comment_id)
            db.query(Comment).filter(Comment.id == comment_id).update(
                {Comment.upvotes: upvotes, Comment.downvotes: downvotes},
                synchronize_session=False,
            )
