"""Data access helpers for comments."""
from __future__ import annotations

from sqlalchemy.orm import Session

from foundersocials.models import Comment, Post
from foundersocials.services.ranking import comment_order_by

__all__ = ["CommentRepository"]


class CommentRepository:
    """Thin wrapper around database access for comment entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, comment_id: int) -> Comment | None:
        return self.session.get(Comment, comment_id)

    def list_threads(self, post_id: int, sort: str | None = None) -> list[tuple[Comment, list[Comment]]]:
        """Return top-level comments for a post, each with its direct replies.

        Replies are always ordered by upvotes, regardless of ``sort``.
        """
        top_level = (
            self.session.query(Comment)
            .filter(Comment.post_id == post_id, Comment.parent_id.is_(None))
            .order_by(*comment_order_by(sort))
            .all()
        )
        if not top_level:
            return []

        replies_by_parent: dict[int, list[Comment]] = {comment.id: [] for comment in top_level}
        replies = (
            self.session.query(Comment)
            .filter(Comment.parent_id.in_(list(replies_by_parent)))
            .order_by(Comment.upvotes.desc(), Comment.created_at.asc())
            .all()
        )
        for reply in replies:
            replies_by_parent[reply.parent_id].append(reply)  # type: ignore[index]
        return [(comment, replies_by_parent[comment.id]) for comment in top_level]

    def list_by_author(self, author_id: int) -> list[Comment]:
        return (
            self.session.query(Comment)
            .filter(Comment.author_id == author_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .all()
        )

    def create(
        self,
        *,
        post: Post,
        author_id: int,
        content: str,
        status: str,
        parent: Comment | None = None,
        ai_prompt: str | None = None,
        ai_response: str | None = None,
    ) -> Comment:
        """Persist a comment and bump the post (and parent) counters together."""
        comment = Comment(
            post_id=post.id,
            author_id=author_id,
            parent_id=parent.id if parent is not None else None,
            content=content,
            status=status,
            ai_prompt=ai_prompt,
            ai_response=ai_response,
        )
        try:
            self.session.add(comment)
            post.comment_count = Post.comment_count + 1
            if parent is not None:
                parent.reply_count = Comment.reply_count + 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(comment)
        self.session.refresh(post)
        if parent is not None:
            self.session.refresh(parent)
        return comment

    def update(self, comment: Comment, **fields: object) -> Comment:
        for name, value in fields.items():
            setattr(comment, name, value)
        self.session.commit()
        self.session.refresh(comment)
        return comment
