"""Data access helpers for working with posts."""
from __future__ import annotations

import re

from sqlalchemy import or_
from sqlalchemy.orm import Session

from foundersocials.db.expressions import LIKE_ESCAPE, contains_pattern
from foundersocials.db.time import epoch_millis
from foundersocials.models import Post
from foundersocials.services.ranking import post_order_by

__all__ = ["PostRepository", "slugify"]

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
SEARCH_LIMIT = 20

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse anything but ASCII letters and digits to dashes."""
    return _NON_SLUG.sub("-", text.lower()).strip("-")


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, post_id: int) -> Post | None:
        """Return a post by identifier."""
        return self.session.get(Post, post_id)

    def list_feed(
        self,
        *,
        sort: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        community_id: int | None = None,
        community_ids: list[int] | None = None,
    ) -> list[Post]:
        """Return one page of posts ordered by ``sort``.

        Args:
            sort: ``hot`` (default), ``new`` or ``top``.
            page: 1-based page number.
            limit: Page size, clamped to ``MAX_PAGE_SIZE``.
            community_id: Restrict to a single community.
            community_ids: Restrict to a set of communities; an empty list yields no posts.
        """
        query = self.session.query(Post)
        if community_id is not None:
            query = query.filter(Post.community_id == community_id)
        if community_ids is not None:
            if not community_ids:
                return []
            query = query.filter(Post.community_id.in_(community_ids))

        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = (max(page, 1) - 1) * limit
        return query.order_by(*post_order_by(sort)).offset(offset).limit(limit).all()

    def list_by_author(self, author_id: int) -> list[Post]:
        """Return an author's posts, newest first."""
        return (
            self.session.query(Post)
            .filter(Post.author_id == author_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Post]:
        pattern = contains_pattern(query)
        return (
            self.session.query(Post)
            .filter(
                or_(
                    Post.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Post.content.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
            .order_by(Post.created_at.desc())
            .limit(limit)
            .all()
        )

    def create(
        self,
        *,
        author_id: int,
        community_id: int,
        title: str,
        content: str,
        image_url: str | None = None,
    ) -> Post:
        """Insert a new post and return the persisted ORM instance.

        The slug is the slugified title suffixed with the creation time in
        milliseconds, which keeps it unique across identical titles.
        """
        post = Post(
            author_id=author_id,
            community_id=community_id,
            title=title,
            content=content,
            image_url=image_url,
            slug=f"{slugify(title)}-{epoch_millis()}",
        )
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post
