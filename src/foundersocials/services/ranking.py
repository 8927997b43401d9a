"""Feed ordering for posts and comments.

``hot`` blends net votes with recency so that a post's score rises by one
point for every 45000 seconds (12.5 hours) of newness:

    score = (upvotes - downvotes) + epoch_seconds(created_at) / 45000

The score is evaluated by the database inside ``ORDER BY`` so that pagination
stays consistent with ranking; :func:`hot_score` mirrors the formula in Python.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from foundersocials.db.expressions import epoch_seconds
from foundersocials.models import Comment, Post

HOT_DECAY_SECONDS = 45000

SORT_HOT = "hot"
SORT_NEW = "new"
SORT_TOP = "top"
POST_SORTS = (SORT_HOT, SORT_NEW, SORT_TOP)

COMMENT_SORT_TOP = "top"
COMMENT_SORT_NEW = "new"
COMMENT_SORT_OLD = "old"

_POST_SORT_ALIASES = {"recent": SORT_NEW, "latest": SORT_NEW}


def normalize_post_sort(sort: str | None) -> str:
    """Map a client-supplied sort name to a known one, defaulting to hot."""
    if not sort:
        return SORT_HOT
    sort = _POST_SORT_ALIASES.get(sort.lower(), sort.lower())
    return sort if sort in POST_SORTS else SORT_HOT


def hot_score(upvotes: int, downvotes: int, created_at: datetime) -> float:
    """Return the hot score for a post with the given counters and age."""
    return (upvotes - downvotes) + created_at.timestamp() / HOT_DECAY_SECONDS


def hot_score_expression() -> Any:
    """SQL expression equivalent to :func:`hot_score` for the ``posts`` table."""
    return (Post.upvotes - Post.downvotes) + epoch_seconds(Post.created_at) / HOT_DECAY_SECONDS


def post_order_by(sort: str | None) -> list[Any]:
    """Return ``ORDER BY`` clauses for a post feed sort."""
    sort = normalize_post_sort(sort)
    if sort == SORT_NEW:
        return [Post.created_at.desc(), Post.id.desc()]
    if sort == SORT_TOP:
        return [Post.upvotes.desc(), Post.created_at.desc(), Post.id.desc()]
    return [hot_score_expression().desc(), Post.id.desc()]


def comment_order_by(sort: str | None) -> list[Any]:
    """Return ``ORDER BY`` clauses for top-level comments; ``top`` is the default."""
    if sort == COMMENT_SORT_NEW:
        return [Comment.created_at.desc(), Comment.id.desc()]
    if sort == COMMENT_SORT_OLD:
        return [Comment.created_at.asc(), Comment.id.asc()]
    return [Comment.upvotes.desc(), Comment.created_at.desc(), Comment.id.desc()]
