# src/foundersocials/api/__init__.py
"""HTTP and WebSocket API for FounderSocials."""

from .endpoints import (
    account_router,
    auth_router,
    comments_router,
    communities_router,
    external_router,
    payments_router,
    posts_router,
    realtime_router,
    search_router,
    users_router,
)

__all__ = [
    "auth_router",
    "account_router",
    "communities_router",
    "posts_router",
    "comments_router",
    "users_router",
    "search_router",
    "payments_router",
    "external_router",
    "realtime_router",
]
