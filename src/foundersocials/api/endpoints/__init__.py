# src/foundersocials/api/endpoints/__init__.py
"""API endpoint modules."""

from .account import router as account_router
from .auth import router as auth_router
from .comments import router as comments_router
from .communities import router as communities_router
from .external import router as external_router
from .payments import router as payments_router
from .posts import router as posts_router
from .realtime import router as realtime_router
from .search import router as search_router
from .users import router as users_router

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
