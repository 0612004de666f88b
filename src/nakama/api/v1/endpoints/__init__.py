# src/nakama/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .comments import router as comments_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .publications import router as publications_router
from .timeline import router as timeline_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "users_router",
    "posts_router",
    "comments_router",
    "chats_router",
    "notifications_router",
    "timeline_router",
    "publications_router",
]
