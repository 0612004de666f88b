# src/nakama/api/v1/router.py
"""Versioned API router wiring for v1.

Composes the endpoint routers into a single ``api_v1`` router that the
application mounts under ``/api``. No endpoint is defined here.
"""
from __future__ import annotations

from typing import Final

from fastapi import APIRouter

from .endpoints import (
    auth_router,
    chats_router,
    comments_router,
    notifications_router,
    posts_router,
    publications_router,
    timeline_router,
    users_router,
)

api_v1: Final[APIRouter] = APIRouter()
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(posts_router)
api_v1.include_router(comments_router)
api_v1.include_router(chats_router)
api_v1.include_router(notifications_router)
api_v1.include_router(timeline_router)
api_v1.include_router(publications_router)

__all__ = ["api_v1"]
