# src/commflock/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .communities import router as communities_router
from .content import router as content_router
from .events import router as events_router
from .payments import router as payments_router
from .polls import router as polls_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "communities_router",
    "content_router",
    "events_router",
    "payments_router",
    "polls_router",
    "users_router",
]
