# src/commflock/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    communities_router,
    content_router,
    events_router,
    payments_router,
    polls_router,
    users_router,
)

__all__ = [
    "auth_router",
    "communities_router",
    "content_router",
    "events_router",
    "payments_router",
    "polls_router",
    "users_router",
]
