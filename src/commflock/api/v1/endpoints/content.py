# src/commflock/api/v1/endpoints/content.py
"""Announcement and badge endpoints for the CommFlock API."""

from __future__ import annotations

from fastapi import APIRouter, status

from commflock.models import Announcement, Badge, UserBadge
from commflock.schemas.content import (
    AnnouncementCreate,
    AnnouncementResponse,
    BadgeAward,
    BadgeCreate,
    BadgeResponse,
    UserBadgeResponse,
)
from commflock.services import content as content_service
from commflock.services.communities import get_community_by_slug

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/communities/{slug}", tags=["content"])


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def list_announcements(slug: str, db: SessionDep) -> list[Announcement]:
    community = get_community_by_slug(db, slug)
    return content_service.list_announcements(db, community)


@router.post(
    "/announcements",
    response_model=AnnouncementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_announcement(
    slug: str,
    payload: AnnouncementCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Announcement:
    """Publish an announcement; owners and admins only."""
    community = get_community_by_slug(db, slug)
    return content_service.create_announcement(db, community, payload, current_user)


@router.get("/badges", response_model=list[BadgeResponse])
async def list_badges(slug: str, db: SessionDep) -> list[Badge]:
    community = get_community_by_slug(db, slug)
    return content_service.list_badges(db, community)


@router.post("/badges", response_model=BadgeResponse, status_code=status.HTTP_201_CREATED)
async def create_badge(
    slug: str,
    payload: BadgeCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Badge:
    community = get_community_by_slug(db, slug)
    return content_service.create_badge(db, community, payload, current_user)


@router.post(
    "/badges/{badge_id}/award",
    response_model=UserBadgeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def award_badge(
    slug: str,
    badge_id: int,
    payload: BadgeAward,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserBadge:
    """Give a badge to an approved member."""
    community = get_community_by_slug(db, slug)
    return content_service.award_badge(db, community, badge_id, payload.user_id, current_user)
