# src/commflock/api/v1/endpoints/communities.py
"""Community registry and membership endpoints for the CommFlock API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from commflock.models import Community, CommunityMember
from commflock.schemas.community import (
    CommunityCreate,
    CommunityDetail,
    CommunityPage,
    CommunityResponse,
    CommunityUpdate,
    MembershipResponse,
    MembershipUpdate,
)
from commflock.services import communities as community_service
from commflock.services import membership as membership_service
from commflock.services.rate_limit import LimitTier

from ..dependencies import CurrentUserDep, SessionDep, rate_limit

router = APIRouter(prefix="/communities", tags=["communities"])


@router.get("/", response_model=CommunityPage)
async def list_communities(
    db: SessionDep,
    search: str | None = Query(None, max_length=100),
    skip: int | None = Query(None, ge=0),
    take: int | None = Query(None, ge=1, le=100),
    page: int | None = Query(None, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
) -> dict[str, Any]:
    """List public communities with member counts, newest first."""
    listing = community_service.list_communities(
        db, search=search, skip=skip, take=take, page=page, limit=limit
    )
    return {"items": listing.items, "pagination": listing.pagination()}


@router.post(
    "/",
    response_model=CommunityResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(LimitTier.API))],
)
async def create_community(
    community_data: CommunityCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Community:
    """Create a community; the caller becomes its owner."""
    return community_service.create_community(db, community_data, current_user)


@router.get("/{slug}", response_model=CommunityDetail)
async def get_community(slug: str, db: SessionDep) -> dict[str, Any]:
    """Get a community by slug with its member and content counts."""
    community = community_service.get_community_by_slug(db, slug)
    return community_service.community_detail(db, community)


@router.patch("/{slug}", response_model=CommunityResponse)
async def update_community(
    slug: str,
    update: CommunityUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Community:
    """Change community settings; owners and admins only."""
    community = community_service.get_community_by_slug(db, slug)
    return community_service.update_community(db, community, update, current_user)


@router.post(
    "/{slug}/join",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(LimitTier.API))],
)
async def join_community(
    slug: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityMember:
    """Ask to join a community.

    The membership is approved immediately for auto-join communities and
    pending otherwise.
    """
    community = community_service.get_community_by_slug(db, slug)
    return membership_service.request_join(db, community, current_user)


@router.get("/{slug}/members", response_model=list[MembershipResponse])
async def list_members(
    slug: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[CommunityMember]:
    """List all members of a community; owners and admins only."""
    community = community_service.get_community_by_slug(db, slug)
    return membership_service.list_members(db, community, current_user)


@router.patch("/{slug}/members/{user_id}", response_model=MembershipResponse)
async def moderate_member(
    slug: str,
    user_id: int,
    update: MembershipUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityMember:
    """Approve or reject a member, or change their points or role."""
    community = community_service.get_community_by_slug(db, slug)
    return membership_service.moderate_membership(db, community, current_user, user_id, update)
