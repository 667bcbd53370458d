# src/commflock/api/v1/endpoints/users.py
"""Profile endpoints for the authenticated user."""

from __future__ import annotations

from fastapi import APIRouter

from commflock.models import CommunityMember, User
from commflock.schemas.community import MembershipResponse
from commflock.schemas.user import ProfileUpdateRequest, UserResponse
from commflock.services import users as user_service

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: CurrentUserDep) -> User:
    """Return the caller's profile."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    update: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> User:
    """Update the caller's e-mail, Lightning address or Nostr key."""
    return user_service.update_profile(db, current_user, update)


@router.get("/me/memberships", response_model=list[MembershipResponse])
async def my_memberships(current_user: CurrentUserDep, db: SessionDep) -> list[CommunityMember]:
    """List every community membership the caller holds."""
    return (
        db.query(CommunityMember)
        .filter(CommunityMember.user_id == current_user.id)
        .order_by(CommunityMember.joined_at)
        .all()
    )
