# src/commflock/api/v1/endpoints/polls.py
"""Poll and voting endpoints for the CommFlock API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from commflock.models import Poll, PollVote
from commflock.schemas.poll import PollCreate, PollDetail, PollResponse, VoteCreate, VoteResponse
from commflock.services import polls as poll_service
from commflock.services.communities import get_community_by_slug
from commflock.services.rate_limit import LimitTier

from ..dependencies import CurrentUserDep, SessionDep, rate_limit

router = APIRouter(prefix="/communities/{slug}/polls", tags=["polls"])


@router.get("/", response_model=list[PollResponse])
async def list_polls(slug: str, db: SessionDep) -> list[Poll]:
    community = get_community_by_slug(db, slug)
    return poll_service.list_polls(db, community)


@router.post("/", response_model=PollResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(
    slug: str,
    poll_data: PollCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Poll:
    """Create a poll; owners and admins only."""
    community = get_community_by_slug(db, slug)
    return poll_service.create_poll(db, community, poll_data, current_user)


@router.get("/{poll_id}", response_model=PollDetail)
async def get_poll(slug: str, poll_id: int, db: SessionDep) -> dict[str, Any]:
    """Get a poll together with its current tally."""
    community = get_community_by_slug(db, slug)
    poll = poll_service.get_poll(db, community, poll_id)
    return poll_service.poll_detail(db, poll)


@router.post(
    "/{poll_id}/vote",
    response_model=VoteResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(LimitTier.API))],
)
async def vote(
    slug: str,
    poll_id: int,
    ballot: VoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PollVote:
    """Cast the caller's single vote."""
    community = get_community_by_slug(db, slug)
    poll = poll_service.get_poll(db, community, poll_id)
    return poll_service.vote(db, poll.id, current_user, ballot.option_key)
