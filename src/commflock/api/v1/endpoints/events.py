# src/commflock/api/v1/endpoints/events.py
"""Event and registration endpoints for the CommFlock API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from commflock.models import Event, EventRegistration
from commflock.schemas.event import (
    EventCreate,
    EventDetail,
    EventResponse,
    EventStatusUpdate,
    RegistrationResponse,
)
from commflock.services import events as event_service
from commflock.services.communities import get_community_by_slug
from commflock.services.rate_limit import LimitTier

from ..dependencies import CurrentUserDep, SessionDep, rate_limit

router = APIRouter(prefix="/communities/{slug}/events", tags=["events"])


@router.get("/", response_model=list[EventResponse])
async def list_events(slug: str, db: SessionDep) -> list[Event]:
    """List a community's events by start time."""
    community = get_community_by_slug(db, slug)
    return event_service.list_events(db, community)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    slug: str,
    event_data: EventCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Event:
    """Create an event; owners and admins only."""
    community = get_community_by_slug(db, slug)
    return event_service.create_event(db, community, event_data, current_user)


@router.get("/{event_id}", response_model=EventDetail)
async def get_event(slug: str, event_id: int, db: SessionDep) -> dict[str, Any]:
    """Get an event with its registrations and remaining seats."""
    community = get_community_by_slug(db, slug)
    event = event_service.get_event(db, community, event_id)
    detail = EventResponse.model_validate(event).model_dump()
    detail["registrations"] = event_service.list_registrations(db, event)
    return detail


@router.patch("/{event_id}/status", response_model=EventResponse)
async def update_event_status(
    slug: str,
    event_id: int,
    update: EventStatusUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Event:
    """Move an event to a new lifecycle status."""
    community = get_community_by_slug(db, slug)
    event = event_service.get_event(db, community, event_id)
    return event_service.update_event_status(db, community, event, update.status, current_user)


@router.post(
    "/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(LimitTier.API))],
)
async def register_for_event(
    slug: str,
    event_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EventRegistration:
    """Register the caller for an event and record the simulated payment."""
    community = get_community_by_slug(db, slug)
    event = event_service.get_event(db, community, event_id)
    return event_service.register(db, event.id, current_user)
