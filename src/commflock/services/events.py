"""Event registration engine.

Seats are claimed with a single conditional UPDATE on the event's
``registered_count`` so concurrent registrations can never push the count
past capacity; the check constraint on the table backs this up.
"""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from commflock.core.errors import (
    AlreadyRegistered,
    EventFull,
    EventNotOpen,
    InvalidTransition,
    NotFoundError,
)
from commflock.models import Community, Event, EventRegistration, EventStatus, User
from commflock.models.event import REGISTRATION_STATUS_PAID
from commflock.schemas.event import EventCreate
from commflock.services.membership import require_approved_member, require_moderator
from commflock.services.payments import charge_simulated

logger = logging.getLogger(__name__)

__all__ = [
    "create_event",
    "get_event",
    "list_events",
    "list_registrations",
    "register",
    "update_event_status",
]

EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.DRAFT: frozenset({EventStatus.OPEN, EventStatus.CANCELLED}),
    EventStatus.OPEN: frozenset(
        {EventStatus.CONFIRMED, EventStatus.CANCELLED, EventStatus.EXPIRED}
    ),
    EventStatus.CONFIRMED: frozenset({EventStatus.EXPIRED, EventStatus.CANCELLED}),
    EventStatus.CANCELLED: frozenset(),
    EventStatus.EXPIRED: frozenset(),
}


def create_event(
    db: Session,
    community: Community,
    payload: EventCreate,
    acting_user: User,
) -> Event:
    """Create an event in ``community``; moderators only."""
    require_moderator(db, community, acting_user)

    event = Event(
        community_id=community.id,
        title=payload.title,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        capacity=payload.capacity,
        price_sats=payload.price_sats,
        min_quorum=payload.min_quorum,
        status=payload.status,
        registered_count=0,
        created_by_id=acting_user.id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created in %s by %s", event.id, community.slug, acting_user.username)
    return event


def get_event(db: Session, community: Community, event_id: int) -> Event:
    """Return an event that belongs to ``community``.

    Raises:
        NotFoundError: If it does not exist or lives in another community
    """
    event = db.get(Event, event_id)
    if event is None or event.community_id != community.id:
        raise NotFoundError("Event not found")
    return event


def list_events(db: Session, community: Community) -> list[Event]:
    """Return a community's events ordered by start time."""
    return (
        db.query(Event)
        .filter(Event.community_id == community.id)
        .order_by(Event.starts_at, Event.id)
        .all()
    )


def list_registrations(db: Session, event: Event) -> list[EventRegistration]:
    """Return an event's registrations with their users, oldest first."""
    return (
        db.query(EventRegistration)
        .options(joinedload(EventRegistration.user))
        .filter(EventRegistration.event_id == event.id)
        .order_by(EventRegistration.created_at, EventRegistration.id)
        .all()
    )


def update_event_status(
    db: Session,
    community: Community,
    event: Event,
    new_status: EventStatus,
    acting_user: User,
) -> Event:
    """Move an event along its lifecycle.

    Quorum is informational and never blocks a transition.

    Raises:
        ForbiddenError: If the actor is not a moderator
        InvalidTransition: For a move the lifecycle does not allow
    """
    require_moderator(db, community, acting_user)
    if new_status not in EVENT_TRANSITIONS[event.status]:
        raise InvalidTransition(
            f"Cannot move event from {event.status.value} to {new_status.value}"
        )
    event.status = new_status
    db.commit()
    db.refresh(event)
    logger.info("Event %s is now %s", event.id, new_status.value)
    return event


def register(db: Session, event_id: int, user: User) -> EventRegistration:
    """Register ``user`` for an event and record their simulated payment.

    Args:
        db: Database session
        event_id: Event to register for
        user: Registering user

    Returns:
        The new registration with status ``paid``

    Raises:
        NotFoundError: If the event does not exist
        EventNotOpen: If the event is not OPEN
        EventFull: If every seat is taken, including when a concurrent
            registration claimed the last one first
        AlreadyRegistered: If the user already holds a seat
        MembershipRequired: If the user is not an approved member
    """
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    if event.status != EventStatus.OPEN:
        raise EventNotOpen()
    if event.registered_count >= event.capacity:
        raise EventFull()
    existing = (
        db.query(EventRegistration.id)
        .filter(EventRegistration.event_id == event.id, EventRegistration.user_id == user.id)
        .first()
    )
    if existing is not None:
        raise AlreadyRegistered()
    require_approved_member(db, event.community_id, user)

    price_sats = event.price_sats
    try:
        claimed = db.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.status == EventStatus.OPEN,
                Event.registered_count < Event.capacity,
            )
            .values(registered_count=Event.registered_count + 1)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            db.rollback()
            raise EventFull()

        payment = charge_simulated(
            db,
            user_id=user.id,
            amount_sats=price_sats,
            purpose="event",
            event_id=event_id,
        )
        registration = EventRegistration(
            event_id=event_id,
            user_id=user.id,
            status=REGISTRATION_STATUS_PAID,
            payment_id=payment.id,
        )
        db.add(registration)
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyRegistered() from err

    db.refresh(registration)
    logger.info("User %s registered for event %s", user.username, event_id)
    return registration
