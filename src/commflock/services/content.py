"""Announcements and badges published by community moderators."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from commflock.core.errors import AlreadyAwarded, NotFoundError
from commflock.models import Announcement, Badge, Community, MemberStatus, User, UserBadge
from commflock.schemas.content import AnnouncementCreate, BadgeCreate
from commflock.services.membership import get_membership, require_moderator

logger = logging.getLogger(__name__)


def create_announcement(
    db: Session,
    community: Community,
    payload: AnnouncementCreate,
    acting_user: User,
) -> Announcement:
    require_moderator(db, community, acting_user)
    announcement = Announcement(
        community_id=community.id,
        title=payload.title,
        body=payload.body,
        created_by_id=acting_user.id,
    )
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


def list_announcements(db: Session, community: Community) -> list[Announcement]:
    """Return a community's announcements, newest first."""
    return (
        db.query(Announcement)
        .options(joinedload(Announcement.created_by))
        .filter(Announcement.community_id == community.id)
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .all()
    )


def create_badge(db: Session, community: Community, payload: BadgeCreate, acting_user: User) -> Badge:
    require_moderator(db, community, acting_user)
    badge = Badge(community_id=community.id, **payload.model_dump())
    db.add(badge)
    db.commit()
    db.refresh(badge)
    return badge


def list_badges(db: Session, community: Community) -> list[Badge]:
    return (
        db.query(Badge)
        .filter(Badge.community_id == community.id)
        .order_by(Badge.name, Badge.id)
        .all()
    )


def award_badge(
    db: Session,
    community: Community,
    badge_id: int,
    target_user_id: int,
    acting_user: User,
) -> UserBadge:
    """Give a community badge to one of its approved members.

    Raises:
        ForbiddenError: If the actor is not a moderator
        NotFoundError: If the badge is not in this community or the target
            is not an approved member
        AlreadyAwarded: If the member already holds the badge
    """
    require_moderator(db, community, acting_user)
    badge = db.get(Badge, badge_id)
    if badge is None or badge.community_id != community.id:
        raise NotFoundError("Badge not found")
    membership = get_membership(db, community.id, target_user_id)
    if membership is None or membership.status != MemberStatus.APPROVED:
        raise NotFoundError("Member not found")
    if db.get(UserBadge, (target_user_id, badge_id)) is not None:
        raise AlreadyAwarded()

    award = UserBadge(user_id=target_user_id, badge_id=badge_id)
    db.add(award)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyAwarded() from err
    db.refresh(award)
    logger.info("Badge %s awarded to user %s in %s", badge_id, target_user_id, community.slug)
    return award
