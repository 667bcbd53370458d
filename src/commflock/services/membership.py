"""Membership ledger: join requests, moderation and the moderator predicate.

Every mutating operation against a community's content goes through
:func:`require_moderator`, which resolves the acting user's membership row
and insists on an approved owner or admin.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from commflock.core.errors import (
    AlreadyMember,
    ForbiddenError,
    InvalidTransition,
    JoinNotAllowed,
    MembershipRequired,
    NotFoundError,
    OwnerRequired,
    RequirementNotMet,
)
from commflock.models import Community, CommunityMember, JoinPolicy, MemberRole, MemberStatus, User
from commflock.schemas.community import MembershipUpdate

logger = logging.getLogger(__name__)

__all__ = [
    "get_membership",
    "list_members",
    "moderate_membership",
    "request_join",
    "require_approved_member",
    "require_moderator",
]

# Allowed status changes; writing the current status again is a no-op.
STATUS_TRANSITIONS: dict[MemberStatus, frozenset[MemberStatus]] = {
    MemberStatus.PENDING: frozenset({MemberStatus.APPROVED, MemberStatus.REJECTED}),
    MemberStatus.APPROVED: frozenset(),
    MemberStatus.REJECTED: frozenset(),
}


def get_membership(db: Session, community_id: int, user_id: int) -> CommunityMember | None:
    """Return the membership row for (community, user) if it exists."""
    return db.get(CommunityMember, (community_id, user_id))


def require_moderator(db: Session, community: Community, user: User) -> CommunityMember:
    """Return the actor's membership if they are an approved owner or admin.

    Raises:
        ForbiddenError: Otherwise
    """
    membership = get_membership(db, community.id, user.id)
    if membership is None or not membership.is_moderator:
        raise ForbiddenError("Only community owners and admins can do this")
    return membership


def require_approved_member(db: Session, community_id: int, user: User) -> CommunityMember:
    """Return the actor's membership if it is approved.

    Raises:
        MembershipRequired: When the user has no approved membership
    """
    membership = get_membership(db, community_id, user.id)
    if membership is None or membership.status != MemberStatus.APPROVED:
        raise MembershipRequired()
    return membership


def request_join(db: Session, community: Community, user: User) -> CommunityMember:
    """Create a membership request for ``user``.

    The new row is approved immediately for ``AUTO_JOIN`` communities and
    pending otherwise. Rejected members cannot ask again.

    Raises:
        AlreadyMember: If any membership row already exists
        JoinNotAllowed: If the community is closed
        RequirementNotMet: If a required profile field is missing
    """
    if get_membership(db, community.id, user.id) is not None:
        raise AlreadyMember()
    if community.join_policy == JoinPolicy.CLOSED:
        raise JoinNotAllowed()
    if community.requires_lightning_address and not user.lightning_address:
        raise RequirementNotMet("This community requires a Lightning address")
    if community.requires_nostr_pubkey and not user.nostr_pubkey:
        raise RequirementNotMet("This community requires a Nostr public key")

    status = (
        MemberStatus.APPROVED
        if community.join_policy == JoinPolicy.AUTO_JOIN
        else MemberStatus.PENDING
    )
    membership = CommunityMember(
        community_id=community.id,
        user_id=user.id,
        role=MemberRole.MEMBER,
        status=status,
        points=0,
    )
    db.add(membership)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyMember() from err
    db.refresh(membership)
    logger.info(
        "User %s joined community %s with status %s",
        user.username,
        community.slug,
        status.value,
    )
    return membership


def _apply_status(membership: CommunityMember, new_status: MemberStatus) -> None:
    if new_status == membership.status:
        return
    if new_status not in STATUS_TRANSITIONS[membership.status]:
        raise InvalidTransition(
            f"Cannot change membership from {membership.status.value} to {new_status.value}"
        )
    membership.status = new_status


def _transfer_ownership(
    db: Session,
    community: Community,
    actor: CommunityMember,
    target: CommunityMember,
) -> None:
    if actor.role != MemberRole.OWNER:
        raise ForbiddenError("Only the owner can transfer ownership")
    if target.status != MemberStatus.APPROVED:
        raise OwnerRequired("Ownership can only pass to an approved member")
    # Demote first so the single-owner index never sees two owners.
    actor.role = MemberRole.ADMIN
    db.flush()
    target.role = MemberRole.OWNER
    community.owner_id = target.user_id


def moderate_membership(
    db: Session,
    community: Community,
    acting_user: User,
    target_user_id: int,
    update: MembershipUpdate,
) -> CommunityMember:
    """Apply a moderator's changes to a member.

    Args:
        db: Database session
        community: Community the membership belongs to
        acting_user: Moderator performing the change
        target_user_id: Member being changed
        update: Fields to change; omitted fields stay as they are

    Returns:
        The refreshed membership

    Raises:
        ForbiddenError: If the actor is not a moderator, or an admin tries
            to change admin roles or transfer ownership
        NotFoundError: If the target has no membership
        InvalidTransition: For a status change outside PENDING -> APPROVED/REJECTED
        OwnerRequired: If the change would leave the community without an owner
    """
    actor = require_moderator(db, community, acting_user)
    target = get_membership(db, community.id, target_user_id)
    if target is None:
        raise NotFoundError("Member not found")

    changes = update.model_dump(exclude_unset=True)
    new_role = changes.get("role")
    new_status = changes.get("status")

    if target.role == MemberRole.OWNER:
        if new_role not in (None, MemberRole.OWNER):
            raise OwnerRequired("Transfer ownership before changing the owner's role")
        if new_status not in (None, target.status):
            raise OwnerRequired("The owner's membership status cannot change")

    role_change = new_role is not None and new_role != target.role
    if (
        role_change
        and new_role != MemberRole.OWNER
        and MemberRole.ADMIN in (new_role, target.role)
        and actor.role != MemberRole.OWNER
    ):
        raise ForbiddenError("Only the owner can grant or revoke admin")

    try:
        if new_status is not None:
            _apply_status(target, new_status)
        if changes.get("points") is not None:
            target.points = changes["points"]
        if role_change:
            if new_role == MemberRole.OWNER:
                _transfer_ownership(db, community, actor, target)
            else:
                target.role = new_role
    except (ForbiddenError, InvalidTransition, OwnerRequired):
        db.rollback()
        raise

    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise OwnerRequired() from err
    db.refresh(target)
    logger.info(
        "User %s updated membership of user %s in %s: %s",
        acting_user.username,
        target_user_id,
        community.slug,
        changes,
    )
    return target


def list_members(db: Session, community: Community, acting_user: User) -> list[CommunityMember]:
    """Return all membership rows of a community, oldest first."""
    require_moderator(db, community, acting_user)
    return (
        db.query(CommunityMember)
        .options(joinedload(CommunityMember.user))
        .filter(CommunityMember.community_id == community.id)
        .order_by(CommunityMember.joined_at, CommunityMember.user_id)
        .all()
    )
