"""Community registry: creation, lookup, settings and public listing."""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from sqlalchemy import desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from commflock.core.errors import NotFoundError, SlugTaken, ValidationFailed
from commflock.core.settings import settings
from commflock.models import (
    Announcement,
    Community,
    CommunityMember,
    Event,
    MemberRole,
    MemberStatus,
    Poll,
    User,
)
from commflock.schemas.community import CommunityCreate, CommunityUpdate
from commflock.services.membership import require_moderator
from commflock.services.payments import charge_simulated

logger = logging.getLogger(__name__)

__all__ = [
    "CommunityListing",
    "community_detail",
    "create_community",
    "get_community_by_slug",
    "list_communities",
    "slugify",
    "update_community",
]

MAX_SLUG_LENGTH = 50
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_SLUG_RE = re.compile(r"^[a-z0-9-]{1,50}$")


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a display name.

    Lowercases, strips punctuation, and turns whitespace and underscores
    into single hyphens.
    """
    slug = name.strip().lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug.strip("-")[:MAX_SLUG_LENGTH].strip("-")


def get_community_by_slug(db: Session, slug: str) -> Community:
    """Return the community with ``slug``.

    Raises:
        NotFoundError: If no such community exists
    """
    community = db.query(Community).filter(Community.slug == slug).first()
    if community is None:
        raise NotFoundError("Community not found")
    return community


def create_community(db: Session, payload: CommunityCreate, owner: User) -> Community:
    """Create a community, its creation payment and its owner membership.

    All three rows are written in one transaction; if any insert fails
    nothing persists.

    Raises:
        ValidationFailed: If no valid slug can be derived from the name
        SlugTaken: If the slug is in use
    """
    slug = payload.slug or slugify(payload.name)
    if not _SLUG_RE.match(slug):
        raise ValidationFailed(
            "Slug must be 1-50 characters of lowercase letters, digits and hyphens"
        )
    if db.query(Community.id).filter(Community.slug == slug).first() is not None:
        raise SlugTaken()

    try:
        charge_simulated(
            db,
            user_id=owner.id,
            amount_sats=settings.community_creation_price_sats,
            purpose="community",
        )
        community = Community(
            slug=slug,
            name=payload.name,
            description=payload.description,
            is_public=payload.is_public,
            join_policy=payload.join_policy,
            requires_lightning_address=payload.requires_lightning_address,
            requires_nostr_pubkey=payload.requires_nostr_pubkey,
            owner_id=owner.id,
        )
        db.add(community)
        db.flush()
        db.add(
            CommunityMember(
                community_id=community.id,
                user_id=owner.id,
                role=MemberRole.OWNER,
                status=MemberStatus.APPROVED,
                points=0,
            )
        )
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise SlugTaken() from err

    db.refresh(community)
    logger.info("User %s created community %s", owner.username, community.slug)
    return community


def update_community(
    db: Session,
    community: Community,
    update: CommunityUpdate,
    acting_user: User,
) -> Community:
    """Apply moderator edits to community settings."""
    require_moderator(db, community, acting_user)

    for key, value in update.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(community, key, value)

    db.commit()
    db.refresh(community)
    return community


def _member_counts(db: Session, community_ids: list[int]) -> dict[int, int]:
    if not community_ids:
        return {}
    rows = (
        db.query(CommunityMember.community_id, func.count())
        .filter(
            CommunityMember.community_id.in_(community_ids),
            CommunityMember.status == MemberStatus.APPROVED,
        )
        .group_by(CommunityMember.community_id)
        .all()
    )
    return {community_id: count for community_id, count in rows}


@dataclass
class CommunityListing:
    """A page of communities plus the numbers needed to render pagination."""

    items: list[dict[str, object]]
    total: int
    skip: int
    limit: int

    @property
    def page(self) -> int:
        return self.skip // self.limit + 1

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    def pagination(self) -> dict[str, int]:
        return {
            "skip": self.skip,
            "limit": self.limit,
            "page": self.page,
            "pages": self.pages,
            "total": self.total,
        }


def _listing_item(community: Community, member_count: int) -> dict[str, object]:
    return {
        "id": community.id,
        "slug": community.slug,
        "name": community.name,
        "description": community.description,
        "is_public": community.is_public,
        "join_policy": community.join_policy,
        "requires_lightning_address": community.requires_lightning_address,
        "requires_nostr_pubkey": community.requires_nostr_pubkey,
        "owner_id": community.owner_id,
        "owner_username": community.owner.username,
        "created_at": community.created_at,
        "member_count": member_count,
    }


def _escape_like(text: str) -> str:
    """Make ``%`` and ``_`` in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_communities(
    db: Session,
    *,
    search: str | None = None,
    skip: int | None = None,
    take: int | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> CommunityListing:
    """Return public communities, newest first.

    Offset pagination (``skip``/``take``) wins over page pagination
    (``page``/``limit``) when both are given.
    """
    size = take if take is not None else limit
    size = max(1, min(size or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    if skip is not None:
        offset = max(0, skip)
    else:
        offset = (max(1, page or 1) - 1) * size

    query = db.query(Community).filter(Community.is_public.is_(True))
    if search:
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(
            or_(
                Community.name.ilike(pattern, escape="\\"),
                Community.slug.ilike(pattern, escape="\\"),
            )
        )

    total = query.count()
    communities = (
        query.options(joinedload(Community.owner))
        .order_by(desc(Community.created_at), desc(Community.id))
        .offset(offset)
        .limit(size)
        .all()
    )
    counts = _member_counts(db, [c.id for c in communities])
    items = [_listing_item(c, counts.get(c.id, 0)) for c in communities]
    return CommunityListing(items=items, total=total, skip=offset, limit=size)


def community_detail(db: Session, community: Community) -> dict[str, object]:
    """Return the community with owner name and content counts."""
    detail = _listing_item(community, _member_counts(db, [community.id]).get(community.id, 0))
    detail["event_count"] = (
        db.query(func.count(Event.id)).filter(Event.community_id == community.id).scalar()
    )
    detail["poll_count"] = (
        db.query(func.count(Poll.id)).filter(Poll.community_id == community.id).scalar()
    )
    detail["announcement_count"] = (
        db.query(func.count(Announcement.id))
        .filter(Announcement.community_id == community.id)
        .scalar()
    )
    return detail
