"""Seed a development database with a demo user and demo communities.

Running it more than once is safe: existing rows are looked up by their
natural keys and left untouched.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta

from sqlalchemy.orm import Session

from commflock.core.logging_config import configure_logging
from commflock.core.security import hash_password
from commflock.db.session import SessionLocal, create_tables
from commflock.db.time import utcnow
from commflock.models import (
    Announcement,
    Badge,
    Community,
    CommunityMember,
    Event,
    EventStatus,
    JoinPolicy,
    MemberRole,
    MemberStatus,
    Poll,
    User,
    UserBadge,
)

logger = logging.getLogger("commflock.scripts.seed")

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo1234"
DEMO_EMAIL = "demo@commflock.com"
SHOWCASE_SLUG = "lightning-devs"

DEMO_COMMUNITIES: list[tuple[str, str, str]] = [
    ("Lightning Developers", "lightning-devs", "Building the future of instant Bitcoin payments"),
    ("Bitcoin Meetup NYC", "bitcoin-nyc", "Monthly Bitcoin meetups in New York City"),
    ("Nostr Enthusiasts", "nostr-enthusiasts", "Exploring decentralized social media on Nostr"),
    ("Lightning Node Runners", "ln-node-runners", "Running Lightning Network nodes"),
    ("Bitcoin Privacy Advocates", "bitcoin-privacy", "Privacy tools and practices"),
    ("Open Source Contributors", "open-source", "Collaborate on open source projects"),
    ("Rust Developers", "rust-devs", "Learning and building with Rust"),
    ("Indie Hackers", "indie-hackers", "Building and launching products independently"),
    ("Remote Workers Global", "remote-workers", "Digital nomads and remote work tips"),
    ("Latin America Devs", "latam-devs", "Developers across Latin America"),
    ("Photography Club", "photography-club", "Share your best shots and learn techniques"),
    ("Book Club", "book-club", "Monthly book discussions and recommendations"),
]


def _demo_user(db: Session) -> User:
    user = db.query(User).filter(User.username == DEMO_USERNAME).first()
    if user is None:
        user = User(
            username=DEMO_USERNAME,
            email=DEMO_EMAIL,
            password_hash=hash_password(DEMO_PASSWORD),
        )
        db.add(user)
        db.flush()
        logger.info("Created demo user %s", DEMO_USERNAME)
    return user


def _demo_community(db: Session, owner: User, name: str, slug: str, description: str) -> Community:
    community = db.query(Community).filter(Community.slug == slug).first()
    if community is None:
        community = Community(
            name=name,
            slug=slug,
            description=description,
            is_public=True,
            join_policy=JoinPolicy.AUTO_JOIN,
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
                points=100,
            )
        )
        logger.info("Created community %s", slug)
    return community


def _showcase_content(db: Session, community: Community, owner: User) -> None:
    if db.query(Announcement).filter(Announcement.community_id == community.id).first() is None:
        db.add(
            Announcement(
                community_id=community.id,
                title="Welcome to Lightning Developers!",
                body=(
                    "Join us in building the future of instant Bitcoin payments. "
                    "Share your projects, ask questions, and collaborate."
                ),
                created_by_id=owner.id,
            )
        )

    now = utcnow()
    if db.query(Event).filter(Event.community_id == community.id).first() is None:
        db.add(
            Event(
                community_id=community.id,
                title="Lightning Network Workshop",
                starts_at=now + timedelta(days=7),
                ends_at=now + timedelta(days=8),
                capacity=50,
                price_sats=100,
                status=EventStatus.OPEN,
                created_by_id=owner.id,
            )
        )

    if db.query(Poll).filter(Poll.community_id == community.id).first() is None:
        db.add(
            Poll(
                community_id=community.id,
                question="What Lightning feature would you like to learn next?",
                options=[
                    {"key": "channels", "label": "Channel Management"},
                    {"key": "routing", "label": "Payment Routing"},
                    {"key": "watchtowers", "label": "Watchtowers"},
                    {"key": "splicing", "label": "Channel Splicing"},
                ],
                ends_at=now + timedelta(days=30),
                created_by_id=owner.id,
            )
        )

    badge = db.query(Badge).filter(Badge.community_id == community.id).first()
    if badge is None:
        badge = Badge(
            community_id=community.id,
            name="Lightning Pioneer",
            description="For early contributors to the Lightning community",
            icon="zap",
        )
        db.add(badge)
        db.flush()
    if db.get(UserBadge, (owner.id, badge.id)) is None:
        db.add(UserBadge(user_id=owner.id, badge_id=badge.id))


def seed(db: Session) -> None:
    """Insert the demo data set into ``db`` and commit."""
    owner = _demo_user(db)
    showcase = None
    for name, slug, description in DEMO_COMMUNITIES:
        community = _demo_community(db, owner, name, slug, description)
        if slug == SHOWCASE_SLUG:
            showcase = community
    if showcase is not None:
        _showcase_content(db, showcase, owner)
    db.commit()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the database with demo data")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding.",
    )
    args = parser.parse_args(argv)
    configure_logging()

    if args.create_tables:
        create_tables()

    with SessionLocal() as db:
        seed(db)
    logger.info(
        "Seeded %d communities; demo credentials: %s / %s",
        len(DEMO_COMMUNITIES),
        DEMO_USERNAME,
        DEMO_PASSWORD,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
