"""SQLAlchemy models for communities and their membership ledger."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commflock.db.session import Base
from commflock.db.time import utcnow


class JoinPolicy(str, enum.Enum):
    AUTO_JOIN = "AUTO_JOIN"
    APPROVAL_REQUIRED = "APPROVAL_REQUIRED"
    CLOSED = "CLOSED"


class MemberRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MemberStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


MODERATOR_ROLES = frozenset({MemberRole.OWNER, MemberRole.ADMIN})


class Community(Base):
    """A tenant: members, events, polls and announcements hang off it."""

    __tablename__ = "community"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # URL-safe handle; immutable once created.
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    join_policy: Mapped[JoinPolicy] = mapped_column(
        SAEnum(JoinPolicy, name="join_policy"),
        nullable=False,
        default=JoinPolicy.AUTO_JOIN,
    )
    requires_lightning_address: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    requires_nostr_pubkey: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    owner = relationship("User")
    members: Mapped[list[CommunityMember]] = relationship(
        "CommunityMember",
        back_populates="community",
        cascade="all, delete-orphan",
    )


class CommunityMember(Base):
    """Join table mapping users into communities under a role and status."""

    __tablename__ = "community_member"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_community_member_points"),
        # At most one owner per community.
        Index(
            "uq_community_member_owner",
            "community_id",
            unique=True,
            sqlite_where=text("role = 'OWNER'"),
            postgresql_where=text("role = 'OWNER'"),
        ),
    )

    # Composite primary key prevents duplicate memberships.
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        primary_key=True,
    )
    role: Mapped[MemberRole] = mapped_column(
        SAEnum(MemberRole, name="member_role"),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    status: Mapped[MemberStatus] = mapped_column(
        SAEnum(MemberStatus, name="member_status"),
        nullable=False,
        default=MemberStatus.PENDING,
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    community: Mapped[Community] = relationship("Community", back_populates="members")
    user = relationship("User")

    @property
    def is_moderator(self) -> bool:
        """Return True for approved owners and admins."""
        return self.status == MemberStatus.APPROVED and self.role in MODERATOR_ROLES
