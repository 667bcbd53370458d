"""Models for capacity-bounded community events and their registrations."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commflock.db.session import Base
from commflock.db.time import utcnow


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


REGISTRATION_STATUS_PAID = "paid"


class Event(Base):
    """A time-boxed gathering inside a community."""

    __tablename__ = "event"
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_event_capacity"),
        CheckConstraint("price_sats >= 0", name="ck_event_price"),
        CheckConstraint("min_quorum >= 0", name="ck_event_min_quorum"),
        CheckConstraint("ends_at > starts_at", name="ck_event_time_range"),
        # Seat counter can never pass capacity, whatever the application does.
        CheckConstraint(
            "registered_count >= 0 AND registered_count <= capacity",
            name="ck_event_registered_count",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_sats: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    min_quorum: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[EventStatus] = mapped_column(
        SAEnum(EventStatus, name="event_status"),
        nullable=False,
        default=EventStatus.DRAFT,
    )
    # Seats claimed so far; only ever moved by a conditional UPDATE.
    registered_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    community = relationship("Community")
    created_by = relationship("User")
    registrations: Mapped[list[EventRegistration]] = relationship(
        "EventRegistration",
        back_populates="event",
        cascade="all, delete-orphan",
    )

    @property
    def seats_remaining(self) -> int:
        return max(0, self.capacity - self.registered_count)


class EventRegistration(Base):
    """A user's paid seat at an event."""

    __tablename__ = "event_registration"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_registration_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("event.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=REGISTRATION_STATUS_PAID
    )
    payment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("payment.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    event: Mapped[Event] = relationship("Event", back_populates="registrations")
    user = relationship("User")
    payment = relationship("Payment")
