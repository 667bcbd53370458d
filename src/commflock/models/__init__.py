# src/commflock/models/__init__.py
"""SQLAlchemy models for the CommFlock application."""

from .community import Community, CommunityMember, JoinPolicy, MemberRole, MemberStatus
from .content import Announcement, Badge, UserBadge
from .event import Event, EventRegistration, EventStatus
from .payment import Payment
from .poll import Poll, PollVote
from .user import PasswordResetToken, User

__all__ = [
    "Announcement", "Badge", "UserBadge",
    "Community", "CommunityMember", "JoinPolicy", "MemberRole", "MemberStatus",
    "Event", "EventRegistration", "EventStatus",
    "Payment",
    "Poll", "PollVote",
    "PasswordResetToken", "User",
]
