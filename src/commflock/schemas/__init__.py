# src/commflock/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    CommunityCreate,
    CommunityDetail,
    CommunityPage,
    CommunityResponse,
    CommunityUpdate,
    MembershipResponse,
    MembershipUpdate,
)
from .content import AnnouncementCreate, AnnouncementResponse, BadgeCreate, BadgeResponse
from .event import EventCreate, EventDetail, EventResponse, RegistrationResponse
from .payment import PaymentResponse, PaymentSimulate
from .poll import PollCreate, PollDetail, PollResponse, VoteCreate, VoteResponse
from .user import SignupRequest, UserResponse

__all__ = [
    "CommunityCreate", "CommunityDetail", "CommunityPage", "CommunityResponse",
    "CommunityUpdate", "MembershipResponse", "MembershipUpdate",
    "AnnouncementCreate", "AnnouncementResponse", "BadgeCreate", "BadgeResponse",
    "EventCreate", "EventDetail", "EventResponse", "RegistrationResponse",
    "PaymentResponse", "PaymentSimulate",
    "PollCreate", "PollDetail", "PollResponse", "VoteCreate", "VoteResponse",
    "SignupRequest", "UserResponse",
]
