"""Community and membership Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from commflock.models.community import JoinPolicy, MemberRole, MemberStatus

from .user import UserSummary

SLUG_PATTERN = r"^[a-z0-9-]+$"


class CommunityCreate(BaseModel):
    """Schema for creating a new community.

    When ``slug`` is omitted it is derived from ``name``.
    """

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, min_length=1, max_length=50, pattern=SLUG_PATTERN)
    description: str | None = Field(None, max_length=500)
    is_public: bool = True
    join_policy: JoinPolicy = JoinPolicy.AUTO_JOIN
    requires_lightning_address: bool = False
    requires_nostr_pubkey: bool = False


class CommunityUpdate(BaseModel):
    """Partial update of community settings; the slug cannot change."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_public: bool | None = None
    join_policy: JoinPolicy | None = None
    requires_lightning_address: bool | None = None
    requires_nostr_pubkey: bool | None = None


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: int
    slug: str
    name: str
    description: str | None
    is_public: bool
    join_policy: JoinPolicy
    requires_lightning_address: bool
    requires_nostr_pubkey: bool
    owner_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommunityListItem(CommunityResponse):
    owner_username: str
    member_count: int


class Pagination(BaseModel):
    skip: int
    limit: int
    page: int
    pages: int
    total: int


class CommunityPage(BaseModel):
    items: list[CommunityListItem]
    pagination: Pagination


class CommunityDetail(CommunityListItem):
    event_count: int
    poll_count: int
    announcement_count: int


class MembershipResponse(BaseModel):
    community_id: int
    user_id: int
    role: MemberRole
    status: MemberStatus
    points: int
    joined_at: datetime
    user: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class MembershipUpdate(BaseModel):
    """Moderator changes to a member; omitted fields are left untouched."""

    status: MemberStatus | None = None
    points: int | None = Field(None, ge=0)
    role: MemberRole | None = None
