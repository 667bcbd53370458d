"""Announcement and badge Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserSummary


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=2000)


class AnnouncementResponse(BaseModel):
    id: int
    community_id: int
    title: str
    body: str
    created_at: datetime
    created_by: UserSummary

    model_config = ConfigDict(from_attributes=True)


class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    icon: str | None = Field(None, max_length=64)


class BadgeResponse(BaseModel):
    id: int
    community_id: int
    name: str
    description: str | None
    icon: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BadgeAward(BaseModel):
    user_id: int


class UserBadgeResponse(BaseModel):
    user_id: int
    badge_id: int
    awarded_at: datetime

    model_config = ConfigDict(from_attributes=True)
