"""Event and registration Pydantic schemas."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from commflock.models.event import EventStatus

from .user import UserSummary


class EventCreate(BaseModel):
    """Schema for creating an event inside a community."""

    title: str = Field(..., min_length=1, max_length=200)
    starts_at: datetime
    ends_at: datetime
    capacity: int = Field(..., ge=1, description="Maximum number of registrations")
    price_sats: int = Field(0, ge=0, description="Price in satoshis")
    min_quorum: int = Field(0, ge=0, description="Informational attendance threshold")
    status: EventStatus = Field(EventStatus.DRAFT, description="DRAFT or OPEN")

    @field_validator("starts_at", "ends_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Treat naive datetimes as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @field_validator("status")
    @classmethod
    def initial_status(cls, v: EventStatus) -> EventStatus:
        if v not in (EventStatus.DRAFT, EventStatus.OPEN):
            raise ValueError("New events start as DRAFT or OPEN")
        return v

    @model_validator(mode="after")
    def check_time_range(self) -> "EventCreate":
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    id: int
    community_id: int
    title: str
    starts_at: datetime
    ends_at: datetime
    capacity: int
    price_sats: int
    min_quorum: int
    status: EventStatus
    registered_count: int
    seats_remaining: int
    created_by_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    payment_id: int | None
    created_at: datetime
    user: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class EventDetail(EventResponse):
    registrations: list[RegistrationResponse]
