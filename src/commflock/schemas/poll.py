"""Poll Pydantic schemas."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .user import UserSummary


class PollOption(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1, max_length=200)


class PollCreate(BaseModel):
    """Schema for creating a poll; option keys must be unique."""

    question: str = Field(..., min_length=1, max_length=500)
    options: list[PollOption] = Field(..., min_length=2)
    ends_at: datetime | None = None
    show_votes: bool = False

    @field_validator("options")
    @classmethod
    def unique_keys(cls, v: list[PollOption]) -> list[PollOption]:
        keys = [option.key for option in v]
        if len(set(keys)) != len(keys):
            raise ValueError("Option keys must be unique")
        return v

    @field_validator("ends_at")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        """Treat naive datetimes as UTC and convert offsets to UTC."""
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)


class VoteCreate(BaseModel):
    option_key: str = Field(..., min_length=1)


class VoteResponse(BaseModel):
    id: int
    poll_id: int
    user_id: int
    option_key: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OptionTally(BaseModel):
    key: str
    label: str
    votes: int
    percentage: float
    voters: list[UserSummary] | None = None


class PollResponse(BaseModel):
    id: int
    community_id: int
    question: str
    options: list[PollOption]
    ends_at: datetime | None
    show_votes: bool
    created_by_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PollDetail(PollResponse):
    is_closed: bool
    total_votes: int
    results: list[OptionTally]
