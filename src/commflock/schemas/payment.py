"""Simulated payment Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaymentSimulate(BaseModel):
    amount_sats: int = Field(21, ge=0)
    type: str = Field("community", max_length=50)


class PaymentResponse(BaseModel):
    id: int
    user_id: int
    event_id: int | None
    amount_sats: int
    status: str
    provider_meta: dict[str, Any] | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
