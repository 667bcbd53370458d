"""Audit records for simulated payments."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commflock.db.session import Base
from commflock.db.time import utcnow

PAYMENT_STATUS_PAID_SIMULATED = "PAID_SIMULATED"


class Payment(Base):
    """Ledger entry for a charge that always settles synchronously."""

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    event_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("event.id", ondelete="SET NULL"), nullable=True
    )
    amount_sats: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=PAYMENT_STATUS_PAID_SIMULATED
    )
    provider_meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
