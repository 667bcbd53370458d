"""Simulated payment provider."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from commflock.db.time import utcnow
from commflock.models import Payment
from commflock.models.payment import PAYMENT_STATUS_PAID_SIMULATED

__all__ = ["charge_simulated"]


def charge_simulated(
    db: Session,
    *,
    user_id: int,
    amount_sats: int,
    purpose: str,
    event_id: int | None = None,
) -> Payment:
    """Record a payment that settles immediately.

    The row is added and flushed but not committed, so callers can make it
    part of a larger transaction.

    Args:
        db: Database session
        user_id: Paying user
        amount_sats: Amount in satoshis
        purpose: Short label stored in the provider metadata
        event_id: Event the payment is for, if any

    Returns:
        The pending Payment instance with its id assigned
    """
    meta: dict[str, Any] = {
        "type": purpose,
        "simulated": True,
        "timestamp": utcnow().isoformat(),
    }
    payment = Payment(
        user_id=user_id,
        event_id=event_id,
        amount_sats=amount_sats,
        status=PAYMENT_STATUS_PAID_SIMULATED,
        provider_meta=meta,
    )
    db.add(payment)
    db.flush()
    return payment
