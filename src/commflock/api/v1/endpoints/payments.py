# src/commflock/api/v1/endpoints/payments.py
"""Simulated payment endpoint."""

from __future__ import annotations

from fastapi import APIRouter, status

from commflock.models import Payment
from commflock.schemas.payment import PaymentResponse, PaymentSimulate
from commflock.services.payments import charge_simulated

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/simulate", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def simulate_payment(
    payload: PaymentSimulate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Payment:
    """Record a payment that always succeeds."""
    payment = charge_simulated(
        db,
        user_id=current_user.id,
        amount_sats=payload.amount_sats,
        purpose=payload.type,
    )
    db.commit()
    db.refresh(payment)
    return payment
