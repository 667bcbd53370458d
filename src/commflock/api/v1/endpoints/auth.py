# src/commflock/api/v1/endpoints/auth.py
"""Authentication endpoints for the CommFlock API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from commflock.core.security import create_access_token
from commflock.models import User
from commflock.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UserResponse,
)
from commflock.services import users as user_service
from commflock.services.mailer import EmailSender, get_email_sender
from commflock.services.rate_limit import LimitTier

from ..dependencies import SessionDep, rate_limit

router = APIRouter(prefix="/auth", tags=["authentication"])

EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]

RESET_REQUESTED_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(LimitTier.STRICT))],
)
async def signup(payload: SignupRequest, db: SessionDep) -> User:
    """Create a new account."""
    return user_service.create_user(db, payload)


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit(LimitTier.AUTH))],
)
async def login(payload: LoginRequest, db: SessionDep) -> LoginResponse:
    """Exchange a username and password for a bearer token."""
    user = user_service.authenticate(db, payload.username, payload.password)
    return LoginResponse(access_token=create_access_token(user.id), token_type="bearer")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(LimitTier.STRICT))],
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: SessionDep,
    sender: EmailSenderDep,
) -> MessageResponse:
    """Send a password reset link.

    The response is identical whether or not the address is registered.
    """
    user_service.request_password_reset(db, payload.email, sender)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(LimitTier.AUTH))],
)
async def reset_password(payload: ResetPasswordRequest, db: SessionDep) -> MessageResponse:
    """Set a new password using a reset token."""
    user_service.reset_password(db, payload.token, payload.password)
    return MessageResponse(message="Password has been reset successfully")
