"""Identity store: accounts, credentials and password resets."""
from __future__ import annotations

import logging
import smtplib
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commflock.core import security
from commflock.core.errors import (
    EmailTaken,
    InvalidResetToken,
    UnauthorizedError,
    UsernameTaken,
    ValidationFailed,
)
from commflock.core.settings import settings
from commflock.db.time import as_utc, utcnow
from commflock.models import PasswordResetToken, User
from commflock.schemas.user import ProfileUpdateRequest, SignupRequest
from commflock.services.mailer import EmailSender

logger = logging.getLogger(__name__)

__all__ = [
    "authenticate",
    "create_user",
    "find_user",
    "get_user",
    "request_password_reset",
    "reset_password",
    "update_profile",
]


def _check_password_length(password: str) -> None:
    if len(password) < settings.password_min_length:
        raise ValidationFailed(
            f"Password must be at least {settings.password_min_length} characters long"
        )


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def find_user(db: Session, username: str) -> User | None:
    """Return the user with ``username`` if one exists."""
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, payload: SignupRequest) -> User:
    """Persist a new account with a bcrypt password hash.

    Raises:
        ValidationFailed: If the password is too short
        UsernameTaken: If the username is in use
        EmailTaken: If the e-mail address is in use
    """
    _check_password_length(payload.password)

    if find_user(db, payload.username) is not None:
        raise UsernameTaken()
    if payload.email and db.query(User).filter(User.email == payload.email).first():
        raise EmailTaken()

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=security.hash_password(payload.password),
        lightning_address=payload.lightning_address,
        nostr_pubkey=payload.nostr_pubkey,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        # Lost a race against a concurrent signup.
        db.rollback()
        raise UsernameTaken() from err
    db.refresh(user)
    logger.info("Created user %s", user.username)
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    """Return the user whose credentials match.

    Raises:
        UnauthorizedError: For an unknown user, a wrong password, or an
            account that has no password yet
    """
    user = find_user(db, username)
    if user is None or not security.verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid username or password")
    return user


def update_profile(db: Session, user: User, update: ProfileUpdateRequest) -> User:
    """Apply partial profile updates to ``user``."""
    update_dict = update.model_dump(exclude_unset=True)
    email = update_dict.get("email")
    if email and email != user.email:
        taken = db.query(User).filter(User.email == email, User.id != user.id).first()
        if taken is not None:
            raise EmailTaken()

    for key, value in update_dict.items():
        setattr(user, key, value)

    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise EmailTaken() from err
    db.refresh(user)
    return user


def request_password_reset(db: Session, email: str, sender: EmailSender) -> None:
    """Issue a reset token for the account registered under ``email``.

    Returns nothing either way so callers cannot tell whether the address
    belongs to an account. Mail delivery failures are logged, not raised.
    """
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return

    token = security.generate_reset_token()
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=security.hash_key(token),
            expires_at=utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes),
        )
    )
    db.commit()

    logger.info("Password reset token generated for user %s", user.username)
    try:
        sender.send_password_reset(email, user.username, token)
    except (smtplib.SMTPException, OSError):
        logger.exception("Could not deliver password reset mail for user %s", user.username)


def reset_password(db: Session, token: str, new_password: str) -> User:
    """Replace the password of the token's owner and burn the token.

    Raises:
        ValidationFailed: If the new password is too short
        InvalidResetToken: If the token is unknown, expired or already used
    """
    _check_password_length(new_password)

    record = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.token_hash == security.hash_key(token))
        .first()
    )
    if record is None:
        raise InvalidResetToken()
    if as_utc(record.expires_at) < utcnow():
        raise InvalidResetToken("This reset link has expired. Please request a new one.")
    if record.used:
        raise InvalidResetToken("This reset link has already been used")

    user = record.user
    user.password_hash = security.hash_password(new_password)
    record.used = True
    db.commit()
    logger.info("Password reset successful for user %s", user.username)
    return user
