"""Credential hashing and bearer-token helpers."""
from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

import bcrypt
from jose import JWTError, jwt

from commflock.core.settings import settings
from commflock.db.time import utcnow


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password`` suitable for storage."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check ``password`` against a stored bcrypt hash.

    Users created without a password never verify.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def hash_key(raw_key: str) -> str:
    """Return a SHA-256 hex digest of a one-time key such as a reset token."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_reset_token() -> str:
    """Return a fresh 32-byte random token encoded as hex."""
    return secrets.token_hex(32)


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token whose subject is the user id."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> int | None:
    """Return the user id carried by ``token`` or None when it is invalid."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
