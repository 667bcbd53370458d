"""Shared API dependencies for authentication and rate limiting."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from commflock.core.errors import RateLimited, UnauthorizedError
from commflock.core.security import decode_access_token
from commflock.db.session import get_db
from commflock.models import User
from commflock.services.rate_limit import LimitTier, get_rate_limiter, rule_for

# HTTP Bearer scheme for JWT authentication; missing headers are reported
# through our own Unauthorized error rather than FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        UnauthorizedError: If the token is missing or invalid, or the user is gone
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError()
    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def client_identifier(request: Request) -> str:
    """Return the client address used as the rate-limit key.

    The first ``X-Forwarded-For`` hop wins, then ``X-Real-IP``, then the
    socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def rate_limit(tier: LimitTier) -> Callable[[Request], None]:
    """Build a dependency that admits requests under the ``tier`` limit."""

    def _check(request: Request) -> None:
        result = get_rate_limiter().check(client_identifier(request), rule_for(tier))
        if not result.success:
            raise RateLimited(headers=result.headers())

    return _check
