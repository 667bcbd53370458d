"""Error taxonomy shared by services and the HTTP layer.

Every failure a service can report is a :class:`CommFlockError` subclass.
Each carries a stable machine-readable ``code``, the broader ``kind`` it
belongs to, the HTTP status used when it reaches a client, and a
human-readable message.
"""

from __future__ import annotations

from fastapi import status


class CommFlockError(Exception):
    """Base class for domain failures."""

    kind: str = "Internal"
    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        """Return the JSON body sent to API clients."""
        return {"error": self.code, "kind": self.kind, "detail": self.message}


# --- Kinds -----------------------------------------------------------------------


class NotFoundError(CommFlockError):
    kind = "NotFound"
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ForbiddenError(CommFlockError):
    kind = "Forbidden"
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class UnauthorizedError(CommFlockError):
    kind = "Unauthorized"
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class ConflictError(CommFlockError):
    kind = "Conflict"
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class ValidationFailed(CommFlockError):
    kind = "ValidationError"
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input data"


class CapacityExceededError(CommFlockError):
    kind = "CapacityExceeded"
    code = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Capacity exceeded"


class PolicyViolationError(CommFlockError):
    kind = "PolicyViolation"
    code = "policy_violation"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request violates a community policy"


class InternalError(CommFlockError):
    """Unexpected storage or provider failure; message is never detailed."""


class RateLimited(CommFlockError):
    kind = "RateLimited"
    code = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


# --- Identity --------------------------------------------------------------------


class UsernameTaken(ConflictError):
    code = "username_taken"
    default_message = "Username already taken"


class EmailTaken(ConflictError):
    code = "email_taken"
    default_message = "Email already registered"


class InvalidResetToken(ValidationFailed):
    code = "invalid_reset_token"
    default_message = "Invalid or expired reset token"


# --- Communities and membership --------------------------------------------------


class SlugTaken(ConflictError):
    code = "slug_taken"
    default_message = "Slug already taken"


class AlreadyMember(ConflictError):
    code = "already_member"
    default_message = "Already a member of this community"


class JoinNotAllowed(PolicyViolationError):
    code = "join_not_allowed"
    default_message = "This community is closed to new members"


class RequirementNotMet(PolicyViolationError):
    code = "requirement_not_met"
    default_message = "Your profile does not meet this community's requirements"


class MembershipRequired(ForbiddenError):
    code = "membership_required"
    default_message = "You must be a member of this community"


class InvalidTransition(PolicyViolationError):
    code = "invalid_transition"
    default_message = "That status change is not allowed"


class OwnerRequired(PolicyViolationError):
    code = "owner_required"
    default_message = "A community must always keep exactly one owner"


# --- Events ----------------------------------------------------------------------


class EventNotOpen(PolicyViolationError):
    code = "event_not_open"
    default_message = "Event is not open for registration"


class EventFull(CapacityExceededError):
    code = "event_full"
    default_message = "This event is at full capacity"


class AlreadyRegistered(ConflictError):
    code = "already_registered"
    default_message = "Already registered for this event"


# --- Polls -----------------------------------------------------------------------


class PollClosed(PolicyViolationError):
    code = "poll_closed"
    default_message = "Poll has ended"


class InvalidOption(ValidationFailed):
    code = "invalid_option"
    default_message = "Invalid option"


class AlreadyVoted(ConflictError):
    code = "already_voted"
    default_message = "You have already voted"


# --- Badges ----------------------------------------------------------------------


class AlreadyAwarded(ConflictError):
    code = "already_awarded"
    default_message = "Badge already awarded to this member"
