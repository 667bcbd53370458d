"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]{3,32}$"


def _check_lightning_address(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if "@" not in value and not value.lower().startswith("lnurl"):
        raise ValueError(
            "Lightning address should be in format: yourname@domain.com or lnurl..."
        )
    return value


def _check_nostr_pubkey(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not value.startswith("npub1"):
        raise ValueError("Nostr public key should start with npub1")
    return value


LightningAddress = Annotated[str | None, AfterValidator(_check_lightning_address)]
NostrPubkey = Annotated[str | None, AfterValidator(_check_nostr_pubkey)]


class SignupRequest(BaseModel):
    """Schema for account creation."""

    username: str = Field(..., pattern=USERNAME_PATTERN, description="Unique handle")
    password: str = Field(..., min_length=1, max_length=128)
    email: EmailStr | None = None
    lightning_address: LightningAddress = Field(None, description="name@domain or lnurl...")
    nostr_pubkey: NostrPubkey = Field(None, description="npub1... public key")


class LoginRequest(BaseModel):
    """Schema for credential login."""

    username: str
    password: str


class LoginResponse(BaseModel):
    """Response returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str


class ProfileUpdateRequest(BaseModel):
    """Schema for editing the caller's own profile."""

    email: EmailStr | None = None
    lightning_address: LightningAddress = None
    nostr_pubkey: NostrPubkey = None


class UserResponse(BaseModel):
    """Public view of a user account (never includes the password hash)."""

    id: int
    username: str
    email: str | None
    lightning_address: str | None
    nostr_pubkey: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    id: int
    username: str

    model_config = ConfigDict(from_attributes=True)
