"""Pydantic schemas for accounts, wallets and the auth endpoints.

Learn: Separate input ("...Request"/"...Update") from output ("...Read")
schemas. No output schema has a password field, so a hash can never
leak through serialization.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from crossfun.auth.password import MIN_PASSWORD_LENGTH
from crossfun.schemas.base import ApiModel, Link
from crossfun.values import Address, Role

USERNAME_PATTERN = r"^[a-zA-Z0-9_]{3,30}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


# ─── Wallets ────────────────────────────────────────────


class WalletRead(ApiModel):
    address: str
    chain_id: int
    is_primary: bool
    verified_at: Optional[datetime] = None


class WalletRequest(ApiModel):
    wallet_address: Address
    chain_id: int = Field(default=1, ge=1)


class WalletAddressRequest(ApiModel):
    wallet_address: Address


class WalletSignatureRequest(ApiModel):
    wallet_address: Address
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class WalletLoginRequest(WalletSignatureRequest):
    chain_id: int = Field(default=1, ge=1)


class WalletChangeResponse(ApiModel):
    message: str
    wallet_address: str
    chain_id: Optional[int] = None


# ─── Accounts ───────────────────────────────────────────


class PublicAccountRead(ApiModel):
    """What anyone may see about an account."""
    id: uuid.UUID
    username: str
    avatar: str
    bio: str
    website: str
    twitter: str
    telegram: str
    discord: str
    github: str
    wallets: list[WalletRead] = []
    primary_wallet: Optional[str] = None
    tokens_created: int
    total_volume_usd: float = Field(alias="totalVolumeUSD")
    is_verified: bool
    created_at: datetime


class AccountRead(PublicAccountRead):
    """The full, sanitized account (self, moderators, admins)."""
    email: str
    role: str
    is_active: bool
    is_banned: bool
    last_login_at: Optional[datetime] = None
    updated_at: datetime


# ─── Auth requests ──────────────────────────────────────


class RegisterRequest(ApiModel):
    username: str = Field(..., pattern=USERNAME_PATTERN)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    wallet_address: Address
    chain_id: int = Field(default=1, ge=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(ApiModel):
    identifier: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class AuthResponse(ApiModel):
    message: str
    token: str
    user: AccountRead


class TokenRefreshResponse(ApiModel):
    message: str
    token: str


class ProfileResponse(ApiModel):
    user: AccountRead


class ProfileUpdateResponse(ApiModel):
    message: str
    user: AccountRead


class ProfileUpdate(ApiModel):
    username: Optional[str] = Field(None, pattern=USERNAME_PATTERN)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    avatar: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)
    website: Optional[Link] = None
    twitter: Optional[Link] = None
    telegram: Optional[Link] = None
    discord: Optional[Link] = None
    github: Optional[Link] = None


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


# ─── User administration ────────────────────────────────


class AccountUpdate(ApiModel):
    """PUT /users/{id}. Credentials (password, email, username) are not accepted here."""
    avatar: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)
    website: Optional[Link] = None
    twitter: Optional[Link] = None
    telegram: Optional[Link] = None
    discord: Optional[Link] = None
    github: Optional[Link] = None
    is_verified: Optional[bool] = None
    role: Optional[Role] = None


class AccountStats(ApiModel):
    tokens_created: int
    total_volume_usd: float = Field(alias="totalVolumeUSD")
    wallet_addresses: int
    primary_wallet: Optional[str] = None


class EventRead(ApiModel):
    id: int
    stream_id: str
    type: str
    data: dict
    meta: dict
    created_at: datetime
