"""
Response DTOs for authentication endpoints.

UserProfileResponse — public account shape (no secrets or token slots)
AccessTokenResponse — verify-email / reset-password / refresh (200)
LoginResponse       — POST /auth/login (200)
MeResponse          — GET /auth/me (200)

The refresh token never appears in a body; it travels in the
``refresh_token`` cookie.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.user import UserDoc


class UserProfileResponse(BaseModel):
    """Account fields safe to return to the account owner."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    email_verified: bool
    role: str
    is_active: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_type: Optional[str] = None
    country: Optional[str] = None
    phone_prefix: Optional[str] = None
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None
    pending_new_email: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: UserDoc) -> "UserProfileResponse":
        return cls(
            id=user.user_id,
            email=user.email,
            email_verified=user.email_verified,
            role=user.role,
            is_active=user.is_active,
            first_name=user.first_name,
            last_name=user.last_name,
            user_type=user.user_type,
            country=user.country,
            phone_prefix=user.phone_prefix,
            phone_number=user.phone_number,
            profile_picture=user.profile_picture,
            pending_new_email=user.pending_new_email,
            created_at=user.created_at,
        )


class AccessTokenResponse(BaseModel):
    """Response body carrying a fresh access token (and optional message)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    message: Optional[str] = None


class LoginResponse(BaseModel):
    """Response body for POST /auth/login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    user: UserProfileResponse


class MeResponse(BaseModel):
    """Response body for GET /auth/me (200)."""

    model_config = ConfigDict(populate_by_name=True)

    user: UserProfileResponse
