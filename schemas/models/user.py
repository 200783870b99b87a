"""
Account document model.

Maps to the `users` MongoDB collection.

Token slots:
- verify_token: email verification code, used both after registration and
  while a pending_new_email awaits confirmation.
- reset_token / reset_token_expiry: password reset window, both None outside it.
- refresh_token_hash: SHA-256 of the single valid refresh token; None means
  logged out everywhere.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict

from schemas.models.base import MongoBaseModel


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserType(str, Enum):
    """Marketplace side the account registered for."""

    PARTICULIER = "PARTICULIER"
    PROFESSIONNEL = "PROFESSIONNEL"


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    email: str
    password_hash: str

    email_verified: bool = False
    verify_token: Optional[str] = None
    pending_new_email: Optional[str] = None

    reset_token: Optional[str] = None
    reset_token_expiry: Optional[datetime] = None

    refresh_token_hash: Optional[str] = None

    role: UserRole = UserRole.USER
    is_active: bool = True

    # Profile
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_type: Optional[UserType] = None
    country: Optional[str] = None
    phone_prefix: Optional[str] = None
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def user_id(self) -> str:
        return str(self.id)
