"""
Request DTOs for authentication endpoints.

RegisterRequest               — POST  /auth/register
LoginRequest                  — POST  /auth/login
VerifyEmailRequest            — POST  /auth/verify-email
ResendVerificationRequest     — POST  /auth/resend-verification
ForgotPasswordRequest         — POST  /auth/forgot-password
ResetPasswordRequest          — PATCH /auth/reset-password
ChangeEmailRequest            — POST  /auth/change-email
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from schemas.models.user import UserType


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    Password strength is checked by the service so the client always gets
    the fixed weak_password error rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=1)
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    user_type: UserType = Field(default=UserType.PARTICULIER, alias="type")
    country: Optional[str] = None
    phone_prefix: Optional[str] = Field(default=None, alias="prefix")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")

    def profile(self) -> dict[str, Any]:
        return self.model_dump(exclude={"email", "password"}, exclude_none=True)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify-email.

    ``token`` is the 6-character code sent to ``email``.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    token: str = Field(min_length=6, max_length=6)


class ResendVerificationRequest(BaseModel):
    """Request body for POST /auth/resend-verification."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for PATCH /auth/reset-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    token: str = Field(min_length=6, max_length=6)
    new_password: str = Field(alias="newPassword")


class ChangeEmailRequest(BaseModel):
    """Request body for POST /auth/change-email (authenticated)."""

    model_config = ConfigDict(populate_by_name=True)

    new_email: EmailStr = Field(alias="newEmail")
