"""
Authentication endpoints.

The refresh token only ever travels in the ``refresh_token`` cookie, scoped
to /auth/refresh; response bodies carry the access token.

POST  /auth/register            — create account, mail verification code (201)
POST  /auth/verify-email        — confirm code, start session
POST  /auth/login               — password login, start session
POST  /auth/resend-verification — mail a new verification code
POST  /auth/forgot-password     — mail a password reset code
PATCH /auth/reset-password      — set new password with reset code, start session
POST  /auth/refresh             — rotate refresh cookie, new access token
POST  /auth/logout              — revoke refresh token (bearer)
GET   /auth/me                  — current account (bearer)
POST  /auth/change-email        — mail a code to a new address (bearer)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response, status

from config import AppSettings
from dependencies import get_auth_service, get_current_user, get_settings
from errors import AuthenticationError
from schemas.dto.requests.auth import (
    ChangeEmailRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from schemas.dto.responses.auth import (
    AccessTokenResponse,
    LoginResponse,
    MeResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from schemas.models.user import UserDoc
from services.auth_service import AuthService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)

REFRESH_COOKIE_NAME = "refresh_token"
REFRESH_COOKIE_PATH = "/auth/refresh"


def set_refresh_cookie(response: Response, token: str, settings: AppSettings) -> None:
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value=token,
        max_age=settings.jwt.refresh_token_ttl_seconds,
        path=REFRESH_COOKIE_PATH,
        secure=bool(settings.jwt.cookie_secure),
        httponly=True,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response, settings: AppSettings) -> None:
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        secure=bool(settings.jwt.cookie_secure),
        httponly=True,
        samesite="strict",
    )


@router.post(
    "/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth_service.register(body.email, body.password, body.profile())
    return MessageResponse(message=result.message)


@router.post("/verify-email", response_model=AccessTokenResponse)
async def verify_email(
    body: VerifyEmailRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AccessTokenResponse:
    result = await auth_service.verify_email(body.email, body.token)
    set_refresh_cookie(response, result.tokens.refresh_token, settings)
    return AccessTokenResponse(
        access_token=result.tokens.access_token, message=result.message
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> LoginResponse:
    result = await auth_service.login(body.email, body.password)
    set_refresh_cookie(response, result.tokens.refresh_token, settings)
    return LoginResponse(
        access_token=result.tokens.access_token,
        user=UserProfileResponse.from_user(result.user),
    )


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    body: ResendVerificationRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth_service.resend_verification_email(body.email)
    return MessageResponse(message=result.message)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth_service.send_reset_password_email(body.email)
    return MessageResponse(message=result.message)


@router.patch("/reset-password", response_model=AccessTokenResponse)
async def reset_password(
    body: ResetPasswordRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AccessTokenResponse:
    result = await auth_service.reset_password(body.email, body.token, body.new_password)
    set_refresh_cookie(response, result.tokens.refresh_token, settings)
    return AccessTokenResponse(
        access_token=result.tokens.access_token, message=result.message
    )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None),
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AccessTokenResponse:
    if not refresh_token:
        raise AuthenticationError("Refresh token not found")
    tokens = await auth_service.refresh_token(refresh_token)
    set_refresh_cookie(response, tokens.refresh_token, settings)
    return AccessTokenResponse(access_token=tokens.access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> MessageResponse:
    result = await auth_service.logout(user.user_id)
    clear_refresh_cookie(response, settings)
    return MessageResponse(message=result.message)


@router.get("/me", response_model=MeResponse)
async def me(user: UserDoc = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=UserProfileResponse.from_user(user))


@router.post("/change-email", response_model=MessageResponse)
async def change_email(
    body: ChangeEmailRequest,
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth_service.request_email_change(user.user_id, body.new_email)
    return MessageResponse(message=result.message)
