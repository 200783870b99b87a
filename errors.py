"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

AuthError subclasses form the closed taxonomy of the account lifecycle:
each carries an AuthErrorKind and a fixed message, and its error_code is
the kind value so clients can branch on ``code`` without parsing text.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


# ── Account lifecycle taxonomy ────────────────────────────────────────────────


class AuthErrorKind(str, Enum):
    WEAK_PASSWORD = "weak_password"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    EMAIL_ALREADY_VERIFIED = "email_already_verified"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    USER_NOT_ACTIVE = "user_not_active"
    NOT_FOUND = "user_not_found"


class AuthError(AppError):
    """Client-facing failure of an account lifecycle operation.

    Subclasses pin ``kind``, ``status_code`` and ``default_message``; the
    message is stable so the HTTP layer never has to invent one.
    """

    kind: AuthErrorKind
    default_message: str = ""

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message or self.default_message, **kwargs)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if kind is not None:
            cls.error_code = kind.value


class WeakPasswordError(AuthError):
    status_code = 400
    kind = AuthErrorKind.WEAK_PASSWORD
    default_message = (
        "Password must contain at least 8 characters, one uppercase letter, "
        "one lowercase letter, one number, and one special character"
    )


class EmailAlreadyExistsError(AuthError):
    status_code = 409
    kind = AuthErrorKind.EMAIL_ALREADY_EXISTS
    default_message = "Email already registered"


class EmailAlreadyVerifiedError(AuthError):
    status_code = 400
    kind = AuthErrorKind.EMAIL_ALREADY_VERIFIED
    default_message = "Email already verified"


class EmailNotVerifiedError(AuthError):
    status_code = 403
    kind = AuthErrorKind.EMAIL_NOT_VERIFIED
    default_message = "Email not verified. Please verify your email before logging in."


class InvalidCredentialsError(AuthError):
    status_code = 401
    kind = AuthErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class InvalidTokenError(AuthError):
    status_code = 401
    kind = AuthErrorKind.INVALID_TOKEN
    default_message = "Invalid token"


class TokenExpiredError(AuthError):
    status_code = 401
    kind = AuthErrorKind.TOKEN_EXPIRED
    default_message = "Token has expired"


class UserNotActiveError(AuthError):
    status_code = 403
    kind = AuthErrorKind.USER_NOT_ACTIVE
    default_message = "User account is not active"


class UserNotFoundError(AuthError):
    status_code = 404
    kind = AuthErrorKind.NOT_FOUND
    default_message = "User not found"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
