"""
Account lifecycle: registration, email verification, login, password reset,
refresh-token rotation and logout.

State per account (see schemas.models.user.UserDoc):

    verification axis   Unverified --verify_email--> Verified
    session axis        LoggedOut --login/verify/reset--> HasRefreshToken
                        HasRefreshToken --refresh_token--> HasRefreshToken (rotated)
                        HasRefreshToken --logout--> LoggedOut

Every write that consumes a single-use value (verify code, reset code,
refresh token) is conditional on that value still being stored, so two
concurrent requests presenting the same value cannot both succeed.

Emails are dispatched as background tasks; delivery failures are logged and
never reach the caller.
"""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from config import SecuritySettings
from errors import (
    EmailAlreadyExistsError,
    EmailAlreadyVerifiedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    UserNotActiveError,
    UserNotFoundError,
    WeakPasswordError,
)
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.templates import EmailTemplates, RenderedEmail
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.token_service import TokenPair, TokenService
from shared.crypto import CredentialCodec, hash_token, tokens_match
from shared.datetime_utils import as_utc, utcnow
from shared.generators import generate_verification_code
from shared.logging import get_logger
from shared.validators import is_verification_code, validate_password

log = get_logger(__name__)

PROFILE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "user_type",
        "country",
        "phone_prefix",
        "phone_number",
    }
)

MSG_REGISTERED = (
    "User registered successfully, please check your email to verify your account."
)
MSG_EMAIL_VERIFIED = "Email verified successfully"
MSG_EMAIL_UPDATED = "Email updated and verified successfully"
MSG_VERIFICATION_SENT = "Verification email sent successfully"
MSG_RESET_SENT = "Reset password email sent successfully"
MSG_PASSWORD_RESET = "Password reset successfully"
MSG_LOGGED_OUT = "Logged out successfully"
MSG_EMAIL_CHANGE_SENT = "Verification code sent to the new email address"


def _code_matches(presented: str, stored: Optional[str]) -> bool:
    """Well-formed and equal to the stored single-use code."""
    return is_verification_code(presented) and tokens_match(presented, stored)


@dataclass(frozen=True)
class AuthResult:
    message: Optional[str] = None
    tokens: Optional[TokenPair] = None
    user: Optional[UserDoc] = None


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        tokens: TokenService,
        codec: CredentialCodec,
        email_provider: EmailProvider,
        templates: EmailTemplates,
        security: SecuritySettings,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._codec = codec
        self._email = email_provider
        self._templates = templates
        self._reset_ttl = timedelta(seconds=security.reset_token_ttl_seconds)
        self._pending: set[asyncio.Task] = set()
        self._dummy_hash: Optional[str] = None

    # ── Registration & verification ──────────────────────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        profile: Optional[Mapping[str, Any]] = None,
    ) -> AuthResult:
        if not validate_password(password):
            raise WeakPasswordError()

        if await self._users.find_by_email(email) is not None:
            log.warning("registration_failed", reason="email_exists")
            raise EmailAlreadyExistsError()
        if await self._users.find_by_pending_email(email) is not None:
            log.warning("registration_failed", reason="email_pending")
            raise EmailAlreadyExistsError()

        password_hash = await asyncio.to_thread(self._codec.hash_password, password)
        verify_token = generate_verification_code()
        extra = {k: v for k, v in (profile or {}).items() if k in PROFILE_FIELDS}

        user = await self._users.create(
            UserDoc(
                email=email,
                password_hash=password_hash,
                email_verified=False,
                verify_token=verify_token,
                **extra,
            )
        )
        log.info("user_registered", user_id=user.user_id)

        self._notify(
            user.email,
            lambda: self._templates.verification(verify_token),
            event="verification_email",
            user_id=user.user_id,
        )
        return AuthResult(message=MSG_REGISTERED)

    async def verify_email(self, email: str, token: str) -> AuthResult:
        """Confirm *email* with the code that was mailed to it.

        An address matching an account's primary email completes registration;
        one matching an account's pending_new_email completes an email change.
        """
        user = await self._users.find_by_email(email)
        if user is not None:
            return await self._confirm_registration(user, token)

        user = await self._users.find_by_pending_email(email)
        if user is not None:
            return await self._confirm_email_change(user, token)

        log.warning("email_verification_failed", reason="user_not_found")
        raise UserNotFoundError()

    async def _confirm_registration(self, user: UserDoc, token: str) -> AuthResult:
        if user.email_verified:
            raise EmailAlreadyVerifiedError()
        if not _code_matches(token, user.verify_token):
            log.warning(
                "email_verification_failed", reason="token_mismatch", user_id=user.user_id
            )
            raise InvalidTokenError()

        tokens = self._tokens.issue_pair(user.user_id, user.email, user.role)
        updated = await self._users.update(
            user.user_id,
            {
                "email_verified": True,
                "verify_token": None,
                "refresh_token_hash": hash_token(tokens.refresh_token),
            },
            expected={"verify_token": user.verify_token},
        )
        if updated is None:
            # Code consumed by a concurrent request
            raise InvalidTokenError()

        log.info("email_verified", user_id=user.user_id)
        return AuthResult(message=MSG_EMAIL_VERIFIED, tokens=tokens, user=updated)

    async def _confirm_email_change(self, user: UserDoc, token: str) -> AuthResult:
        new_email = user.pending_new_email
        if not _code_matches(token, user.verify_token):
            log.warning(
                "email_change_failed", reason="token_mismatch", user_id=user.user_id
            )
            raise InvalidTokenError()

        tokens = self._tokens.issue_pair(user.user_id, new_email, user.role)
        updated = await self._users.update(
            user.user_id,
            {
                "email": new_email,
                "pending_new_email": None,
                "verify_token": None,
                "email_verified": True,
                "refresh_token_hash": hash_token(tokens.refresh_token),
            },
            expected={"pending_new_email": new_email, "verify_token": user.verify_token},
        )
        if updated is None:
            raise InvalidTokenError()

        log.info("email_changed", user_id=user.user_id)
        return AuthResult(message=MSG_EMAIL_UPDATED, tokens=tokens, user=updated)

    async def resend_verification_email(self, email: str) -> AuthResult:
        user = await self._users.find_by_email(email)
        if user is None:
            raise UserNotFoundError()
        if user.email_verified:
            raise EmailAlreadyVerifiedError()

        verify_token = generate_verification_code()
        await self._users.update(user.user_id, {"verify_token": verify_token})

        self._notify(
            user.email,
            lambda: self._templates.verification(verify_token),
            event="verification_email",
            user_id=user.user_id,
        )
        return AuthResult(message=MSG_VERIFICATION_SENT)

    async def request_email_change(self, user_id: str, new_email: str) -> AuthResult:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        if not user.email_verified:
            raise EmailNotVerifiedError()

        if await self._users.find_by_email(new_email) is not None:
            raise EmailAlreadyExistsError()
        claimed = await self._users.find_by_pending_email(new_email)
        if claimed is not None and claimed.user_id != user.user_id:
            raise EmailAlreadyExistsError()

        verify_token = generate_verification_code()
        await self._users.update(
            user.user_id,
            {"pending_new_email": new_email, "verify_token": verify_token},
        )
        log.info("email_change_requested", user_id=user.user_id)

        self._notify(
            new_email,
            lambda: self._templates.email_change(verify_token, new_email),
            event="email_change_email",
            user_id=user.user_id,
        )
        return AuthResult(message=MSG_EMAIL_CHANGE_SENT)

    # ── Sessions ─────────────────────────────────────────────────────────────

    async def _verify_against_dummy(self, password: str) -> None:
        """Spend one argon2 verify so unknown emails answer as slowly as known ones."""
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                self._codec.hash_password, secrets.token_urlsafe(16)
            )
        await asyncio.to_thread(self._codec.verify_password, password, self._dummy_hash)

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self._users.find_by_email(email)
        if user is None:
            await self._verify_against_dummy(password)
            log.warning("login_failed", reason="invalid_credentials", email_exists=False)
            raise InvalidCredentialsError()

        valid = await asyncio.to_thread(
            self._codec.verify_password, password, user.password_hash
        )
        if not valid:
            log.warning("login_failed", reason="invalid_password", user_id=user.user_id)
            raise InvalidCredentialsError()
        if not user.email_verified:
            raise EmailNotVerifiedError()
        if not user.is_active:
            log.warning("login_failed", reason="inactive", user_id=user.user_id)
            raise UserNotActiveError()

        tokens = self._tokens.issue_pair(user.user_id, user.email, user.role)
        updated = await self._users.update(
            user.user_id, {"refresh_token_hash": hash_token(tokens.refresh_token)}
        )
        if updated is None:
            raise UserNotFoundError()

        log.info("login_success", user_id=user.user_id, auth_method="password")
        return AuthResult(tokens=tokens, user=updated)

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, invalidating the old one."""
        claims = self._tokens.verify_refresh(refresh_token)

        user = await self._users.find_by_id(claims.sub)
        if user is None:
            log.warning("token_refresh_failed", reason="user_not_found")
            raise InvalidTokenError()

        stored = user.refresh_token_hash
        if not tokens_match(hash_token(refresh_token), stored):
            # Superseded, logged-out or foreign token
            log.warning("token_refresh_failed", reason="digest_mismatch", user_id=user.user_id)
            raise InvalidTokenError()
        if not user.is_active:
            raise UserNotActiveError()

        tokens = self._tokens.issue_pair(user.user_id, user.email, user.role)
        updated = await self._users.update(
            user.user_id,
            {"refresh_token_hash": hash_token(tokens.refresh_token)},
            expected={"refresh_token_hash": stored},
        )
        if updated is None:
            log.warning("token_refresh_failed", reason="lost_race", user_id=user.user_id)
            raise InvalidTokenError()

        log.info("token_refreshed", user_id=user.user_id)
        return tokens

    async def logout(self, user_id: str) -> AuthResult:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        await self._users.update(user.user_id, {"refresh_token_hash": None})
        log.info("logout", user_id=user.user_id)
        return AuthResult(message=MSG_LOGGED_OUT)

    async def get_current_user(self, access_token: str) -> UserDoc:
        claims = self._tokens.verify_access(access_token)
        user = await self._users.find_by_id(claims.sub)
        if user is None:
            raise InvalidTokenError()
        if not user.is_active:
            raise UserNotActiveError()
        return user

    # ── Password reset ───────────────────────────────────────────────────────

    async def send_reset_password_email(self, email: str) -> AuthResult:
        user = await self._users.find_by_email(email)
        if user is None:
            raise UserNotFoundError()

        reset_token = generate_verification_code()
        await self._users.update(
            user.user_id,
            {"reset_token": reset_token, "reset_token_expiry": utcnow() + self._reset_ttl},
        )
        log.info("password_reset_requested", user_id=user.user_id)

        self._notify(
            user.email,
            lambda: self._templates.password_reset(reset_token),
            event="password_reset_email",
            user_id=user.user_id,
        )
        return AuthResult(message=MSG_RESET_SENT)

    async def reset_password(self, email: str, token: str, new_password: str) -> AuthResult:
        user = await self._users.find_by_email(email)
        if user is None:
            raise UserNotFoundError()
        if not _code_matches(token, user.reset_token):
            log.warning("password_reset_failed", reason="token_mismatch", user_id=user.user_id)
            raise InvalidTokenError()
        expiry = as_utc(user.reset_token_expiry)
        if expiry is None or expiry < utcnow():
            log.warning("password_reset_failed", reason="expired", user_id=user.user_id)
            raise TokenExpiredError()
        if not validate_password(new_password):
            raise WeakPasswordError()

        password_hash = await asyncio.to_thread(self._codec.hash_password, new_password)
        tokens = self._tokens.issue_pair(user.user_id, user.email, user.role)
        updated = await self._users.update(
            user.user_id,
            {
                "password_hash": password_hash,
                "reset_token": None,
                "reset_token_expiry": None,
                "refresh_token_hash": hash_token(tokens.refresh_token),
            },
            expected={"reset_token": user.reset_token},
        )
        if updated is None:
            raise InvalidTokenError()

        log.info("password_reset", user_id=user.user_id)
        return AuthResult(message=MSG_PASSWORD_RESET, tokens=tokens, user=updated)

    # ── Notifications ────────────────────────────────────────────────────────

    def _notify(
        self,
        to_email: str,
        render: Callable[[], RenderedEmail],
        *,
        event: str,
        user_id: str,
    ) -> None:
        task = asyncio.create_task(
            self._deliver(to_email, render, event=event, user_id=user_id)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(
        self,
        to_email: str,
        render: Callable[[], RenderedEmail],
        *,
        event: str,
        user_id: str,
    ) -> None:
        try:
            message = render()
            sent = await self._email.send(
                to_email, message.subject, message.html_body, message.text_body
            )
        except Exception as e:
            log.error(
                "notification_failed",
                notification=event,
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        if sent:
            log.info("notification_sent", notification=event, user_id=user_id)
        else:
            log.error(
                "notification_failed",
                notification=event,
                user_id=user_id,
                reason="provider_rejected",
            )

    async def drain_notifications(self) -> None:
        """Wait for every in-flight email task to finish."""
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch)
            self._pending.difference_update(batch)
