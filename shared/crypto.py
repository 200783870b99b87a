"""
Cryptographic helpers — password hashing, token hashing and JWT signing.

Uses argon2 for passwords (via argon2-cffi), SHA-256 for token digests and
HS256 JWTs (via PyJWT). CredentialCodec holds no state beyond its work
factor; secrets and TTLs are passed in by the caller.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Any, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import Argon2Error, InvalidHashError

from config import SecuritySettings
from errors import InvalidTokenError, TokenExpiredError
from shared.datetime_utils import utcnow

JWT_ALGORITHM = "HS256"


class CredentialCodec:
    """Password hashing and token signing primitives."""

    def __init__(self, security: SecuritySettings) -> None:
        self._password_hasher = PasswordHasher(
            time_cost=security.salt_rounds,
            memory_cost=security.hash_memory_cost,
            parallelism=security.hash_parallelism,
        )

    def hash_password(self, plain_password: str) -> str:
        """Hash *plain_password* with argon2id.

        Returns:
            Argon2 hash string (includes algorithm parameters and salt).
        """
        return self._password_hasher.hash(plain_password)

    def verify_password(self, plain_password: str, password_hash: Optional[str]) -> bool:
        """Verify *plain_password* against an argon2 *password_hash*.

        Returns:
            ``True`` if the password matches, ``False`` for any failure
            (wrong password, missing or malformed hash).
        """
        if not password_hash:
            return False
        try:
            return self._password_hasher.verify(password_hash, plain_password)
        except (Argon2Error, InvalidHashError):
            return False

    def sign(
        self,
        claims: dict[str, Any],
        secret: str,
        ttl_seconds: int,
        **extra: Any,
    ) -> str:
        """Sign *claims* into a compact JWT valid for *ttl_seconds*.

        ``iat``, ``exp`` and a random ``jti`` are added so that two tokens
        minted for the same claims within one second still differ.
        """
        now = utcnow()
        payload = {
            **claims,
            **extra,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    def verify(
        self,
        token: str,
        secret: str,
        *,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ) -> dict[str, Any]:
        """Verify and decode *token*.

        Raises:
            TokenExpiredError: the token is past its ``exp``.
            InvalidTokenError: bad signature, malformed token, wrong
                audience/issuer, or any other verification failure.
        """
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                audience=audience,
                issuer=issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenError() from exc


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used for refresh tokens so the stored value never replays as a token.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(presented: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time string comparison; ``None`` or empty never matches."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
