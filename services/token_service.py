"""
Access/refresh token pair issuance and verification.

Both tokens carry the same identity claims ({sub, email, role}) but are
signed with different secrets and TTLs, and tagged with a ``type`` claim so
one can never be presented in place of the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from config import JWTSettings
from errors import InvalidTokenError
from shared.crypto import CredentialCodec

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    role: str
    raw: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        try:
            return cls(
                sub=str(payload["sub"]),
                email=str(payload["email"]),
                role=str(payload["role"]),
                raw=payload,
            )
        except KeyError as exc:
            raise InvalidTokenError() from exc


class TokenService:
    def __init__(self, settings: JWTSettings, codec: CredentialCodec) -> None:
        if not settings.access_secret or not settings.refresh_secret:
            raise RuntimeError(
                "ACCESS_SECRET and REFRESH_SECRET must both be set to issue tokens"
            )
        if settings.access_secret == settings.refresh_secret:
            raise RuntimeError("ACCESS_SECRET and REFRESH_SECRET must differ")
        self._settings = settings
        self._codec = codec

    def _sign(self, claims: dict[str, Any], secret: str, ttl: int, token_type: str) -> str:
        return self._codec.sign(
            claims,
            secret,
            ttl,
            type=token_type,
            iss=self._settings.jwt_issuer,
            aud=self._settings.jwt_audience,
        )

    def issue_pair(self, user_id: str, email: str, role: str) -> TokenPair:
        claims = {"sub": str(user_id), "email": email, "role": role}
        return TokenPair(
            access_token=self._sign(
                claims,
                self._settings.access_secret,
                self._settings.access_token_ttl_seconds,
                ACCESS_TOKEN_TYPE,
            ),
            refresh_token=self._sign(
                claims,
                self._settings.refresh_secret,
                self._settings.refresh_token_ttl_seconds,
                REFRESH_TOKEN_TYPE,
            ),
        )

    def _verify(self, token: str, secret: str, token_type: str) -> TokenClaims:
        payload = self._codec.verify(
            token,
            secret,
            audience=self._settings.jwt_audience,
            issuer=self._settings.jwt_issuer,
        )
        if payload.get("type") != token_type:
            raise InvalidTokenError()
        return TokenClaims.from_payload(payload)

    def verify_refresh(self, token: str) -> TokenClaims:
        """Raises TokenExpiredError or InvalidTokenError."""
        return self._verify(token, self._settings.refresh_secret, REFRESH_TOKEN_TYPE)

    def verify_access(self, token: str) -> TokenClaims:
        """Raises TokenExpiredError or InvalidTokenError."""
        return self._verify(token, self._settings.access_secret, ACCESS_TOKEN_TYPE)
