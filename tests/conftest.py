"""
Shared fixtures for unit and integration tests.

InMemoryUserRepository and RecordingEmailProvider stand in for MongoDB and
ZeptoMail so the account lifecycle can be exercised without any network.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping, Optional

import pytest
from bson import ObjectId

from config import JWTSettings, SecuritySettings
from errors import EmailAlreadyExistsError
from infrastructure.email.templates import EmailTemplates
from schemas.models.base import parse_object_id
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.token_service import TokenService
from shared.crypto import CredentialCodec
from shared.datetime_utils import utcnow

ACCESS_SECRET = "test-access-secret-0123456789abcdef0123"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012"


class InMemoryUserRepository:
    """Dict-backed UserRepository with the same unique-email and CAS semantics."""

    def __init__(self) -> None:
        self.docs: dict[ObjectId, dict] = {}
        self.update_calls: list[tuple[str, dict, Optional[dict]]] = []

    def _email_taken(self, email: str, exclude: Optional[ObjectId] = None) -> bool:
        return any(d["email"] == email and oid != exclude for oid, d in self.docs.items())

    def snapshot(self, email: str) -> Optional[UserDoc]:
        """Synchronous lookup for tests that cannot await."""
        for doc in self.docs.values():
            if doc["email"] == email or doc.get("pending_new_email") == email:
                return UserDoc.from_mongo(copy.deepcopy(doc))
        return None

    async def create(self, user: UserDoc) -> UserDoc:
        doc = user.to_mongo()
        if self._email_taken(doc["email"]):
            raise EmailAlreadyExistsError()
        oid = ObjectId()
        doc["_id"] = oid
        doc["created_at"] = doc.get("created_at") or utcnow()
        doc["updated_at"] = utcnow()
        self.docs[oid] = doc
        return UserDoc.from_mongo(copy.deepcopy(doc))

    async def _find(self, key: str, value: Any) -> Optional[UserDoc]:
        for doc in self.docs.values():
            if doc.get(key) == value:
                return UserDoc.from_mongo(copy.deepcopy(doc))
        return None

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        return await self._find("email", email)

    async def find_by_pending_email(self, email: str) -> Optional[UserDoc]:
        return await self._find("pending_new_email", email)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = parse_object_id(user_id)
        doc = self.docs.get(oid) if oid else None
        return UserDoc.from_mongo(copy.deepcopy(doc)) if doc else None

    async def update(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[UserDoc]:
        self.update_calls.append((user_id, dict(fields), dict(expected or {}) or None))
        oid = parse_object_id(user_id)
        doc = self.docs.get(oid) if oid else None
        if doc is None:
            return None
        if expected and any(doc.get(k) != v for k, v in expected.items()):
            return None
        if "email" in fields and self._email_taken(fields["email"], exclude=oid):
            raise EmailAlreadyExistsError()
        doc.update(fields)
        doc["updated_at"] = utcnow()
        return UserDoc.from_mongo(copy.deepcopy(doc))

    def force(self, email: str, **fields: Any) -> None:
        """Overwrite stored fields directly, bypassing the service."""
        for doc in self.docs.values():
            if doc["email"] == email:
                doc.update(fields)
                return
        raise KeyError(email)


class RecordingEmailProvider:
    """EmailProvider that records every message instead of sending it."""

    def __init__(self, succeed: bool = True, error: Optional[Exception] = None) -> None:
        self.sent: list[dict] = []
        self.succeed = succeed
        self.error = error

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"to": to_email, "subject": subject, "html": html_body, "text": text_body}
        )
        return self.succeed

    def last_to(self, email: str) -> dict:
        return [m for m in self.sent if m["to"] == email][-1]


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from reading a developer .env during tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def security_settings() -> SecuritySettings:
    # Minimal argon2 cost keeps the suite fast
    return SecuritySettings(
        salt_rounds=1,
        hash_memory_cost=8,
        hash_parallelism=1,
        reset_token_ttl_seconds=900,
    )


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_token_ttl_seconds=900,
        refresh_token_ttl_seconds=604800,
        cookie_secure=False,
    )


@pytest.fixture
def codec(security_settings) -> CredentialCodec:
    return CredentialCodec(security_settings)


@pytest.fixture
def token_service(jwt_settings, codec) -> TokenService:
    return TokenService(jwt_settings, codec)


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def email_templates() -> EmailTemplates:
    return EmailTemplates(app_name="BRICOLA", app_url="https://bricola.test")


@pytest.fixture
def auth_service(
    user_repo, token_service, codec, email_provider, email_templates, security_settings
) -> AuthService:
    return AuthService(
        users=user_repo,
        tokens=token_service,
        codec=codec,
        email_provider=email_provider,
        templates=email_templates,
        security=security_settings,
    )
