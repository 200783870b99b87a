"""Unit tests for the AppError hierarchy and the account lifecycle taxonomy."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import (
    AppError,
    AuthenticationError,
    AuthError,
    AuthErrorKind,
    EmailAlreadyExistsError,
    EmailAlreadyVerifiedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    UserNotActiveError,
    UserNotFoundError,
    WeakPasswordError,
    register_error_handlers,
)


class TestAuthenticationError:
    def test_status_and_code(self):
        e = AuthenticationError("not authenticated")
        assert e.status_code == 401
        assert e.error_code == "authentication_error"
        assert e.message == "not authenticated"


@pytest.mark.parametrize(
    "cls, status, kind",
    [
        (WeakPasswordError, 400, AuthErrorKind.WEAK_PASSWORD),
        (EmailAlreadyExistsError, 409, AuthErrorKind.EMAIL_ALREADY_EXISTS),
        (EmailAlreadyVerifiedError, 400, AuthErrorKind.EMAIL_ALREADY_VERIFIED),
        (EmailNotVerifiedError, 403, AuthErrorKind.EMAIL_NOT_VERIFIED),
        (InvalidCredentialsError, 401, AuthErrorKind.INVALID_CREDENTIALS),
        (InvalidTokenError, 401, AuthErrorKind.INVALID_TOKEN),
        (TokenExpiredError, 401, AuthErrorKind.TOKEN_EXPIRED),
        (UserNotActiveError, 403, AuthErrorKind.USER_NOT_ACTIVE),
        (UserNotFoundError, 404, AuthErrorKind.NOT_FOUND),
    ],
)
def test_taxonomy(cls, status, kind):
    e = cls()
    assert isinstance(e, AuthError)
    assert isinstance(e, AppError)
    assert e.status_code == status
    assert e.kind is kind
    assert e.error_code == kind.value
    assert e.message == cls.default_message
    assert e.message


def test_taxonomy_is_closed():
    subclasses = {cls.kind for cls in AuthError.__subclasses__()}
    assert subclasses == set(AuthErrorKind)


def test_fixed_messages():
    assert InvalidCredentialsError().message == "Invalid email or password"
    assert EmailAlreadyExistsError().message == "Email already registered"
    assert TokenExpiredError().message == "Token has expired"
    assert WeakPasswordError().message.startswith("Password must contain at least 8")


def test_message_override():
    assert UserNotFoundError("gone").message == "gone"
    assert UserNotFoundError("gone").error_code == "user_not_found"


class TestAppErrorToDict:
    def test_basic(self):
        e = UserNotFoundError()
        assert e.to_dict() == {"error": "User not found", "code": "user_not_found"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "password"}, "field", "password"),
            ({"details": {"min_length": 8}}, "details", {"min_length": 8}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = WeakPasswordError(**kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = InvalidTokenError().to_dict()
        assert "field" not in d
        assert "details" not in d


class TestErrorHandlers:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/expired")
        async def expired():
            raise TokenExpiredError()

        @app.get("/unauthenticated")
        async def unauthenticated():
            raise AuthenticationError("No token provided")

        @app.get("/boom")
        async def boom():
            raise RuntimeError("database password is hunter2")

        return TestClient(app, raise_server_exceptions=False)

    def test_auth_error_json(self, client):
        resp = client.get("/expired")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Token has expired", "code": "token_expired"}

    def test_authentication_error_json(self, client):
        resp = client.get("/unauthenticated")
        assert resp.status_code == 401
        assert resp.json()["code"] == "authentication_error"

    def test_unhandled_is_opaque(self, client):
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "An internal server error occurred.",
            "code": "internal_error",
        }
        assert "hunter2" not in resp.text
