"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived collaborators are built once in the
app lifespan and stored on app.state.
"""

from __future__ import annotations

from fastapi import Depends, Request

from config import AppSettings
from errors import AuthenticationError
from schemas.models.user import UserDoc
from services.auth_service import AuthService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_bearer_token(request: Request) -> str:
    """Extract the access token from ``Authorization: Bearer <jwt>``."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if not auth_header:
        raise AuthenticationError("No authorization header found")
    if scheme.lower() != "bearer":
        raise AuthenticationError("Authorization header must be Bearer token")
    token = token.strip()
    if not token:
        raise AuthenticationError("No token provided")
    return token


async def get_current_user(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserDoc:
    return await auth_service.get_current_user(token)
