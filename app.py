"""
FastAPI application factory.
create_app() is the single entry point for building the app.

The lifespan wires the account lifecycle collaborators once and stores them
on app.state:
    db, users, codec, token_service, email_provider, auth_service
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.templates import EmailTemplates
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from repositories.user_repository import MongoUserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.auth_service import AuthService
from services.token_service import TokenService
from shared.crypto import CredentialCodec
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_auth_service(
    settings: AppSettings, users, email_provider
) -> tuple[CredentialCodec, TokenService, AuthService]:
    """Assemble the codec, token service and lifecycle engine from settings."""
    codec = CredentialCodec(settings.security)
    token_service = TokenService(settings.jwt, codec)
    templates = EmailTemplates(
        app_name=settings.app_name,
        app_url=settings.app_url,
        reset_ttl_minutes=settings.security.reset_token_ttl_seconds // 60,
    )
    auth_service = AuthService(
        users=users,
        tokens=token_service,
        codec=codec,
        email_provider=email_provider,
        templates=templates,
        security=settings.security,
    )
    return codec, token_service, auth_service


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, env=settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.settings = settings
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]

        users = MongoUserRepository(app.state.db)
        await users.ensure_indexes()

        http_client = HttpClient(timeout=10.0)
        email_provider = ZeptoMailProvider(settings.email, http_client)
        codec, token_service, auth_service = build_auth_service(
            settings, users, email_provider
        )
        app.state.users = users
        app.state.codec = codec
        app.state.token_service = token_service
        app.state.email_provider = email_provider
        app.state.auth_service = auth_service

        log.info("app_started", env=settings.env, db=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await auth_service.drain_notifications()
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app
