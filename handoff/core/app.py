"""FastAPI application factory for the SSO hand-off service."""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.sessions import SessionMiddleware

from handoff.core.settings import SsoSettings
from handoff.crypto.assertion import AssertionVerifier
from handoff.db.engine import dispose_engine, get_session_factory
from handoff.db.repo_user import SqlUserDirectory
from handoff.sso.claims import ClaimPolicy, ClaimValidator
from handoff.sso.exchange import ExchangeTokenStore
from handoff.sso.key_cache import KeyCache
from handoff.sso.routes import router as sso_router
from handoff.sso.service import SsoService
from handoff.store.base import KeyValueStore
from handoff.store.redis_store import RedisKeyValueStore
from handoff.store.sql import SqlKeyValueStore

STORE_BACKEND_DATABASE = "database"
STORE_BACKEND_REDIS = "redis"


def _build_store(
    settings: SsoSettings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: Callable[[], float],
) -> KeyValueStore:
    if settings.store_backend == STORE_BACKEND_REDIS:
        return RedisKeyValueStore.from_url(settings.redis_url)
    if settings.store_backend == STORE_BACKEND_DATABASE:
        return SqlKeyValueStore(session_factory, clock=clock)
    raise ValueError(f"Unknown SSO_STORE_BACKEND: {settings.store_backend!r}")


def build_sso_service(
    settings: SsoSettings,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    store: KeyValueStore,
    key_transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.time,
) -> SsoService:
    """Assemble the hand-off components once from settings."""
    key_cache = KeyCache(
        store,
        settings.public_key_url,
        ttl_seconds=settings.get_key_cache_ttl(),
        timeout=settings.key_fetch_timeout,
        algorithm=settings.algorithm,
        transport=key_transport,
    )
    policy = ClaimPolicy(
        issuer=settings.issuer,
        audience=settings.audience,
        subject=settings.subject,
        iat_leeway=settings.iat_leeway,
    )
    users = SqlUserDirectory(session_factory)
    return SsoService(
        key_cache=key_cache,
        verifier=AssertionVerifier(settings.algorithm),
        validator=ClaimValidator(policy, users),
        tokens=ExchangeTokenStore(store, ttl_seconds=settings.exchange_token_ttl),
        users=users,
        clock=clock,
    )


def create_app(
    settings: SsoSettings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    key_transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = settings or SsoSettings()
    owns_engine = session_factory is None
    factory = session_factory or get_session_factory()
    store = _build_store(settings, factory, clock)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if isinstance(store, RedisKeyValueStore):
            await store.close()
        if owns_engine:
            await dispose_engine()

    app = FastAPI(
        title="SSO Hand-off",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sso_service = build_sso_service(
        settings,
        session_factory=factory,
        store=store,
        key_transport=key_transport,
        clock=clock,
    )

    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.include_router(sso_router)

    return app
