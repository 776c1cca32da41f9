"""Shared test fixtures for the SSO hand-off service."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from handoff.core.app import create_app
from handoff.core.settings import SsoSettings
from handoff.crypto.assertion import AssertionIssuer
from handoff.crypto.keys import generate_ed25519_keypair, load_private_key
from handoff.crypto.types import SigningKeyData
from handoff.db.base import BaseEntity
from handoff.db.models_cache import CacheEntryEntity
from handoff.db.models_user import UserEntity
from handoff.db.repo_user import UserCreateData, create_user
from handoff.store.sql import SqlKeyValueStore
from support import (
    ADMIN_USER_ID,
    AUDIENCE,
    ISSUER,
    KEY_URL,
    PLAIN_USER_ID,
    TOTP_USER_ID,
    FakeClock,
    KeyEndpoint,
)

_registered = (CacheEntryEntity, UserEntity)


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("SSO_ISSUER", ISSUER)
    monkeypatch.setenv("SSO_AUDIENCE", AUDIENCE)
    monkeypatch.setenv("SSO_PUBLIC_KEY_URL", KEY_URL)
    monkeypatch.setenv("SSO_SESSION_SECRET", "test-session-secret")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


async def _sqlite_factory(
    url: str,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(url, echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Create an in-memory SQLite database with all tables."""
    async for factory in _sqlite_factory("sqlite+aiosqlite://"):
        yield factory


@pytest.fixture
async def file_session_factory(
    tmp_path: Path,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite, so concurrent sessions get their own connections."""
    async for factory in _sqlite_factory(
        f"sqlite+aiosqlite:///{tmp_path / 'handoff.db'}"
    ):
        yield factory


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession], clock: FakeClock
) -> SqlKeyValueStore:
    return SqlKeyValueStore(session_factory, clock=clock)


@pytest.fixture
async def users(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Seed a plain user, an admin and a user with TOTP enabled."""
    async with session_factory() as session:
        await create_user(
            session, UserCreateData(user_id=PLAIN_USER_ID, email="plain@example.com")
        )
        await create_user(
            session,
            UserCreateData(
                user_id=ADMIN_USER_ID, email="admin@example.com", root_admin=True
            ),
        )
        await create_user(
            session,
            UserCreateData(user_id=TOTP_USER_ID, email="totp@example.com", use_totp=True),
        )
        await session.commit()


@pytest.fixture(scope="session")
def issuer_keypair() -> SigningKeyData:
    return generate_ed25519_keypair()


@pytest.fixture
def issuer(issuer_keypair: SigningKeyData) -> AssertionIssuer:
    """Issuer-side signer matching the test policy."""
    return AssertionIssuer(
        load_private_key(issuer_keypair.private_jwk.model_dump_json()),
        issuer=ISSUER,
        audience=AUDIENCE,
        kid=issuer_keypair.kid,
    )


@pytest.fixture
def key_endpoint(issuer_keypair: SigningKeyData) -> KeyEndpoint:
    return KeyEndpoint(issuer_keypair.public_jwk.model_dump_json())


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    key_endpoint: KeyEndpoint,
    clock: FakeClock,
    users: None,
) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client for the full application."""
    app = create_app(
        SsoSettings(),
        session_factory=session_factory,
        key_transport=key_endpoint.transport,
        clock=clock,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
