"""Key/value store backed by the ``sso_cache`` database table."""

import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from handoff.db.models_cache import CacheEntryEntity


class SqlKeyValueStore:
    """Expiring string store shared by every process using the same database.

    Expiry is enforced on read; expired rows are removed lazily when their key
    is written again or taken.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, name: str) -> str | None:
        stmt = select(CacheEntryEntity.value).where(
            CacheEntryEntity.key == name,
            CacheEntryEntity.expires_at > self._clock(),
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def put(self, name: str, value: str, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds
        async with self._session_factory() as session, session.begin():
            insert = _dialect_insert(session)
            stmt = insert(CacheEntryEntity).values(
                key=name, value=value, expires_at=expires_at
            )
            # Single upsert so racing writers never collide on the primary key.
            stmt = stmt.on_conflict_do_update(
                index_elements=[CacheEntryEntity.key],
                set_={
                    "value": stmt.excluded.value,
                    "expires_at": stmt.excluded.expires_at,
                },
            )
            await session.execute(stmt)

    async def add_if_absent(self, name: str, value: str, ttl_seconds: int) -> bool:
        now = self._clock()
        async with self._session_factory() as session, session.begin():
            await session.execute(
                delete(CacheEntryEntity).where(
                    CacheEntryEntity.key == name,
                    CacheEntryEntity.expires_at <= now,
                )
            )
            insert = _dialect_insert(session)
            stmt = (
                insert(CacheEntryEntity)
                .values(key=name, value=value, expires_at=now + ttl_seconds)
                .on_conflict_do_nothing(index_elements=[CacheEntryEntity.key])
                .returning(CacheEntryEntity.key)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def take(self, name: str) -> str | None:
        stmt = (
            delete(CacheEntryEntity)
            .where(CacheEntryEntity.key == name)
            .returning(CacheEntryEntity.value, CacheEntryEntity.expires_at)
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            row = result.one_or_none()
        if row is None:
            return None
        value, expires_at = row
        if expires_at <= self._clock():
            return None
        return value


def _dialect_insert(session: AsyncSession) -> Callable[..., Any]:
    """Pick the INSERT construct that supports ON CONFLICT for this backend."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect for key/value store: {name}")
