"""Async SQLAlchemy engine and session factory management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from handoff.core.settings import DatabaseSettings


class _EngineHolder:
    """Lazy singleton for the engine and its session factory."""

    engine: AsyncEngine | None = None
    factory: async_sessionmaker[AsyncSession] | None = None


_holder = _EngineHolder()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create the async session factory."""
    if _holder.factory is None:
        db = DatabaseSettings()
        kwargs: dict[str, int] = {}
        if db.async_url.startswith("postgresql"):
            kwargs = {"pool_size": db.pool_size, "max_overflow": db.max_overflow}
        _holder.engine = create_async_engine(db.async_url, **kwargs)
        _holder.factory = async_sessionmaker(
            _holder.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _holder.factory


async def dispose_engine() -> None:
    """Close pooled connections of the lazily created engine, if any."""
    if _holder.engine is not None:
        await _holder.engine.dispose()
    _holder.engine = None
    _holder.factory = None
