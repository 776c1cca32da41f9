"""User repository and the directory used by the hand-off flow."""

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from handoff.db.models_user import UserEntity


class UserCreateData(BaseModel):
    """Parameters for creating a user."""

    email: str
    user_id: int | None = None
    name: str | None = None
    use_totp: bool = False
    root_admin: bool = False


async def get_user_by_id(session: AsyncSession, user_id: int) -> UserEntity | None:
    """Look up a user by primary key."""
    stmt = select(UserEntity).where(UserEntity.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> UserEntity | None:
    """Look up a user by email address (case-insensitive)."""
    stmt = select(UserEntity).where(UserEntity.email == email.lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, data: UserCreateData) -> UserEntity:
    """Insert a new user row."""
    user = UserEntity(
        email=data.email.lower(),
        name=data.name,
        use_totp=data.use_totp,
        root_admin=data.root_admin,
    )
    if data.user_id is not None:
        user.id = data.user_id
    session.add(user)
    await session.flush()
    return user


class SqlUserDirectory:
    """Resolves user ids against the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_id(self, user_id: int) -> UserEntity | None:
        async with self._session_factory() as session:
            return await get_user_by_id(session, user_id)
