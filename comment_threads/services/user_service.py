"""
User service — user records and the directory the thread service resolves
authors and requesters through.

Users are fetched without caching; they are read by primary key only.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from comment_threads.errors import NotFound
from comment_threads.models import User
from comment_threads.schemas import UserCreate


class UserDirectory:
    """Resolve a user by id or fail with ``NotFound``."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_one(self, user_id: int) -> User:
        user = await self._db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    """
    Create a new user.

    Email uniqueness is enforced by the database; the router translates
    the integrity error into a 409 response.
    """
    user = User(name=data.name, email=data.email)
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user
