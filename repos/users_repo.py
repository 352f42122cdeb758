"""Repository for User database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User


async def get_by_id(session: AsyncSession, *, user_id: int) -> User | None:
    """
    Get a user by ID.

    Args:
        session: Database session
        user_id: User ID to fetch

    Returns:
        User if found, None otherwise
    """
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_by_username(session: AsyncSession, *, username: str) -> User | None:
    """Get a user by username."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()
