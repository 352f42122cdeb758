"""Existence checks for registry records referenced by workflow entities."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db import Base


async def exists(session: AsyncSession, model: type[Base], *, entity_id: int) -> bool:
    """
    Check whether a row with the given primary key exists.

    Args:
        session: Database session
        model: ORM model class with an integer ``id`` column
        entity_id: Primary key to look up

    Returns:
        True if the row exists
    """
    result = await session.execute(select(model.id).where(model.id == entity_id))
    return result.first() is not None


async def all_exist(session: AsyncSession, model: type[Base], *, entity_ids: list[int]) -> bool:
    """
    Check whether every ID in the list exists.

    Duplicate IDs are counted once.
    """
    unique_ids = set(entity_ids)
    if not unique_ids:
        return True
    result = await session.execute(
        select(func.count(model.id)).where(model.id.in_(unique_ids))
    )
    return result.scalar_one() == len(unique_ids)
