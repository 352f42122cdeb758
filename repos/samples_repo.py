"""Repository for Sample database operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.sample import Sample


async def get_by_id(
    session: AsyncSession,
    *,
    sample_id: int,
    for_update: bool = False,
) -> Sample | None:
    """
    Get a sample by ID.

    Args:
        session: Database session
        sample_id: Sample ID to fetch
        for_update: If True, lock the row for the rest of the transaction

    Returns:
        Sample if found, None otherwise
    """
    query = select(Sample).where(Sample.id == sample_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_paginated(session: AsyncSession, *, limit: int, offset: int) -> list[Sample]:
    """
    List samples, newest first.

    Args:
        session: Database session
        limit: Page size
        offset: Rows to skip

    Returns:
        List of samples
    """
    query = select(Sample).order_by(Sample.id.desc()).limit(limit).offset(offset)
    result = await session.execute(query)
    return [sample for sample in result.scalars().all()]


async def count(session: AsyncSession) -> int:
    """Count all samples."""
    result = await session.execute(select(func.count(Sample.id)))
    return result.scalar_one()


async def create(session: AsyncSession, sample: Sample) -> Sample:
    """
    Create a new sample (flush only; the caller commits).

    Args:
        session: Database session
        sample: Sample instance to create

    Returns:
        Created sample with its ID populated
    """
    session.add(sample)
    await session.flush()
    return sample
