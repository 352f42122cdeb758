"""Repository for SampleTestRun database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.sample_test import SampleTestRun


async def get_by_id(
    session: AsyncSession,
    *,
    run_id: int,
    for_update: bool = False,
) -> SampleTestRun | None:
    """
    Get a sample test run by ID.

    Args:
        session: Database session
        run_id: Run ID to fetch
        for_update: If True, lock the row for the rest of the transaction

    Returns:
        SampleTestRun if found, None otherwise
    """
    query = select(SampleTestRun).where(SampleTestRun.id == run_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_runs(session: AsyncSession, *, sample_id: int | None = None) -> list[SampleTestRun]:
    """
    List sample test runs, most recently requested first.

    Args:
        session: Database session
        sample_id: Optional sample filter

    Returns:
        List of runs
    """
    query = select(SampleTestRun)
    if sample_id is not None:
        query = query.where(SampleTestRun.sample_id == sample_id)
    query = query.order_by(SampleTestRun.requested_at.desc(), SampleTestRun.id.desc())
    result = await session.execute(query)
    return [run for run in result.scalars().all()]


async def create_many(session: AsyncSession, runs: list[SampleTestRun]) -> list[SampleTestRun]:
    """
    Insert several runs at once (flush only; the caller commits).

    Returns:
        Inserted runs with IDs populated
    """
    session.add_all(runs)
    await session.flush()
    return runs


async def delete(session: AsyncSession, run: SampleTestRun) -> None:
    """Delete a run (flush only; the caller commits)."""
    await session.delete(run)
    await session.flush()
