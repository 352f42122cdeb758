"""Repository for ChainOfCustodyEntry database operations.

Only inserts and reads are offered; ledger rows are never updated or deleted.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.chain_of_custody import ChainOfCustodyEntry


async def create(session: AsyncSession, entry: ChainOfCustodyEntry) -> ChainOfCustodyEntry:
    """
    Insert a custody entry (flush only; the caller commits).

    Args:
        session: Database session
        entry: Entry to insert

    Returns:
        Inserted entry with its ID populated
    """
    session.add(entry)
    await session.flush()
    return entry


async def list_for_sample(session: AsyncSession, *, sample_id: int) -> list[ChainOfCustodyEntry]:
    """
    List a sample's custody entries, oldest first.

    Ties on timestamp are broken by insertion ID.

    Args:
        session: Database session
        sample_id: Sample ID

    Returns:
        Ordered list of entries
    """
    query = (
        select(ChainOfCustodyEntry)
        .where(ChainOfCustodyEntry.sample_id == sample_id)
        .order_by(ChainOfCustodyEntry.timestamp.asc(), ChainOfCustodyEntry.id.asc())
    )
    result = await session.execute(query)
    return list(result.scalars().all())
