"""Service layer for the chain-of-custody ledger.

The ledger is append-only. ``append`` only stages the entry on the session so
that the caller can commit it together with the change it records.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from models.chain_of_custody import ChainOfCustodyEntry
from repos import custody_repo


async def append(
    session: AsyncSession,
    *,
    sample_id: int,
    actor_id: int,
    action: str,
    previous_location_id: int | None = None,
    new_location_id: int | None = None,
    notes: str | None = None,
) -> ChainOfCustodyEntry:
    """
    Stage a new ledger entry for a sample.

    The entry is flushed but not committed; the caller owns the transaction.

    Args:
        session: Database session
        sample_id: Sample the entry belongs to
        actor_id: User performing the action
        action: Free-text action label, e.g. "Registered"
        previous_location_id: Location before the action
        new_location_id: Location after the action
        notes: Optional notes

    Returns:
        The staged entry with its ID populated
    """
    entry = ChainOfCustodyEntry(
        sample_id=sample_id,
        user_id=actor_id,
        action=action,
        previous_location_id=previous_location_id,
        new_location_id=new_location_id,
        notes=notes,
    )
    return await custody_repo.create(session, entry)


async def list_entries(session: AsyncSession, *, sample_id: int) -> list[ChainOfCustodyEntry]:
    """List a sample's ledger, oldest first."""
    return await custody_repo.list_for_sample(session, sample_id=sample_id)
