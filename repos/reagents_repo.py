"""Repository for Reagent database operations."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.reagent import Reagent


async def get_by_id(
    session: AsyncSession,
    *,
    reagent_id: int,
    for_update: bool = False,
) -> Reagent | None:
    """
    Get a reagent by ID.

    Args:
        session: Database session
        reagent_id: Reagent ID to fetch
        for_update: If True, lock the row for the rest of the transaction

    Returns:
        Reagent if found, None otherwise
    """
    query = select(Reagent).where(Reagent.id == reagent_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_by_lot_number(session: AsyncSession, *, lot_number: str) -> Reagent | None:
    """Get a reagent by its unique lot number."""
    result = await session.execute(select(Reagent).where(Reagent.lot_number == lot_number))
    return result.scalar_one_or_none()


async def list_all(session: AsyncSession) -> list[Reagent]:
    """List all reagents ordered by name."""
    result = await session.execute(select(Reagent).order_by(Reagent.name.asc(), Reagent.id.asc()))
    return [reagent for reagent in result.scalars().all()]


async def list_low_stock(session: AsyncSession) -> list[Reagent]:
    """List reagents whose current stock is below their minimum level."""
    query = (
        select(Reagent)
        .where(Reagent.current_stock < Reagent.min_stock_level)
        .order_by(Reagent.name.asc(), Reagent.id.asc())
    )
    result = await session.execute(query)
    return [reagent for reagent in result.scalars().all()]


async def create(session: AsyncSession, reagent: Reagent) -> Reagent:
    """Create a new reagent (flush only; the caller commits)."""
    session.add(reagent)
    await session.flush()
    return reagent


async def increment_stock(session: AsyncSession, *, reagent_id: int, quantity: int) -> None:
    """
    Add ``quantity`` to a reagent's current stock in a single UPDATE.

    The increment is computed by the database so it cannot lose a concurrent
    write. Flush/commit is left to the caller.

    Args:
        session: Database session
        reagent_id: Reagent ID
        quantity: Signed amount to add
    """
    await session.execute(
        update(Reagent)
        .where(Reagent.id == reagent_id)
        .values(current_stock=Reagent.current_stock + quantity)
    )


async def delete(session: AsyncSession, reagent: Reagent) -> None:
    """Delete a reagent (flush only; the caller commits)."""
    await session.delete(reagent)
    await session.flush()
