"""Repository for ReagentOrder database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.reagent_order import ReagentOrder


async def get_by_id(
    session: AsyncSession,
    *,
    order_id: int,
    for_update: bool = False,
) -> ReagentOrder | None:
    """
    Get a reagent order by ID.

    Args:
        session: Database session
        order_id: Order ID to fetch
        for_update: If True, lock the row for the rest of the transaction

    Returns:
        ReagentOrder if found, None otherwise
    """
    query = select(ReagentOrder).where(ReagentOrder.id == order_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_all(session: AsyncSession) -> list[ReagentOrder]:
    """List orders, newest order date first."""
    query = select(ReagentOrder).order_by(ReagentOrder.order_date.desc(), ReagentOrder.id.desc())
    result = await session.execute(query)
    return [order for order in result.scalars().all()]


async def create(session: AsyncSession, order: ReagentOrder) -> ReagentOrder:
    """Create a new order (flush only; the caller commits)."""
    session.add(order)
    await session.flush()
    return order


async def exists_for_reagent(session: AsyncSession, *, reagent_id: int) -> bool:
    """Return True if any order references the reagent."""
    query = select(ReagentOrder.id).where(ReagentOrder.reagent_id == reagent_id).limit(1)
    result = await session.execute(query)
    return result.scalar_one_or_none() is not None
