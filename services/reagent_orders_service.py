"""Service layer for reagent orders and the delivery stock transaction.

The first time an order enters 'Delivered' the reagent's stock is increased
by the order quantity inside the same transaction that writes the order.
Later deliveries of the same order never touch stock again, and moving an
order away from 'Delivered' does not reverse the increment.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from models.reagent import Reagent
from models.reagent_order import (
    ReagentOrder,
    ReagentOrderCreate,
    ReagentOrderStatus,
    ReagentOrderUpdate,
)
from models.supplier import Supplier
from repos import lookups_repo, reagent_orders_repo, reagents_repo
from services import permissions_service
from services.errors import InternalError, NotFoundError, ValidationError
from services.validators import parse_calendar_date, require_positive_int

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "supplier_id",
    "order_date",
    "expected_delivery_date",
    "quantity_ordered",
    "status",
)


def _parse_status(value) -> ReagentOrderStatus:
    try:
        return ReagentOrderStatus(value)
    except ValueError:
        raise ValidationError(
            "Invalid status. Must be one of: " + ", ".join(s.value for s in ReagentOrderStatus)
        )


async def _ensure_supplier(session: AsyncSession, supplier_id: int | None) -> None:
    if supplier_id is not None and not await lookups_repo.exists(
        session, Supplier, entity_id=supplier_id
    ):
        raise NotFoundError(f"Supplier with ID {supplier_id} not found")


async def _lock_reagent_for_delivery(
    session: AsyncSession,
    *,
    reagent_id: int,
    quantity: int,
) -> Reagent:
    """Lock the reagent row and check that the delivery keeps stock non-negative."""
    reagent = await reagents_repo.get_by_id(session, reagent_id=reagent_id, for_update=True)
    if not reagent:
        raise NotFoundError(f"Reagent with ID {reagent_id} not found")
    if reagent.current_stock + quantity < 0:
        raise ValidationError("Delivery would leave reagent stock below zero")
    return reagent


async def create_order(
    session: AsyncSession,
    *,
    principal: Principal,
    order_data: ReagentOrderCreate,
) -> ReagentOrder:
    """
    Create a reagent order.

    An order created directly as 'Delivered' counts as its first delivery
    and increases stock in the same transaction.

    Args:
        session: Database session
        principal: Acting principal
        order_data: Order payload (status defaults to 'Pending')

    Returns:
        The created order

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        ValidationError: Bad dates, non-positive quantity, or unknown status
        NotFoundError: If the reagent or supplier does not exist
        InternalError: If the transaction fails
    """
    await permissions_service.require_permission(session, principal, "manage_inventory")

    order_date = parse_calendar_date(order_data.order_date, field="order_date")
    expected_delivery_date = None
    if order_data.expected_delivery_date is not None:
        expected_delivery_date = parse_calendar_date(
            order_data.expected_delivery_date, field="expected_delivery_date"
        )
    quantity = require_positive_int(order_data.quantity_ordered, field="quantity_ordered")
    status = _parse_status(order_data.status) if order_data.status else ReagentOrderStatus.PENDING

    if not await lookups_repo.exists(session, Reagent, entity_id=order_data.reagent_id):
        raise NotFoundError(f"Reagent with ID {order_data.reagent_id} not found")
    await _ensure_supplier(session, order_data.supplier_id)

    delivered = status == ReagentOrderStatus.DELIVERED
    if delivered:
        await _lock_reagent_for_delivery(
            session, reagent_id=order_data.reagent_id, quantity=quantity
        )

    order = ReagentOrder(
        reagent_id=order_data.reagent_id,
        supplier_id=order_data.supplier_id,
        order_date=order_date,
        expected_delivery_date=expected_delivery_date,
        quantity_ordered=quantity,
        status=status.value,
    )

    try:
        order = await reagent_orders_repo.create(session, order)
        if delivered:
            await reagents_repo.increment_stock(
                session, reagent_id=order_data.reagent_id, quantity=quantity
            )
        await session.commit()
        await session.refresh(order)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to create order for reagent %s", order_data.reagent_id)
        raise InternalError("Failed to create reagent order")

    logger.info(
        "Reagent order %s created for reagent %s (%s)", order.id, order.reagent_id, order.status
    )
    return order


async def list_orders(session: AsyncSession, *, principal: Principal) -> list[ReagentOrder]:
    """List orders, newest order date first (``manage_inventory`` or ``view_reports``)."""
    await permissions_service.require_permission(
        session, principal, "manage_inventory", "view_reports"
    )
    return await reagent_orders_repo.list_all(session)


async def get_order(session: AsyncSession, *, principal: Principal, order_id: int) -> ReagentOrder:
    """
    Get an order by ID.

    Raises:
        ForbiddenError: Unless the principal holds ``manage_inventory`` or ``view_reports``
        NotFoundError: If the order does not exist
    """
    await permissions_service.require_permission(
        session, principal, "manage_inventory", "view_reports"
    )
    order = await reagent_orders_repo.get_by_id(session, order_id=order_id)
    if not order:
        raise NotFoundError(f"Reagent order {order_id} not found")
    return order


async def _apply_changes(
    session: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    changes: dict,
) -> ReagentOrder:
    await permissions_service.require_permission(session, principal, "manage_inventory")

    changes = {k: v for k, v in changes.items() if k in _UPDATABLE_FIELDS}
    if not changes:
        raise ValidationError("No fields provided for update")

    order = await reagent_orders_repo.get_by_id(session, order_id=order_id, for_update=True)
    if not order:
        raise NotFoundError(f"Reagent order {order_id} not found")

    # Validate everything before writing anything
    values = {}
    if "order_date" in changes:
        values["order_date"] = parse_calendar_date(changes["order_date"], field="order_date")
    if "expected_delivery_date" in changes:
        raw = changes["expected_delivery_date"]
        values["expected_delivery_date"] = (
            None if raw is None else parse_calendar_date(raw, field="expected_delivery_date")
        )
    if "quantity_ordered" in changes:
        values["quantity_ordered"] = require_positive_int(
            changes["quantity_ordered"], field="quantity_ordered"
        )
    if "status" in changes:
        values["status"] = _parse_status(changes["status"]).value
    if "supplier_id" in changes:
        await _ensure_supplier(session, changes["supplier_id"])
        values["supplier_id"] = changes["supplier_id"]

    previous_status = order.status
    first_delivery = (
        values.get("status") == ReagentOrderStatus.DELIVERED.value
        and previous_status != ReagentOrderStatus.DELIVERED.value
    )
    reagent_id = order.reagent_id
    quantity = values.get("quantity_ordered", order.quantity_ordered)

    if first_delivery:
        await _lock_reagent_for_delivery(session, reagent_id=reagent_id, quantity=quantity)

    try:
        for field, value in values.items():
            setattr(order, field, value)
        if first_delivery:
            await reagents_repo.increment_stock(session, reagent_id=reagent_id, quantity=quantity)
        await session.commit()
        await session.refresh(order)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to update reagent order %s", order_id)
        raise InternalError("Failed to update reagent order")

    if first_delivery:
        logger.info(
            "Reagent order %s delivered: stock of reagent %s increased by %d",
            order_id,
            reagent_id,
            quantity,
        )
    elif previous_status == ReagentOrderStatus.DELIVERED.value and order.status != previous_status:
        logger.warning(
            "Reagent order %s moved from Delivered to %s; stock is not reversed",
            order_id,
            order.status,
        )
    return order


async def update_order(
    session: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    patch: ReagentOrderUpdate,
) -> ReagentOrder:
    """
    Apply a partial update to a reagent order.

    Only fields explicitly present in ``patch`` are changed. ``supplier_id``
    and ``expected_delivery_date`` may be cleared with null.

    Args:
        session: Database session
        order_id: Order to update
        principal: Acting principal
        patch: Fields to change

    Returns:
        The updated order

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        ValidationError: Empty patch, bad dates, quantity, or status, or a
            delivery that would leave stock negative
        NotFoundError: If the order, its reagent, or the supplier does not exist
        InternalError: If the transaction fails; nothing is written
    """
    return await _apply_changes(
        session,
        order_id=order_id,
        principal=principal,
        changes=patch.model_dump(exclude_unset=True),
    )


async def mark_delivered(
    session: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    patch: ReagentOrderUpdate | None = None,
) -> ReagentOrder:
    """
    Mark an order as delivered, applying any other fields in ``patch``.

    Calling this again on an already delivered order leaves stock unchanged.
    """
    changes = patch.model_dump(exclude_unset=True) if patch else {}
    changes["status"] = ReagentOrderStatus.DELIVERED.value
    return await _apply_changes(
        session,
        order_id=order_id,
        principal=principal,
        changes=changes,
    )
