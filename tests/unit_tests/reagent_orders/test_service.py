"""Unit tests for reagent orders and the delivery stock transaction.

These tests verify that the first delivery increments stock exactly once,
that repeated deliveries are idempotent, and that failures leave no partial
writes behind.
"""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from models.reagent_order import ReagentOrder, ReagentOrderCreate, ReagentOrderUpdate
from repos import reagent_orders_repo, reagents_repo
from services import reagent_orders_service, workflow_service
from services.errors import ForbiddenError, InternalError, NotFoundError, ValidationError


async def _make_order(
    db_session, reagent, quantity=10, status="Ordered", order_date=date(2024, 5, 1), **fields
):
    order = ReagentOrder(
        reagent_id=reagent.id,
        order_date=order_date,
        quantity_ordered=quantity,
        status=status,
        **fields,
    )
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


async def _stock(db_session, reagent_id) -> int:
    reagent = await reagents_repo.get_by_id(db_session, reagent_id=reagent_id)
    await db_session.refresh(reagent)
    return reagent.current_stock


@pytest.mark.asyncio
async def test_mark_delivered_is_idempotent(db_session: AsyncSession, researcher, reagent):
    """Test: delivering a 10-unit order adds 10 once; repeating leaves stock at 60."""
    order = await _make_order(db_session, reagent, quantity=10)

    delivered = await workflow_service.mark_order_delivered(
        db_session, order_id=order.id, principal=researcher
    )
    assert delivered.status == "Delivered"
    assert await _stock(db_session, reagent.id) == 60

    again = await workflow_service.mark_order_delivered(
        db_session, order_id=order.id, principal=researcher
    )
    assert again.status == "Delivered"
    assert await _stock(db_session, reagent.id) == 60


@pytest.mark.asyncio
async def test_delivery_uses_patched_quantity(db_session: AsyncSession, researcher, reagent):
    """Test: a quantity sent with the delivery is the one added to stock."""
    order = await _make_order(db_session, reagent, quantity=10)

    updated = await workflow_service.update_reagent_order(
        db_session,
        order_id=order.id,
        principal=researcher,
        patch=ReagentOrderUpdate(status="Delivered", quantity_ordered=25),
    )
    assert updated.quantity_ordered == 25
    assert await _stock(db_session, reagent.id) == 75


@pytest.mark.asyncio
async def test_redelivery_updates_only_non_stock_fields(
    db_session: AsyncSession, researcher, reagent
):
    """Test: editing a delivered order with status Delivered again does not touch stock."""
    order = await _make_order(db_session, reagent, quantity=10, status="Delivered")

    updated = await workflow_service.update_reagent_order(
        db_session,
        order_id=order.id,
        principal=researcher,
        patch=ReagentOrderUpdate(status="Delivered", expected_delivery_date="2024-05-20"),
    )
    assert updated.expected_delivery_date == date(2024, 5, 20)
    assert await _stock(db_session, reagent.id) == 50


@pytest.mark.asyncio
async def test_leaving_delivered_does_not_reverse_stock(
    db_session: AsyncSession, researcher, reagent
):
    """Test: moving away from Delivered keeps the earlier increment."""
    order = await _make_order(db_session, reagent, quantity=10)
    await workflow_service.mark_order_delivered(db_session, order_id=order.id, principal=researcher)

    cancelled = await workflow_service.update_reagent_order(
        db_session,
        order_id=order.id,
        principal=researcher,
        patch=ReagentOrderUpdate(status="Cancelled"),
    )
    assert cancelled.status == "Cancelled"
    assert await _stock(db_session, reagent.id) == 60


@pytest.mark.asyncio
async def test_non_delivery_update(db_session: AsyncSession, researcher, reagent, registry):
    """Test: plain edits change fields without touching stock; null clears optional fields."""
    order = await _make_order(
        db_session,
        reagent,
        supplier_id=registry["supplier"].id,
        expected_delivery_date=date(2024, 5, 10),
    )

    updated = await reagent_orders_service.update_order(
        db_session,
        order_id=order.id,
        principal=researcher,
        patch=ReagentOrderUpdate.model_validate(
            {"status": "Shipped", "supplier_id": None, "expected_delivery_date": None}
        ),
    )
    assert updated.status == "Shipped"
    assert updated.supplier_id is None
    assert updated.expected_delivery_date is None
    assert await _stock(db_session, reagent.id) == 50


@pytest.mark.asyncio
async def test_update_validation_writes_nothing(db_session: AsyncSession, researcher, reagent):
    """Test: invalid fields are rejected before any write."""
    order = await _make_order(db_session, reagent, quantity=10)
    bad_patches = [
        ReagentOrderUpdate(),
        ReagentOrderUpdate(status="Delivered", order_date="2024-13-01"),
        ReagentOrderUpdate(status="Delivered", quantity_ordered=0),
        ReagentOrderUpdate(status="Lost"),
        ReagentOrderUpdate(status="Delivered", expected_delivery_date="next week"),
    ]
    for patch in bad_patches:
        with pytest.raises(ValidationError):
            await reagent_orders_service.update_order(
                db_session, order_id=order.id, principal=researcher, patch=patch
            )

    await db_session.refresh(order)
    assert order.status == "Ordered"
    assert order.quantity_ordered == 10
    assert await _stock(db_session, reagent.id) == 50


@pytest.mark.asyncio
async def test_update_unknown_supplier_or_order(db_session: AsyncSession, researcher, reagent):
    """Test: unknown supplier or order is NotFound."""
    order = await _make_order(db_session, reagent)
    with pytest.raises(NotFoundError):
        await reagent_orders_service.update_order(
            db_session,
            order_id=order.id,
            principal=researcher,
            patch=ReagentOrderUpdate(status="Delivered", supplier_id=9999),
        )
    assert await _stock(db_session, reagent.id) == 50

    with pytest.raises(NotFoundError):
        await reagent_orders_service.update_order(
            db_session,
            order_id=9999,
            principal=researcher,
            patch=ReagentOrderUpdate(status="Delivered"),
        )


@pytest.mark.asyncio
async def test_update_requires_manage_inventory(db_session: AsyncSession, nobody, reagent):
    """Test: manage_inventory is required to update or deliver orders."""
    order = await _make_order(db_session, reagent)
    with pytest.raises(ForbiddenError):
        await workflow_service.mark_order_delivered(
            db_session, order_id=order.id, principal=nobody
        )
    assert await _stock(db_session, reagent.id) == 50


@pytest.mark.asyncio
async def test_delivery_failure_rolls_back(
    db_session: AsyncSession, researcher, reagent, monkeypatch
):
    """Test: a failed stock write leaves the order status and stock unchanged."""
    order = await _make_order(db_session, reagent, quantity=10)
    order_id = order.id

    async def failing_increment(session, *, reagent_id, quantity):
        raise OperationalError("UPDATE reagents", {}, Exception("deadlock detected"))

    monkeypatch.setattr(reagents_repo, "increment_stock", failing_increment)

    with pytest.raises(InternalError) as exc_info:
        await workflow_service.mark_order_delivered(
            db_session, order_id=order_id, principal=researcher
        )
    assert "deadlock" not in exc_info.value.detail

    monkeypatch.undo()
    fresh = await reagent_orders_repo.get_by_id(db_session, order_id=order_id)
    await db_session.refresh(fresh)
    assert fresh.status == "Ordered"
    assert await _stock(db_session, reagent.id) == 50

    # A retry after the failure still applies exactly once
    await workflow_service.mark_order_delivered(db_session, order_id=order_id, principal=researcher)
    assert await _stock(db_session, reagent.id) == 60


@pytest.mark.asyncio
async def test_create_order_defaults(db_session: AsyncSession, researcher, reagent, registry):
    """Test: a new order defaults to Pending and leaves stock alone."""
    order = await reagent_orders_service.create_order(
        db_session,
        principal=researcher,
        order_data=ReagentOrderCreate(
            reagent_id=reagent.id,
            supplier_id=registry["supplier"].id,
            order_date="2024-06-01",
            expected_delivery_date="2024-06-15",
            quantity_ordered=12,
        ),
    )
    assert order.status == "Pending"
    assert order.order_date == date(2024, 6, 1)
    assert await _stock(db_session, reagent.id) == 50


@pytest.mark.asyncio
async def test_create_order_as_delivered_counts_as_delivery(
    db_session: AsyncSession, researcher, reagent
):
    """Test: an order created already Delivered increments stock once."""
    order = await reagent_orders_service.create_order(
        db_session,
        principal=researcher,
        order_data=ReagentOrderCreate(
            reagent_id=reagent.id, order_date="2024-06-01", quantity_ordered=5, status="Delivered"
        ),
    )
    assert await _stock(db_session, reagent.id) == 55

    await workflow_service.mark_order_delivered(db_session, order_id=order.id, principal=researcher)
    assert await _stock(db_session, reagent.id) == 55


@pytest.mark.asyncio
async def test_create_order_validation(db_session: AsyncSession, researcher, reagent):
    """Test: bad dates, quantities, status, and references are rejected."""
    with pytest.raises(ValidationError):
        await reagent_orders_service.create_order(
            db_session,
            principal=researcher,
            order_data=ReagentOrderCreate(
                reagent_id=reagent.id, order_date="2024/06/01", quantity_ordered=1
            ),
        )
    with pytest.raises(ValidationError):
        await reagent_orders_service.create_order(
            db_session,
            principal=researcher,
            order_data=ReagentOrderCreate(
                reagent_id=reagent.id, order_date="2024-06-01", quantity_ordered=-3
            ),
        )
    with pytest.raises(NotFoundError):
        await reagent_orders_service.create_order(
            db_session,
            principal=researcher,
            order_data=ReagentOrderCreate(
                reagent_id=9999, order_date="2024-06-01", quantity_ordered=1
            ),
        )
    with pytest.raises(NotFoundError):
        await reagent_orders_service.create_order(
            db_session,
            principal=researcher,
            order_data=ReagentOrderCreate(
                reagent_id=reagent.id,
                supplier_id=9999,
                order_date="2024-06-01",
                quantity_ordered=1,
            ),
        )


@pytest.mark.asyncio
async def test_list_orders_newest_first(db_session: AsyncSession, researcher, nobody, reagent):
    """Test: orders are listed by order date, newest first."""
    older = await _make_order(db_session, reagent, order_date=date(2024, 1, 1))
    newer = await _make_order(db_session, reagent, order_date=date(2024, 3, 1))

    orders = await reagent_orders_service.list_orders(db_session, principal=researcher)
    assert [o.id for o in orders] == [newer.id, older.id]

    with pytest.raises(ForbiddenError):
        await reagent_orders_service.list_orders(db_session, principal=nobody)
