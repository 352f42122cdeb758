"""Reagent order endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_principal, get_db
from api.principal import Principal
from models.reagent_order import ReagentOrderCreate, ReagentOrderResponse, ReagentOrderUpdate
from services import reagent_orders_service, workflow_service

router = APIRouter()


@router.post(
    "/reagent_orders",
    response_model=ReagentOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reagent_order_endpoint(
    order_data: ReagentOrderCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create a reagent order (status defaults to 'Pending')."""
    order = await reagent_orders_service.create_order(
        db,
        principal=principal,
        order_data=order_data,
    )
    return ReagentOrderResponse.model_validate(order)


@router.get("/reagent_orders", response_model=List[ReagentOrderResponse])
async def list_reagent_orders_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List reagent orders, newest order date first."""
    orders = await reagent_orders_service.list_orders(db, principal=principal)
    return [ReagentOrderResponse.model_validate(o) for o in orders]


@router.get("/reagent_orders/{order_id}", response_model=ReagentOrderResponse)
async def get_reagent_order_endpoint(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a reagent order by ID."""
    order = await reagent_orders_service.get_order(db, principal=principal, order_id=order_id)
    return ReagentOrderResponse.model_validate(order)


@router.put("/reagent_orders/{order_id}", response_model=ReagentOrderResponse)
async def update_reagent_order_endpoint(
    order_id: int,
    patch: ReagentOrderUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a reagent order.

    Setting status to 'Delivered' for the first time adds the ordered
    quantity to the reagent's stock in the same transaction.
    """
    order = await workflow_service.update_reagent_order(
        db,
        order_id=order_id,
        principal=principal,
        patch=patch,
    )
    return ReagentOrderResponse.model_validate(order)
