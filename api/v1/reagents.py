"""Reagent stock endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_principal, get_db
from api.principal import Principal
from models.reagent import ReagentCreate, ReagentResponse, ReagentUpdate, StockAdjustment
from services import reagents_service

router = APIRouter()


@router.post("/reagents", response_model=ReagentResponse, status_code=status.HTTP_201_CREATED)
async def create_reagent_endpoint(
    reagent_data: ReagentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Register a reagent lot. Lot numbers are unique."""
    reagent = await reagents_service.create_reagent(
        db,
        principal=principal,
        reagent_data=reagent_data,
    )
    return ReagentResponse.model_validate(reagent)


@router.get("/reagents", response_model=List[ReagentResponse])
async def list_reagents_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List all reagents. Any authenticated user may read stock."""
    reagents = await reagents_service.list_reagents(db)
    return [ReagentResponse.model_validate(r) for r in reagents]


@router.get("/reagents/alerts/low_stock", response_model=List[ReagentResponse])
async def low_stock_alerts_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List reagents whose stock is below their minimum level."""
    reagents = await reagents_service.list_low_stock(db, principal=principal)
    return [ReagentResponse.model_validate(r) for r in reagents]


@router.get("/reagents/{reagent_id}", response_model=ReagentResponse)
async def get_reagent_endpoint(
    reagent_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a reagent by ID."""
    reagent = await reagents_service.get_reagent(db, reagent_id=reagent_id)
    return ReagentResponse.model_validate(reagent)


@router.put("/reagents/{reagent_id}", response_model=ReagentResponse)
async def update_reagent_endpoint(
    reagent_id: int,
    patch: ReagentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Update a reagent's details. Only the fields sent are changed."""
    reagent = await reagents_service.update_reagent(
        db,
        principal=principal,
        reagent_id=reagent_id,
        patch=patch,
    )
    return ReagentResponse.model_validate(reagent)


@router.delete("/reagents/{reagent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reagent_endpoint(
    reagent_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a reagent (refused while orders reference it)."""
    await reagents_service.delete_reagent(db, principal=principal, reagent_id=reagent_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/reagents/{reagent_id}/update_stock", response_model=ReagentResponse)
async def update_stock_endpoint(
    reagent_id: int,
    adjustment: StockAdjustment,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Apply a signed change to a reagent's stock. Stock never goes below zero."""
    reagent = await reagents_service.adjust_stock(
        db,
        principal=principal,
        reagent_id=reagent_id,
        change=adjustment.change,
    )
    return ReagentResponse.model_validate(reagent)
