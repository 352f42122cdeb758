"""Sample test run endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_principal, get_db
from api.principal import Principal
from models.sample_test import SampleTestRunResponse, SampleTestRunUpdate
from services import permissions_service, sample_tests_service, workflow_service

router = APIRouter()


@router.get("/sample-tests", response_model=List[SampleTestRunResponse])
async def list_sample_tests_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List every sample test run, most recently requested first."""
    runs = await sample_tests_service.list_runs(db, principal=principal)
    return [SampleTestRunResponse.model_validate(r) for r in runs]


@router.get("/sample-tests/{run_id}", response_model=SampleTestRunResponse)
async def get_sample_test_endpoint(
    run_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a sample test run by ID."""
    await permissions_service.require_permission(db, principal, "view_tests")
    run = await sample_tests_service.get_run(db, run_id=run_id)
    return SampleTestRunResponse.model_validate(run)


@router.put("/sample-tests/{run_id}", response_model=SampleTestRunResponse)
async def update_sample_test_endpoint(
    run_id: int,
    patch: SampleTestRunUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a sample test run's status, results, assignee or notes.

    Status moves must follow the run's status graph and the principal must
    hold the capability of the target status.
    """
    run = await workflow_service.update_sample_test_run(
        db,
        run_id=run_id,
        principal=principal,
        patch=patch,
    )
    return SampleTestRunResponse.model_validate(run)


@router.delete("/sample-tests/{run_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sample_test_endpoint(
    run_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a sample test run (requires ``manage_tests``)."""
    await sample_tests_service.delete_run(db, run_id=run_id, principal=principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
