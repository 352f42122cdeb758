"""Sample endpoints: registration, status workflow, custody and test requests."""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_principal, get_db
from api.principal import Principal
from models.chain_of_custody import CustodyEntryCreate, CustodyEntryResponse
from models.sample import (
    SampleBarcodeResponse,
    SampleListResponse,
    SampleRegister,
    SampleResponse,
    SampleStatusUpdate,
)
from models.sample_test import (
    BatchTestRequestCreate,
    SampleTestRunResponse,
    TestRequestCreate,
    TestRequestResponse,
)
from services import samples_service, sample_tests_service, workflow_service

router = APIRouter()


@router.post(
    "/samples/register",
    response_model=SampleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_sample_endpoint(
    sample_data: SampleRegister,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new sample.

    Generates the sample's unique ID and barcode and logs the initial
    'Registered' custody entry in the same transaction.
    """
    sample = await samples_service.register_sample(
        db,
        principal=principal,
        sample_data=sample_data,
    )
    return SampleResponse.model_validate(sample)


@router.get("/samples", response_model=SampleListResponse)
async def list_samples_endpoint(
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List samples, newest first, with pagination metadata."""
    samples, total_count = await samples_service.list_samples(
        db,
        principal=principal,
        limit=limit,
        offset=offset,
    )
    return SampleListResponse(
        data=[SampleResponse.model_validate(s) for s in samples],
        limit=limit,
        offset=offset,
        total_count=total_count,
    )


@router.post(
    "/samples/batch-request-tests",
    response_model=TestRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def batch_request_tests_endpoint(
    request_data: BatchTestRequestCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Request the same tests for several samples at once.

    Either every (sample, test) run is created or none is.
    """
    run_ids = await workflow_service.request_tests(
        db,
        principal=principal,
        sample_ids=request_data.sample_ids,
        test_ids=request_data.test_ids,
        experiment_id=request_data.experiment_id,
    )
    return TestRequestResponse(created_run_ids=run_ids, created_count=len(run_ids))


@router.get("/samples/{sample_id}", response_model=SampleResponse)
async def get_sample_endpoint(
    sample_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a sample by ID."""
    sample = await samples_service.get_sample(db, principal=principal, sample_id=sample_id)
    return SampleResponse.model_validate(sample)


@router.put("/samples/{sample_id}/status", response_model=SampleResponse)
async def update_sample_status_endpoint(
    sample_id: int,
    update_data: SampleStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a sample to a new status/location.

    Each change appends a custody entry committed together with the sample.
    """
    sample = await workflow_service.update_sample_status(
        db,
        sample_id=sample_id,
        principal=principal,
        new_status=update_data.current_status,
        new_location_id=update_data.storage_location_id,
        notes=update_data.notes,
    )
    return SampleResponse.model_validate(sample)


@router.get("/samples/{sample_id}/barcode", response_model=SampleBarcodeResponse)
async def get_sample_barcode_endpoint(
    sample_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get the barcode/QR payload of a sample."""
    sample = await samples_service.get_barcode(db, principal=principal, sample_id=sample_id)
    return SampleBarcodeResponse(
        sample_id=sample.id,
        unique_sample_id=sample.unique_sample_id,
        barcode_qr_code=sample.barcode_qr_code,
    )


@router.get("/samples/{sample_id}/chainofcustody", response_model=List[CustodyEntryResponse])
async def get_chain_of_custody_endpoint(
    sample_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a sample's chain of custody, oldest entry first."""
    entries = await samples_service.get_custody_history(
        db, principal=principal, sample_id=sample_id
    )
    return [CustodyEntryResponse.model_validate(e) for e in entries]


@router.get("/samples/{sample_id}/lifecycle", response_model=List[CustodyEntryResponse])
async def get_sample_lifecycle_endpoint(
    sample_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a sample's lifecycle history (requires ``view_sample_lifecycle``)."""
    entries = await samples_service.get_custody_history(
        db,
        principal=principal,
        sample_id=sample_id,
        capabilities=("view_sample_lifecycle",),
    )
    return [CustodyEntryResponse.model_validate(e) for e in entries]


@router.post(
    "/samples/{sample_id}/chainofcustody",
    response_model=CustodyEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_custody_entry_endpoint(
    sample_id: int,
    entry_data: CustodyEntryCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Log a manual chain-of-custody entry for a sample."""
    entry = await workflow_service.append_manual_custody_entry(
        db,
        sample_id=sample_id,
        principal=principal,
        action=entry_data.action,
        notes=entry_data.notes,
        previous_location_id=entry_data.previous_location_id,
        new_location_id=entry_data.new_location_id,
    )
    return CustodyEntryResponse.model_validate(entry)


@router.post(
    "/samples/{sample_id}/tests",
    response_model=TestRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_sample_tests_endpoint(
    sample_id: int,
    request_data: TestRequestCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Request one or more tests for a single sample."""
    run_ids = await workflow_service.request_tests(
        db,
        principal=principal,
        sample_ids=[sample_id],
        test_ids=request_data.test_ids,
        experiment_id=request_data.experiment_id,
    )
    return TestRequestResponse(created_run_ids=run_ids, created_count=len(run_ids))


@router.get("/samples/{sample_id}/tests", response_model=List[SampleTestRunResponse])
async def list_sample_tests_endpoint(
    sample_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List the test runs requested for a sample."""
    runs = await sample_tests_service.list_runs(db, principal=principal, sample_id=sample_id)
    return [SampleTestRunResponse.model_validate(r) for r in runs]
