"""Service layer for Sample registration and lookup."""

import logging
import random
import string
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from api.principal import Principal
from models.chain_of_custody import ChainOfCustodyEntry
from models.sample import Sample, SampleRegister, SampleStatus, SAMPLE_STATUS_VALUES
from models.sample_type import SampleType
from models.source import Source
from models.storage_location import StorageLocation
from repos import lookups_repo, samples_repo
from services import custody_service, permissions_service
from services.errors import InternalError, NotFoundError, ValidationError
from services.validators import parse_calendar_date

logger = logging.getLogger(__name__)

REGISTERED_ACTION = "Registered"
REGISTERED_NOTES = "Sample registered into the system."


def generate_unique_sample_id() -> str:
    """
    Generate a human-readable sample identifier.

    Format: ``<prefix>-<epoch milliseconds>-<5 uppercase alphanumerics>``.
    """
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{config.settings.SAMPLE_ID_PREFIX}-{int(time.time() * 1000)}-{suffix}"


def barcode_for(unique_sample_id: str) -> str:
    """Barcode/QR payload for a sample identifier."""
    return f"QR-{unique_sample_id}"


def validate_status(value: str | None) -> SampleStatus:
    """
    Parse a sample status value.

    Raises:
        ValidationError: If the value is missing or unknown
    """
    if not value:
        raise ValidationError("current_status is required")
    try:
        return SampleStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid current_status. Must be one of: {', '.join(SAMPLE_STATUS_VALUES)}"
        )


async def register_sample(
    session: AsyncSession,
    *,
    principal: Principal,
    sample_data: SampleRegister,
) -> Sample:
    """
    Register a new sample together with its initial custody entry.

    Args:
        session: Database session
        principal: Acting principal
        sample_data: Registration payload

    Returns:
        The created sample

    Raises:
        ForbiddenError: If the principal lacks ``register_sample``
        ValidationError: Bad status, bad date, or 'In Storage' without location
        NotFoundError: If the sample type, source or location does not exist
        InternalError: If the transaction fails
    """
    await permissions_service.require_permission(session, principal, "register_sample")

    status = validate_status(sample_data.current_status)
    collection_date = parse_calendar_date(sample_data.collection_date, field="collection_date")
    if status == SampleStatus.IN_STORAGE and sample_data.storage_location_id is None:
        raise ValidationError("storage_location_id is required when current_status is 'In Storage'")

    if not await lookups_repo.exists(session, SampleType, entity_id=sample_data.sample_type_id):
        raise NotFoundError(f"Sample type with ID {sample_data.sample_type_id} not found")
    if not await lookups_repo.exists(session, Source, entity_id=sample_data.source_id):
        raise NotFoundError(f"Source with ID {sample_data.source_id} not found")
    if sample_data.storage_location_id is not None and not await lookups_repo.exists(
        session, StorageLocation, entity_id=sample_data.storage_location_id
    ):
        raise NotFoundError(f"Storage location with ID {sample_data.storage_location_id} not found")

    # Location only sticks while the sample is in storage
    location_id = sample_data.storage_location_id if status == SampleStatus.IN_STORAGE else None
    unique_sample_id = generate_unique_sample_id()

    sample = Sample(
        unique_sample_id=unique_sample_id,
        sample_type_id=sample_data.sample_type_id,
        source_id=sample_data.source_id,
        collection_date=collection_date,
        storage_location_id=location_id,
        current_status=status.value,
        barcode_qr_code=barcode_for(unique_sample_id),
        notes=sample_data.notes,
    )

    try:
        sample = await samples_repo.create(session, sample)
        await custody_service.append(
            session,
            sample_id=sample.id,
            actor_id=principal.principal_id,
            action=REGISTERED_ACTION,
            new_location_id=location_id,
            notes=REGISTERED_NOTES,
        )
        await session.commit()
        await session.refresh(sample)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to register sample %s", unique_sample_id)
        raise InternalError("Failed to register sample")

    logger.info(
        "Sample %s registered by user %s", sample.unique_sample_id, principal.principal_id
    )
    return sample


async def list_samples(
    session: AsyncSession,
    *,
    principal: Principal,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Sample], int]:
    """
    List samples newest first with pagination.

    Returns:
        Tuple of (page of samples, total sample count)
    """
    await permissions_service.require_permission(
        session, principal, "view_all_samples", "view_sample_details"
    )
    if limit < 1 or offset < 0:
        raise ValidationError("limit must be positive and offset non-negative")
    samples = await samples_repo.list_paginated(session, limit=limit, offset=offset)
    total_count = await samples_repo.count(session)
    return samples, total_count


async def get_sample(session: AsyncSession, *, principal: Principal, sample_id: int) -> Sample:
    """
    Get a sample by ID.

    Raises:
        ForbiddenError: If the principal cannot view samples
        NotFoundError: If the sample does not exist
    """
    await permissions_service.require_permission(
        session, principal, "view_sample_details", "view_all_samples"
    )
    sample = await samples_repo.get_by_id(session, sample_id=sample_id)
    if not sample:
        raise NotFoundError(f"Sample {sample_id} not found")
    return sample


async def get_barcode(session: AsyncSession, *, principal: Principal, sample_id: int) -> Sample:
    """Get a sample for barcode rendering (``generate_barcode`` or ``view_sample_details``)."""
    await permissions_service.require_permission(
        session, principal, "generate_barcode", "view_sample_details"
    )
    sample = await samples_repo.get_by_id(session, sample_id=sample_id)
    if not sample:
        raise NotFoundError(f"Sample {sample_id} not found")
    return sample


async def get_custody_history(
    session: AsyncSession,
    *,
    principal: Principal,
    sample_id: int,
    capabilities: tuple[str, ...] = ("view_sample_lifecycle", "manage_chain_of_custody"),
) -> list[ChainOfCustodyEntry]:
    """
    Get a sample's chain of custody, oldest first.

    Args:
        session: Database session
        principal: Acting principal
        sample_id: Sample ID
        capabilities: Acceptable capabilities for reading the history

    Raises:
        ForbiddenError: If the principal holds none of ``capabilities``
        NotFoundError: If the sample does not exist
    """
    await permissions_service.require_permission(session, principal, *capabilities)
    if not await lookups_repo.exists(session, Sample, entity_id=sample_id):
        raise NotFoundError(f"Sample {sample_id} not found")
    return await custody_service.list_entries(session, sample_id=sample_id)
