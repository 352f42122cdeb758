"""Workflow façade: the gated entry points used by the HTTP layer.

Every mutation resolves the principal's capability first, then runs the
matching state machine or transaction. Sample status changes and their
custody entry are committed together.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from models.chain_of_custody import ChainOfCustodyEntry
from models.reagent_order import ReagentOrder, ReagentOrderUpdate
from models.sample import Sample, SampleStatus
from models.sample_test import SampleTestRun, SampleTestRunUpdate
from models.storage_location import StorageLocation
from repos import lookups_repo, samples_repo
from services import (
    custody_service,
    permissions_service,
    reagent_orders_service,
    sample_tests_service,
)
from services.errors import InternalError, NotFoundError, ValidationError
from services.samples_service import validate_status

logger = logging.getLogger(__name__)


async def request_tests(
    session: AsyncSession,
    *,
    principal: Principal,
    sample_ids: list[int],
    test_ids: list[int],
    experiment_id: int | None = None,
) -> list[int]:
    """
    Request every test in ``test_ids`` for every sample in ``sample_ids``.

    Returns:
        IDs of the created Pending runs
    """
    return await sample_tests_service.create_runs(
        session,
        principal=principal,
        sample_ids=sample_ids,
        test_ids=test_ids,
        experiment_id=experiment_id,
    )


async def update_sample_test_run(
    session: AsyncSession,
    *,
    run_id: int,
    principal: Principal,
    patch: SampleTestRunUpdate,
) -> SampleTestRun:
    """Apply a gated status/result update to a sample test run."""
    return await sample_tests_service.apply_update(
        session, run_id=run_id, principal=principal, patch=patch
    )


async def update_sample_status(
    session: AsyncSession,
    *,
    sample_id: int,
    principal: Principal,
    new_status: str | None,
    new_location_id: int | None = None,
    notes: str | None = None,
) -> Sample:
    """
    Move a sample to a new status and record it in the custody ledger.

    The storage location is kept only while the sample is 'In Storage';
    any other status clears it.

    Args:
        session: Database session
        sample_id: Sample to update
        principal: Acting principal
        new_status: Target status
        new_location_id: Storage location (required for 'In Storage')
        notes: Optional notes for the ledger entry

    Returns:
        The updated sample

    Raises:
        ForbiddenError: If the principal lacks ``update_sample_status``
        ValidationError: Missing/unknown status or 'In Storage' without location
        NotFoundError: If the sample or location does not exist
        InternalError: If the transaction fails; neither write is kept
    """
    await permissions_service.require_permission(session, principal, "update_sample_status")

    status = validate_status(new_status)
    if status == SampleStatus.IN_STORAGE and new_location_id is None:
        raise ValidationError("storage_location_id is required when current_status is 'In Storage'")

    sample = await samples_repo.get_by_id(session, sample_id=sample_id, for_update=True)
    if not sample:
        raise NotFoundError(f"Sample {sample_id} not found")

    location_id = new_location_id if status == SampleStatus.IN_STORAGE else None
    if location_id is not None and not await lookups_repo.exists(
        session, StorageLocation, entity_id=location_id
    ):
        raise NotFoundError(f"Storage location with ID {location_id} not found")

    previous_location_id = sample.storage_location_id
    previous_status = sample.current_status

    try:
        sample.current_status = status.value
        sample.storage_location_id = location_id
        await custody_service.append(
            session,
            sample_id=sample_id,
            actor_id=principal.principal_id,
            action=f"Status Updated to {status.value}",
            previous_location_id=previous_location_id,
            new_location_id=location_id,
            notes=notes or f"Sample status changed to {status.value}.",
        )
        await session.commit()
        await session.refresh(sample)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to update status of sample %s", sample_id)
        raise InternalError("Failed to update sample status")

    logger.info(
        "Sample %s moved from %r to %r by user %s",
        sample_id,
        previous_status,
        status.value,
        principal.principal_id,
    )
    return sample


async def append_manual_custody_entry(
    session: AsyncSession,
    *,
    sample_id: int,
    principal: Principal,
    action: str | None,
    notes: str | None = None,
    previous_location_id: int | None = None,
    new_location_id: int | None = None,
) -> ChainOfCustodyEntry:
    """
    Log a custody event that is not a status change (e.g. a hand-over).

    Raises:
        ForbiddenError: If the principal lacks ``manage_chain_of_custody``
        ValidationError: If ``action`` is empty
        NotFoundError: If the sample or either location does not exist
        InternalError: If the insert fails
    """
    await permissions_service.require_permission(session, principal, "manage_chain_of_custody")

    if not action or not action.strip():
        raise ValidationError("Action is required for chain of custody entry")

    if not await lookups_repo.exists(session, Sample, entity_id=sample_id):
        raise NotFoundError(f"Sample {sample_id} not found")
    for location_id in (previous_location_id, new_location_id):
        if location_id is not None and not await lookups_repo.exists(
            session, StorageLocation, entity_id=location_id
        ):
            raise NotFoundError(f"Storage location with ID {location_id} not found")

    try:
        entry = await custody_service.append(
            session,
            sample_id=sample_id,
            actor_id=principal.principal_id,
            action=action,
            previous_location_id=previous_location_id,
            new_location_id=new_location_id,
            notes=notes,
        )
        await session.commit()
        await session.refresh(entry)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to log custody entry for sample %s", sample_id)
        raise InternalError("Failed to create chain of custody entry")

    logger.info("Custody entry %r logged for sample %s", action, sample_id)
    return entry


async def update_reagent_order(
    session: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    patch: ReagentOrderUpdate,
) -> ReagentOrder:
    """Apply a partial update to a reagent order, handling first delivery."""
    return await reagent_orders_service.update_order(
        session, order_id=order_id, principal=principal, patch=patch
    )


async def mark_order_delivered(
    session: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    patch: ReagentOrderUpdate | None = None,
) -> ReagentOrder:
    """Mark a reagent order delivered; repeated calls do not change stock."""
    return await reagent_orders_service.mark_delivered(
        session, order_id=order_id, principal=principal, patch=patch
    )
