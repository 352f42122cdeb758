"""Service layer for the sample-test result lifecycle.

A run moves through a fixed status graph. Each move into a gated status
requires a specific capability and stamps who made it and when:

    Pending     -> In Progress, Rejected
    In Progress -> Completed, Pending, Rejected
    Completed   -> Validated, Rejected
    Validated   -> Approved, Rejected
    Approved    -> (terminal)
    Rejected    -> (terminal)

Writing `results` always requires `enter_test_results`, whatever the status.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from models.experiment import Experiment
from models.sample import Sample
from models.sample_test import SampleTestRun, SampleTestRunUpdate, SampleTestStatus
from models.test_definition import TestDefinition
from models.user import User
from repos import lookups_repo, sample_tests_repo
from services import permissions_service
from services.errors import (
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SampleTestStatus, frozenset[SampleTestStatus]] = {
    SampleTestStatus.PENDING: frozenset(
        {SampleTestStatus.IN_PROGRESS, SampleTestStatus.REJECTED}
    ),
    SampleTestStatus.IN_PROGRESS: frozenset(
        {SampleTestStatus.COMPLETED, SampleTestStatus.PENDING, SampleTestStatus.REJECTED}
    ),
    SampleTestStatus.COMPLETED: frozenset(
        {SampleTestStatus.VALIDATED, SampleTestStatus.REJECTED}
    ),
    SampleTestStatus.VALIDATED: frozenset(
        {SampleTestStatus.APPROVED, SampleTestStatus.REJECTED}
    ),
    SampleTestStatus.APPROVED: frozenset(),
    SampleTestStatus.REJECTED: frozenset(),
}

# Capability needed to move a run INTO the given status
TARGET_CAPABILITIES: dict[SampleTestStatus, str] = {
    SampleTestStatus.COMPLETED: "enter_test_results",
    SampleTestStatus.VALIDATED: "validate_test_results",
    SampleTestStatus.APPROVED: "approve_test_results",
}

# Any one of these allows the remaining edits and moves
GENERAL_EDIT_CAPABILITIES = ("enter_test_results", "manage_tests")

_UPDATABLE_FIELDS = ("status", "results", "assigned_to_user_id", "notes")


def can_transition(current: SampleTestStatus, target: SampleTestStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the status graph."""
    return target in ALLOWED_TRANSITIONS[current]


def _parse_status(value) -> SampleTestStatus:
    try:
        return SampleTestStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: "
            + ", ".join(s.value for s in SampleTestStatus)
        )


async def get_run(session: AsyncSession, *, run_id: int) -> SampleTestRun:
    """
    Get a sample test run by ID.

    Raises:
        NotFoundError: If the run does not exist
    """
    run = await sample_tests_repo.get_by_id(session, run_id=run_id)
    if not run:
        raise NotFoundError(f"Sample test {run_id} not found")
    return run


async def list_runs(
    session: AsyncSession,
    *,
    principal: Principal,
    sample_id: int | None = None,
) -> list[SampleTestRun]:
    """
    List sample test runs, optionally for a single sample.

    Raises:
        ForbiddenError: If the principal cannot view tests
        NotFoundError: If ``sample_id`` names no sample
    """
    await permissions_service.require_permission(session, principal, "view_tests")
    if sample_id is not None and not await lookups_repo.exists(
        session, Sample, entity_id=sample_id
    ):
        raise NotFoundError(f"Sample {sample_id} not found")
    return await sample_tests_repo.list_runs(session, sample_id=sample_id)


async def create_runs(
    session: AsyncSession,
    *,
    principal: Principal,
    sample_ids: list[int],
    test_ids: list[int],
    experiment_id: int | None = None,
) -> list[int]:
    """
    Create one Pending run for every (sample, test) pair.

    Either every run is created or none is.

    Args:
        session: Database session
        principal: Acting principal (recorded as requester)
        sample_ids: Samples to test
        test_ids: Test definitions to run
        experiment_id: Optional experiment the runs belong to

    Returns:
        IDs of the created runs, in sample-major order

    Raises:
        ForbiddenError: If the principal cannot request tests
        ValidationError: If either list is empty
        NotFoundError: If any referenced sample, test or experiment is missing
        InternalError: If the insert fails
    """
    await permissions_service.require_permission(session, principal, "request_sample_tests")

    if not sample_ids:
        raise ValidationError("sample_ids must be a non-empty list")
    if not test_ids:
        raise ValidationError("test_ids must be a non-empty list")

    if not await lookups_repo.all_exist(session, Sample, entity_ids=sample_ids):
        raise NotFoundError("One or more samples not found")
    if not await lookups_repo.all_exist(session, TestDefinition, entity_ids=test_ids):
        raise NotFoundError("One or more tests not found")
    if experiment_id is not None and not await lookups_repo.exists(
        session, Experiment, entity_id=experiment_id
    ):
        raise NotFoundError(f"Experiment {experiment_id} not found")

    runs = [
        SampleTestRun(
            sample_id=sample_id,
            test_id=test_id,
            experiment_id=experiment_id,
            status=SampleTestStatus.PENDING.value,
            requested_by_user_id=principal.principal_id,
        )
        for sample_id in sample_ids
        for test_id in test_ids
    ]

    try:
        await sample_tests_repo.create_many(session, runs)
        run_ids = [run.id for run in runs]
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to create sample test runs")
        raise InternalError("Failed to request tests")

    logger.info(
        "User %s requested %d test run(s) for %d sample(s)",
        principal.principal_id,
        len(run_ids),
        len(set(sample_ids)),
    )
    return run_ids


async def apply_update(
    session: AsyncSession,
    *,
    run_id: int,
    principal: Principal,
    patch: SampleTestRunUpdate,
) -> SampleTestRun:
    """
    Apply a partial update to a sample test run.

    Checks run in this order: the run exists, the patch is well formed, the
    status move is an edge of the graph, the principal holds the needed
    capability. Only then are fields written and committed at once.

    A patch whose status equals the current one is not a transition; its
    other fields are still applied.

    Args:
        session: Database session
        run_id: Run to update
        principal: Acting principal
        patch: Fields to change (only fields explicitly set are applied)

    Returns:
        The updated run

    Raises:
        NotFoundError: If the run does not exist
        ValidationError: Empty patch, unknown status, or unknown assignee
        InvalidTransitionError: If the status move is not allowed
        ForbiddenError: If the principal lacks the required capability
        InternalError: If the commit fails
    """
    run = await sample_tests_repo.get_by_id(session, run_id=run_id, for_update=True)
    if not run:
        raise NotFoundError(f"Sample test {run_id} not found")

    changes = {
        k: v for k, v in patch.model_dump(exclude_unset=True).items() if k in _UPDATABLE_FIELDS
    }
    if not changes:
        raise ValidationError("No fields to update")

    current = SampleTestStatus(run.status)
    target = current
    if "status" in changes:
        target = _parse_status(changes["status"])

    status_changes = target != current
    if status_changes and not can_transition(current, target):
        logger.warning(
            "Rejected transition of sample test %s from %r to %r",
            run_id,
            current.value,
            target.value,
        )
        raise InvalidTransitionError(
            f"Cannot change status from '{current.value}' to '{target.value}'"
        )

    # Capability checks
    if status_changes:
        needed = TARGET_CAPABILITIES.get(target)
        if needed:
            await permissions_service.require_permission(session, principal, needed)
        else:
            await permissions_service.require_permission(
                session, principal, *GENERAL_EDIT_CAPABILITIES
            )
    else:
        await permissions_service.require_permission(session, principal, *GENERAL_EDIT_CAPABILITIES)

    if "results" in changes:
        await permissions_service.require_permission(session, principal, "enter_test_results")

    if "assigned_to_user_id" in changes and changes["assigned_to_user_id"] is not None:
        assignee_id = changes["assigned_to_user_id"]
        if not await lookups_repo.exists(session, User, entity_id=assignee_id):
            raise ValidationError(f"Assigned user {assignee_id} does not exist")

    now = datetime.utcnow()

    if "results" in changes:
        run.results = changes["results"]
    if "notes" in changes:
        run.notes = changes["notes"]
    if "assigned_to_user_id" in changes:
        run.assigned_to_user_id = changes["assigned_to_user_id"]

    if run.result_entry_date is None and (
        (status_changes and target == SampleTestStatus.COMPLETED) or changes.get("results")
    ):
        run.result_entry_date = now

    if status_changes:
        run.status = target.value
        if target == SampleTestStatus.VALIDATED:
            run.validated_at = now
            run.validated_by_user_id = principal.principal_id
        elif target == SampleTestStatus.APPROVED:
            run.approved_at = now
            run.approved_by_user_id = principal.principal_id

    try:
        await session.commit()
        await session.refresh(run)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to update sample test %s", run_id)
        raise InternalError("Failed to update sample test")

    if status_changes:
        logger.info(
            "Sample test %s moved from %r to %r by user %s",
            run_id,
            current.value,
            target.value,
            principal.principal_id,
        )
    return run


async def delete_run(session: AsyncSession, *, run_id: int, principal: Principal) -> None:
    """
    Delete a sample test run regardless of its status.

    This is an administrative override outside the status graph and is
    gated by ``manage_tests``.

    Raises:
        NotFoundError: If the run does not exist
        ForbiddenError: If the principal lacks ``manage_tests``
        InternalError: If the delete fails
    """
    run = await sample_tests_repo.get_by_id(session, run_id=run_id)
    if not run:
        raise NotFoundError(f"Sample test {run_id} not found")

    await permissions_service.require_permission(session, principal, "manage_tests")

    try:
        await sample_tests_repo.delete(session, run)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to delete sample test %s", run_id)
        raise InternalError("Failed to delete sample test")

    logger.info("Sample test %s deleted by user %s", run_id, principal.principal_id)
