"""Unit tests for sample registration and the status workflow.

Every status change must be paired with exactly one ledger entry, and a
rejected or failed change must leave both the sample and the ledger untouched.
"""

import re

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from models.sample import SampleRegister
from repos import custody_repo, samples_repo
from services import custody_service, samples_service, workflow_service
from services.errors import ForbiddenError, InternalError, NotFoundError, ValidationError


def _registration(registry, **overrides) -> SampleRegister:
    data = {
        "sample_type_id": registry["sample_type"].id,
        "source_id": registry["source"].id,
        "collection_date": "2024-01-15",
        "current_status": "Registered",
    }
    data.update(overrides)
    return SampleRegister(**data)


@pytest.mark.asyncio
async def test_register_sample_writes_ledger(db_session: AsyncSession, researcher, registry):
    """Test: registration creates the sample, its IDs, and one 'Registered' entry."""
    sample = await samples_service.register_sample(
        db_session, principal=researcher, sample_data=_registration(registry)
    )

    assert re.fullmatch(r"SAMP-\d+-[A-Z0-9]{5}", sample.unique_sample_id)
    assert sample.barcode_qr_code == f"QR-{sample.unique_sample_id}"
    assert sample.current_status == "Registered"
    assert sample.storage_location_id is None

    entries = await custody_service.list_entries(db_session, sample_id=sample.id)
    assert len(entries) == 1
    assert entries[0].action == "Registered"
    assert entries[0].notes == "Sample registered into the system."
    assert entries[0].user_id == researcher.principal_id


@pytest.mark.asyncio
async def test_register_in_storage_keeps_location(db_session: AsyncSession, researcher, registry):
    """Test: 'In Storage' registration stores the location on the sample and the entry."""
    freezer_id = registry["freezer"].id
    sample = await samples_service.register_sample(
        db_session,
        principal=researcher,
        sample_data=_registration(
            registry, current_status="In Storage", storage_location_id=freezer_id
        ),
    )
    assert sample.storage_location_id == freezer_id
    entries = await custody_service.list_entries(db_session, sample_id=sample.id)
    assert entries[0].new_location_id == freezer_id


@pytest.mark.asyncio
async def test_register_drops_location_outside_storage(
    db_session: AsyncSession, researcher, registry
):
    """Test: a location given with a non-storage status is not stored."""
    sample = await samples_service.register_sample(
        db_session,
        principal=researcher,
        sample_data=_registration(registry, storage_location_id=registry["freezer"].id),
    )
    assert sample.storage_location_id is None


@pytest.mark.asyncio
async def test_register_validation(db_session: AsyncSession, researcher, registry):
    """Test: bad status, bad date, and In Storage without location are rejected."""
    with pytest.raises(ValidationError):
        await samples_service.register_sample(
            db_session,
            principal=researcher,
            sample_data=_registration(registry, current_status="Lost"),
        )
    with pytest.raises(ValidationError):
        await samples_service.register_sample(
            db_session,
            principal=researcher,
            sample_data=_registration(registry, collection_date="2024-02-30"),
        )
    with pytest.raises(ValidationError):
        await samples_service.register_sample(
            db_session,
            principal=researcher,
            sample_data=_registration(registry, current_status="In Storage"),
        )
    assert await samples_repo.count(db_session) == 0


@pytest.mark.asyncio
async def test_register_unknown_references(db_session: AsyncSession, researcher, registry):
    """Test: unknown sample type, source or location is NotFound."""
    with pytest.raises(NotFoundError):
        await samples_service.register_sample(
            db_session, principal=researcher, sample_data=_registration(registry, sample_type_id=999)
        )
    with pytest.raises(NotFoundError):
        await samples_service.register_sample(
            db_session, principal=researcher, sample_data=_registration(registry, source_id=999)
        )
    with pytest.raises(NotFoundError):
        await samples_service.register_sample(
            db_session,
            principal=researcher,
            sample_data=_registration(
                registry, current_status="In Storage", storage_location_id=999
            ),
        )


@pytest.mark.asyncio
async def test_register_requires_capability(db_session: AsyncSession, nobody, registry):
    """Test: register_sample is required."""
    with pytest.raises(ForbiddenError):
        await samples_service.register_sample(
            db_session, principal=nobody, sample_data=_registration(registry)
        )


@pytest.mark.asyncio
async def test_register_then_store(db_session: AsyncSession, researcher, registry):
    """Test: register, then move into storage; the ledger grows to two entries."""
    sample = await samples_service.register_sample(
        db_session, principal=researcher, sample_data=_registration(registry)
    )
    entries = await custody_service.list_entries(db_session, sample_id=sample.id)
    assert [e.action for e in entries] == ["Registered"]

    freezer_id = registry["freezer"].id
    updated = await workflow_service.update_sample_status(
        db_session,
        sample_id=sample.id,
        principal=researcher,
        new_status="In Storage",
        new_location_id=freezer_id,
    )
    assert updated.storage_location_id == freezer_id
    assert updated.current_status == "In Storage"

    entries = await custody_service.list_entries(db_session, sample_id=sample.id)
    assert [e.action for e in entries] == ["Registered", "Status Updated to In Storage"]
    assert entries[1].previous_location_id is None
    assert entries[1].new_location_id == freezer_id
    assert entries[1].notes == "Sample status changed to In Storage."


@pytest.mark.asyncio
async def test_status_change_clears_location(
    db_session: AsyncSession, researcher, sample, registry
):
    """Test: leaving storage clears the location and records where it came from."""
    freezer_id = registry["freezer"].id
    await workflow_service.update_sample_status(
        db_session,
        sample_id=sample.id,
        principal=researcher,
        new_status="In Storage",
        new_location_id=freezer_id,
    )
    updated = await workflow_service.update_sample_status(
        db_session,
        sample_id=sample.id,
        principal=researcher,
        new_status="In Analysis",
        new_location_id=registry["fridge"].id,
        notes="Sent to bench",
    )
    assert updated.current_status == "In Analysis"
    assert updated.storage_location_id is None

    entries = await custody_service.list_entries(db_session, sample_id=sample.id)
    last = entries[-1]
    assert last.action == "Status Updated to In Analysis"
    assert last.previous_location_id == freezer_id
    assert last.new_location_id is None
    assert last.notes == "Sent to bench"


@pytest.mark.asyncio
async def test_in_storage_without_location_changes_nothing(
    db_session: AsyncSession, researcher, sample
):
    """Test: 'In Storage' without a location fails and writes neither sample nor ledger."""
    with pytest.raises(ValidationError):
        await workflow_service.update_sample_status(
            db_session, sample_id=sample.id, principal=researcher, new_status="In Storage"
        )
    await db_session.refresh(sample)
    assert sample.current_status == "Registered"
    assert await custody_repo.list_for_sample(db_session, sample_id=sample.id) == []


@pytest.mark.asyncio
async def test_status_update_validation(db_session: AsyncSession, researcher, sample):
    """Test: missing or unknown status is a ValidationError; unknown sample is NotFound."""
    with pytest.raises(ValidationError):
        await workflow_service.update_sample_status(
            db_session, sample_id=sample.id, principal=researcher, new_status=None
        )
    with pytest.raises(ValidationError):
        await workflow_service.update_sample_status(
            db_session, sample_id=sample.id, principal=researcher, new_status="Lost"
        )
    with pytest.raises(NotFoundError):
        await workflow_service.update_sample_status(
            db_session, sample_id=9999, principal=researcher, new_status="Archived"
        )
    with pytest.raises(NotFoundError):
        await workflow_service.update_sample_status(
            db_session,
            sample_id=sample.id,
            principal=researcher,
            new_status="In Storage",
            new_location_id=9999,
        )


@pytest.mark.asyncio
async def test_status_update_requires_capability(db_session: AsyncSession, nobody, sample):
    """Test: update_sample_status is required."""
    with pytest.raises(ForbiddenError):
        await workflow_service.update_sample_status(
            db_session, sample_id=sample.id, principal=nobody, new_status="Archived"
        )


@pytest.mark.asyncio
async def test_ledger_failure_rolls_back_status(
    db_session: AsyncSession, researcher, sample, registry, monkeypatch
):
    """Test: if the ledger insert fails, the sample keeps its old status and location."""

    async def failing_create(session, entry):
        raise OperationalError("INSERT INTO chain_of_custody", {}, Exception("database is locked"))

    monkeypatch.setattr(custody_repo, "create", failing_create)

    with pytest.raises(InternalError):
        await workflow_service.update_sample_status(
            db_session,
            sample_id=sample.id,
            principal=researcher,
            new_status="In Storage",
            new_location_id=registry["freezer"].id,
        )

    monkeypatch.undo()
    await db_session.refresh(sample)
    assert sample.current_status == "Registered"
    assert sample.storage_location_id is None
    assert await custody_repo.list_for_sample(db_session, sample_id=sample.id) == []


@pytest.mark.asyncio
async def test_list_samples_paginates(db_session: AsyncSession, researcher, manager, registry):
    """Test: samples are listed newest first with a total count."""
    created = []
    for _ in range(3):
        created.append(
            await samples_service.register_sample(
                db_session, principal=researcher, sample_data=_registration(registry)
            )
        )

    page, total = await samples_service.list_samples(
        db_session, principal=manager, limit=2, offset=0
    )
    assert total == 3
    assert [s.id for s in page] == [created[2].id, created[1].id]

    page, _ = await samples_service.list_samples(db_session, principal=manager, limit=2, offset=2)
    assert [s.id for s in page] == [created[0].id]


@pytest.mark.asyncio
async def test_custody_history_permissions(db_session: AsyncSession, researcher, nobody, sample):
    """Test: history needs view_sample_lifecycle or manage_chain_of_custody."""
    assert await samples_service.get_custody_history(
        db_session, principal=researcher, sample_id=sample.id
    ) == []
    with pytest.raises(ForbiddenError):
        await samples_service.get_custody_history(
            db_session, principal=nobody, sample_id=sample.id
        )
    with pytest.raises(NotFoundError):
        await samples_service.get_custody_history(
            db_session, principal=researcher, sample_id=9999
        )
