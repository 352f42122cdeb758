"""
SampleTestRun model

A single requested execution of a test definition against a sample. Its
status moves through a fixed graph (see services.sample_tests_service) and
each gated step stamps who did it and when.
"""

import enum
from datetime import datetime

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class SampleTestStatus(str, enum.Enum):
    """Status of a sample test run."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    VALIDATED = "Validated"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class SampleTestRun(Base):
    """SampleTestRun ORM model (table ``sample_tests``)."""

    __tablename__ = "sample_tests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sample_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("samples.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    test_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tests.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    experiment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("experiments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=SampleTestStatus.PENDING.value
    )
    results: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_to_user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    result_entry_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    validated_by_user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by_user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('Pending', 'In Progress', 'Completed', 'Validated', 'Approved', 'Rejected')",
            name="ck_sample_tests_status",
        ),
        {"comment": "Requested test runs against samples"},
    )


# ============================================================
# Pydantic Schemas
# ============================================================


class SampleTestRunUpdate(BaseModel):
    """
    Schema for patching a SampleTestRun.

    Only fields explicitly sent are applied (``exclude_unset``), so sending
    ``assigned_to_user_id: null`` unassigns while omitting it leaves it alone.
    """

    status: str | None = None
    results: str | None = None
    assigned_to_user_id: int | None = None
    notes: str | None = None


class TestRequestCreate(BaseModel):
    """Schema for requesting tests against a single sample"""

    __test__ = False  # not a pytest class

    test_ids: list[int]
    experiment_id: int | None = None


class BatchTestRequestCreate(BaseModel):
    """Schema for requesting tests against many samples at once"""

    sample_ids: list[int]
    test_ids: list[int]
    experiment_id: int | None = None


class TestRequestResponse(BaseModel):
    """IDs of the runs created by a test request"""

    __test__ = False  # not a pytest class

    created_run_ids: list[int]
    created_count: int


class SampleTestRunResponse(BaseModel):
    """Schema for SampleTestRun responses"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    sample_id: int
    test_id: int
    experiment_id: int | None = None
    status: str
    results: str | None = None
    requested_by_user_id: int
    assigned_to_user_id: int | None = None
    requested_at: datetime
    result_entry_date: datetime | None = None
    validated_at: datetime | None = None
    validated_by_user_id: int | None = None
    approved_at: datetime | None = None
    approved_by_user_id: int | None = None
    notes: str | None = None
