"""
Sample model

Represents a physical sample registered in the lab. A sample's status and
storage location only change through the status-update workflow so that every
change is paired with a chain-of-custody entry.
"""

import enum
from datetime import date, datetime

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class SampleStatus(str, enum.Enum):
    """Lifecycle status of a physical sample."""

    REGISTERED = "Registered"
    IN_STORAGE = "In Storage"
    IN_ANALYSIS = "In Analysis"
    DISCARDED = "Discarded"
    ARCHIVED = "Archived"


SAMPLE_STATUS_VALUES = [s.value for s in SampleStatus]


class Sample(Base):
    """
    Sample ORM model.

    A sample in status 'In Storage' always has a storage location.
    """

    __tablename__ = "samples"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unique_sample_id: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True
    )
    sample_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sample_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    source_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sources.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    collection_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    storage_location_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("storage_locations.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    current_status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=SampleStatus.REGISTERED.value
    )
    barcode_qr_code: Mapped[str | None] = mapped_column(String(150), nullable=True, unique=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        sa.CheckConstraint(
            "current_status IN ('Registered', 'In Storage', 'In Analysis', 'Discarded', 'Archived')",
            name="ck_samples_current_status",
        ),
        sa.CheckConstraint(
            "current_status != 'In Storage' OR storage_location_id IS NOT NULL",
            name="ck_samples_in_storage_has_location",
        ),
        {"comment": "Physical samples tracked by the lab"},
    )


# ============================================================
# Pydantic Schemas
# ============================================================


class SampleRegister(BaseModel):
    """Schema for registering a new Sample"""

    sample_type_id: int
    source_id: int
    collection_date: str
    current_status: str = SampleStatus.REGISTERED.value
    storage_location_id: int | None = None
    notes: str | None = None


class SampleStatusUpdate(BaseModel):
    """Schema for moving a Sample to a new status and/or location"""

    current_status: str | None = None
    storage_location_id: int | None = None
    notes: str | None = None


class SampleResponse(BaseModel):
    """Schema for Sample responses"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    unique_sample_id: str
    sample_type_id: int
    source_id: int
    collection_date: date | None = None
    registration_date: datetime
    storage_location_id: int | None = None
    current_status: str
    barcode_qr_code: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class SampleListResponse(BaseModel):
    """Paginated Sample listing"""

    data: list[SampleResponse]
    limit: int
    offset: int
    total_count: int


class SampleBarcodeResponse(BaseModel):
    """Barcode/QR payload for a Sample"""

    sample_id: int
    unique_sample_id: str
    barcode_qr_code: str | None = None
