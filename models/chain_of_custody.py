"""
ChainOfCustodyEntry model

Append-only history of a sample's custody: who did what to it, when, and
where it moved from and to. Rows are never updated or deleted.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class ChainOfCustodyEntry(Base):
    """ChainOfCustodyEntry ORM model."""

    __tablename__ = "chain_of_custody"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sample_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("samples.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    previous_location_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("storage_locations.id", ondelete="RESTRICT"),
        nullable=True,
    )
    new_location_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("storage_locations.id", ondelete="RESTRICT"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_chain_of_custody_sample_timestamp", "sample_id", "timestamp", "id"),
        {"comment": "Append-only chain of custody ledger for samples"},
    )


# Pydantic schemas
class CustodyEntryCreate(BaseModel):
    """Schema for a manually logged custody entry."""

    action: str | None = None
    notes: str | None = None
    previous_location_id: int | None = None
    new_location_id: int | None = None


class CustodyEntryResponse(BaseModel):
    """Schema for custody entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    sample_id: int
    user_id: int
    action: str
    timestamp: datetime
    previous_location_id: int | None = None
    new_location_id: int | None = None
    notes: str | None = None
