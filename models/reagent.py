"""Reagent model - consumable stock tracked by lot."""

from datetime import date, datetime

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class Reagent(Base):
    """Reagent ORM model. ``current_stock`` never goes negative."""

    __tablename__ = "reagents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lot_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sds_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
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
        sa.CheckConstraint("current_stock >= 0", name="ck_reagents_current_stock_non_negative"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_reagents_min_stock_non_negative"),
        {"comment": "Reagent stock by lot"},
    )


# Pydantic schemas
class ReagentCreate(BaseModel):
    """Schema for registering a reagent lot."""

    name: str
    lot_number: str
    expiry_date: str
    manufacturer: str | None = None
    sds_link: str | None = None
    current_stock: int = 0
    min_stock_level: int = 0


class ReagentUpdate(BaseModel):
    """
    Schema for patching a reagent.

    Only fields explicitly sent are applied (``exclude_unset``).
    """

    name: str | None = None
    lot_number: str | None = None
    expiry_date: str | None = None
    manufacturer: str | None = None
    sds_link: str | None = None
    current_stock: int | None = None
    min_stock_level: int | None = None


class StockAdjustment(BaseModel):
    """Signed change applied to a reagent's current stock."""

    change: int


class ReagentResponse(BaseModel):
    """Schema for reagent response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    lot_number: str
    expiry_date: date | None = None
    manufacturer: str | None = None
    sds_link: str | None = None
    current_stock: int
    min_stock_level: int
    created_at: datetime
    updated_at: datetime
