"""
ReagentOrder model

A purchase order for a reagent. The first time an order becomes 'Delivered'
the ordered quantity is added to the reagent's stock in the same transaction.
"""

import enum
from datetime import date, datetime

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class ReagentOrderStatus(str, enum.Enum):
    """Procurement status of a reagent order."""

    PENDING = "Pending"
    ORDERED = "Ordered"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class ReagentOrder(Base):
    """ReagentOrder ORM model."""

    __tablename__ = "reagent_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reagent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reagents.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    supplier_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("suppliers.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ReagentOrderStatus.PENDING.value
    )
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
        sa.CheckConstraint("quantity_ordered > 0", name="ck_reagent_orders_quantity_positive"),
        sa.CheckConstraint(
            "status IN ('Pending', 'Ordered', 'Shipped', 'Delivered', 'Cancelled')",
            name="ck_reagent_orders_status",
        ),
        {"comment": "Reagent purchase orders"},
    )


# ============================================================
# Pydantic Schemas
# ============================================================


class ReagentOrderCreate(BaseModel):
    """Schema for creating a reagent order"""

    reagent_id: int
    supplier_id: int | None = None
    order_date: str
    expected_delivery_date: str | None = None
    quantity_ordered: int
    status: str | None = None


class ReagentOrderUpdate(BaseModel):
    """
    Schema for patching a reagent order.

    Only fields explicitly sent are applied (``exclude_unset``).
    """

    supplier_id: int | None = None
    order_date: str | None = None
    expected_delivery_date: str | None = None
    quantity_ordered: int | None = None
    status: str | None = None


class ReagentOrderResponse(BaseModel):
    """Schema for reagent order responses"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    reagent_id: int
    supplier_id: int | None = None
    order_date: date
    expected_delivery_date: date | None = None
    quantity_ordered: int
    status: str
    created_at: datetime
    updated_at: datetime
