"""StorageLocation model - freezers, shelves and racks samples are kept in."""

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class StorageLocation(Base):
    """StorageLocation ORM model."""

    __tablename__ = "storage_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_load: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
