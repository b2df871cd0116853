"""Dining table model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tabill.db.base import Base, TenantMixin, TimestampMixin


class TableStatus:
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"


class DiningTable(Base, TenantMixin, TimestampMixin):
    """Restaurant table for seating.

    ``status`` holds the manually set state. The status shown to staff is
    ``Occupied`` whenever a pending order exists for the table.
    """

    __tablename__ = "dining_tables"
    __table_args__ = (
        UniqueConstraint("owner_id", "branch_id", "name", name="uq_dining_tables_tenant_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # Main Floor, Patio
    status: Mapped[str] = mapped_column(String(20), default=TableStatus.AVAILABLE, nullable=False)
