"""Inventory and procurement models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabill.db.base import Base, TenantMixin, TimestampMixin
from tabill.models.validators import non_negative, positive


class InventoryItem(Base, TenantMixin, TimestampMixin):
    """Raw stock item (flour, oil, soda bottles)."""

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    reorder_level: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @validates("reorder_level")
    def _validate_reorder_level(self, key, value):
        return non_negative(key, value)


class Supplier(Base, TenantMixin, TimestampMixin):
    """A vendor that purchase orders are raised against."""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_person: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    procurement_orders: Mapped[List["ProcurementOrder"]] = relationship(
        "ProcurementOrder", back_populates="supplier"
    )


class ProcurementStatus(str, Enum):
    """Status of a purchase order."""

    PENDING = "Pending"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


class ProcurementOrder(Base, TenantMixin):
    """A purchase order to a supplier."""

    __tablename__ = "procurement_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    supplier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[ProcurementStatus] = mapped_column(
        SQLEnum(ProcurementStatus), default=ProcurementStatus.PENDING, nullable=False
    )
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    received_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", back_populates="procurement_orders")
    lines: Mapped[List["ProcurementOrderItem"]] = relationship(
        "ProcurementOrderItem", back_populates="procurement_order", cascade="all, delete-orphan"
    )


class ProcurementOrderItem(Base):
    """A single stock line in a purchase order."""

    __tablename__ = "procurement_order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    procurement_order_id: Mapped[int] = mapped_column(
        ForeignKey("procurement_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    price_per_unit: Mapped[float] = mapped_column(Float, nullable=False)

    procurement_order: Mapped["ProcurementOrder"] = relationship(
        "ProcurementOrder", back_populates="lines"
    )

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("price_per_unit")
    def _validate_price(self, key, value):
        return non_negative(key, value)
