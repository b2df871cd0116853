"""Kitchen models - stock requests raised by kitchen staff and chef production logs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabill.db.base import Base, TenantMixin, TimestampMixin
from tabill.models.validators import non_negative, positive


class KitchenRequestStatus(str, Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


class KitchenRequest(Base, TenantMixin, TimestampMixin):
    """Kitchen asking the store for stock. Fulfilling it deducts inventory."""

    __tablename__ = "kitchen_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    requesting_staff_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[KitchenRequestStatus] = mapped_column(
        SQLEnum(KitchenRequestStatus), default=KitchenRequestStatus.PENDING, nullable=False
    )
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    fulfilled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    lines: Mapped[List["KitchenRequestItem"]] = relationship(
        "KitchenRequestItem",
        back_populates="kitchen_request",
        cascade="all, delete-orphan",
        order_by="KitchenRequestItem.id",
    )


class KitchenRequestItem(Base):
    __tablename__ = "kitchen_request_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    kitchen_request_id: Mapped[int] = mapped_column(
        ForeignKey("kitchen_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")

    kitchen_request: Mapped["KitchenRequest"] = relationship(
        "KitchenRequest", back_populates="lines"
    )

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)


class ProductionLog(Base, TenantMixin):
    """Portions of a menu item variant a chef prepared.

    Names and cost are copied at logging time, like finalized order lines.
    """

    __tablename__ = "production_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    chef_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    chef_name: Mapped[str] = mapped_column(String(200), nullable=False)
    menu_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    menu_item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    variant_name: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity_produced: Mapped[int] = mapped_column(Integer, nullable=False)
    cost_of_production: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    production_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    @validates("quantity_produced")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("cost_of_production")
    def _validate_cost(self, key, value):
        return non_negative(key, value)
