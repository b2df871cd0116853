"""Order models - pending (draft) orders and finalized orders."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabill.db.base import Base, TenantMixin, TimestampMixin, VersionMixin
from tabill.models.validators import non_negative, percentage, positive


class OrderType:
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"


class PaymentMethod:
    CASH = "Cash"
    CARD_UPI = "Card / UPI"

    ALL = (CASH, CARD_UPI)


class PendingOrder(Base, TenantMixin, TimestampMixin, VersionMixin):
    """Mutable draft attached to a table until checkout.

    At most one per table. The amount columns mirror the lines and are
    recomputed on every line or rate change.
    """

    __tablename__ = "pending_orders"
    __table_args__ = (
        UniqueConstraint("owner_id", "branch_id", "table_id", name="uq_pending_orders_tenant_table"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    table_id: Mapped[int] = mapped_column(
        ForeignKey("dining_tables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_type: Mapped[str] = mapped_column(String(20), default=OrderType.DINE_IN, nullable=False)

    subtotal: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    sgst_rate: Mapped[float] = mapped_column(Float, default=9.0, nullable=False)
    cgst_rate: Mapped[float] = mapped_column(Float, default=9.0, nullable=False)
    sgst_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    cgst_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    items: Mapped[List["PendingOrderItem"]] = relationship(
        "PendingOrderItem",
        back_populates="pending_order",
        cascade="all, delete-orphan",
        order_by="PendingOrderItem.id",
    )

    @validates("sgst_rate", "cgst_rate")
    def _validate_rate(self, key, value):
        return percentage(key, value)

    @validates("subtotal", "sgst_amount", "cgst_amount", "total")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class PendingOrderItem(Base):
    """One (menu item, variant, quantity) line of a pending order.

    Item and variant ids are plain integers so a deleted menu row never
    cascades into a live draft; lookups tolerate the missing reference.
    """

    __tablename__ = "pending_order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    pending_order_id: Mapped[int] = mapped_column(
        ForeignKey("pending_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    pending_order: Mapped["PendingOrder"] = relationship("PendingOrder", back_populates="items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)


class Order(Base, TenantMixin):
    """Finalized order. Written once at checkout and never updated."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    table_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("dining_tables.id", ondelete="SET NULL"), nullable=True, index=True
    )
    order_type: Mapped[str] = mapped_column(String(20), default=OrderType.DINE_IN, nullable=False)

    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    sgst_rate: Mapped[float] = mapped_column(Float, nullable=False)
    cgst_rate: Mapped[float] = mapped_column(Float, nullable=False)
    sgst_amount: Mapped[float] = mapped_column(Float, nullable=False)
    cgst_amount: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)

    payment_status: Mapped[str] = mapped_column(String(20), default="Paid", nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="completed", nullable=False)
    staff_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @validates("subtotal", "sgst_amount", "cgst_amount", "total")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class OrderItem(Base):
    """Line of a finalized order with the price frozen at the time of sale."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    variant_name: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)
