"""Inventory stock and procurement (purchase orders)."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from tabill.core.config import settings
from tabill.core.exceptions import NotFoundError, ValidationError
from tabill.core.tenancy import TenantContext
from tabill.db.session import unit_of_work
from tabill.models.inventory import (
    InventoryItem,
    ProcurementOrder,
    ProcurementOrderItem,
    ProcurementStatus,
    Supplier,
)

logger = logging.getLogger(__name__)


def is_low_stock(item: InventoryItem) -> bool:
    if settings.low_stock_include_equal:
        return item.quantity <= item.reorder_level
    return item.quantity < item.reorder_level


class InventoryService:
    """Inventory item CRUD and stock adjustments."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def list_items(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        low_stock_only: bool = False,
    ) -> List[InventoryItem]:
        query = self.db.query(InventoryItem).filter(*InventoryItem.scoped(self.ctx))
        if category:
            query = query.filter(InventoryItem.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(InventoryItem.name.ilike(pattern), InventoryItem.category.ilike(pattern))
            )
        items = query.order_by(InventoryItem.name).all()
        if low_stock_only:
            items = [item for item in items if is_low_stock(item)]
        return items

    def get_item(self, item_id: int) -> InventoryItem:
        item = (
            self.db.query(InventoryItem)
            .filter(*InventoryItem.scoped(self.ctx), InventoryItem.id == item_id)
            .first()
        )
        if not item:
            raise NotFoundError("Inventory item not found")
        return item

    def create_item(self, **fields) -> InventoryItem:
        if fields.get("quantity", 0) < 0:
            raise ValidationError("Quantity cannot be negative")
        item = InventoryItem(owner_id=self.ctx.owner_id, branch_id=self.ctx.branch_id, **fields)
        with unit_of_work(self.db):
            self.db.add(item)
        self.db.refresh(item)
        return item

    def update_item(self, item_id: int, **fields) -> InventoryItem:
        item = self.get_item(item_id)
        if fields.get("quantity") is not None and fields["quantity"] < 0:
            raise ValidationError("Quantity cannot be negative")
        with unit_of_work(self.db):
            for field, value in fields.items():
                if value is not None:
                    setattr(item, field, value)
            item.last_updated = datetime.now(timezone.utc)
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int) -> None:
        item = self.get_item(item_id)
        with unit_of_work(self.db):
            self.db.delete(item)

    def check_adjustments(
        self, adjustments: Iterable[Tuple[int, float]]
    ) -> Tuple[Dict[int, float], Dict[int, InventoryItem]]:
        """Merge deltas per item and check them against current stock.

        Raises NotFoundError for an unknown item and ValidationError if any
        item would go negative. Nothing is written.
        """
        deltas: Dict[int, float] = {}
        for item_id, delta in adjustments:
            if delta:
                deltas[item_id] = deltas.get(item_id, 0.0) + delta

        items = {item_id: self.get_item(item_id) for item_id in deltas}
        for item_id, delta in deltas.items():
            if items[item_id].quantity + delta < 0:
                raise ValidationError(
                    f"Not enough stock for '{items[item_id].name}' "
                    f"({items[item_id].quantity} + {delta})"
                )
        return deltas, items

    def adjust(self, adjustments: Iterable[Tuple[int, float]]) -> List[InventoryItem]:
        """Apply a batch of stock deltas. Zero deltas are skipped.

        The whole batch is rejected if any item is unknown or would go negative.
        """
        deltas, items = self.check_adjustments(adjustments)
        if not deltas:
            return []

        now = datetime.now(timezone.utc)
        with unit_of_work(self.db):
            for item_id, delta in deltas.items():
                items[item_id].quantity = items[item_id].quantity + delta
                items[item_id].last_updated = now

        logger.info(f"Applied {len(deltas)} stock adjustments for branch {self.ctx.branch_id}")
        return [items[item_id] for item_id in deltas]


class ProcurementService:
    """Suppliers and purchase orders."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    # ==================== SUPPLIERS ====================

    def list_suppliers(self) -> List[Supplier]:
        return (
            self.db.query(Supplier)
            .filter(*Supplier.scoped(self.ctx))
            .order_by(Supplier.name)
            .all()
        )

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = (
            self.db.query(Supplier)
            .filter(*Supplier.scoped(self.ctx), Supplier.id == supplier_id)
            .first()
        )
        if not supplier:
            raise NotFoundError("Supplier not found")
        return supplier

    def create_supplier(self, **fields) -> Supplier:
        supplier = Supplier(owner_id=self.ctx.owner_id, branch_id=self.ctx.branch_id, **fields)
        with unit_of_work(self.db):
            self.db.add(supplier)
        self.db.refresh(supplier)
        return supplier

    def update_supplier(self, supplier_id: int, **fields) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        with unit_of_work(self.db):
            for field, value in fields.items():
                if value is not None:
                    setattr(supplier, field, value)
        self.db.refresh(supplier)
        return supplier

    def delete_supplier(self, supplier_id: int) -> None:
        supplier = self.get_supplier(supplier_id)
        with unit_of_work(self.db):
            self.db.delete(supplier)

    # ==================== PURCHASE ORDERS ====================

    def list_orders(self, status: Optional[ProcurementStatus] = None) -> List[ProcurementOrder]:
        query = (
            self.db.query(ProcurementOrder)
            .options(selectinload(ProcurementOrder.lines))
            .filter(*ProcurementOrder.scoped(self.ctx))
        )
        if status:
            query = query.filter(ProcurementOrder.status == status)
        return query.order_by(ProcurementOrder.order_date.desc(), ProcurementOrder.id.desc()).all()

    def get_order(self, order_id: int) -> ProcurementOrder:
        order = (
            self.db.query(ProcurementOrder)
            .options(selectinload(ProcurementOrder.lines))
            .filter(*ProcurementOrder.scoped(self.ctx), ProcurementOrder.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError("Purchase order not found")
        return order

    def create_order(
        self,
        supplier_id: int,
        lines: List[Dict[str, Any]],
        notes: Optional[str] = None,
    ) -> ProcurementOrder:
        """Raise a purchase order. Total is the sum of quantity times unit price."""
        if not lines:
            raise ValidationError("Purchase order must have at least one line")

        supplier = self.get_supplier(supplier_id)
        order_lines = []
        for line in lines:
            if line["quantity"] <= 0:
                raise ValidationError("Line quantity must be positive")
            if line["price_per_unit"] < 0:
                raise ValidationError("Line price cannot be negative")

            item_name = line.get("item_name")
            item_id = line.get("item_id")
            unit = line.get("unit")
            if item_id is not None:
                stock_item = InventoryService(self.db, self.ctx).get_item(item_id)
                item_name = item_name or stock_item.name
                unit = unit or stock_item.unit
            if not item_name:
                raise ValidationError("Line needs an inventory item or an item name")

            order_lines.append(
                ProcurementOrderItem(
                    item_id=item_id,
                    item_name=item_name,
                    quantity=line["quantity"],
                    unit=unit or "pcs",
                    price_per_unit=line["price_per_unit"],
                )
            )

        order = ProcurementOrder(
            owner_id=self.ctx.owner_id,
            branch_id=self.ctx.branch_id,
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            total_amount=sum(line.quantity * line.price_per_unit for line in order_lines),
            status=ProcurementStatus.PENDING,
            notes=notes,
            lines=order_lines,
        )
        with unit_of_work(self.db):
            self.db.add(order)
        logger.info(f"Created purchase order {order.id} for supplier {supplier.name}")
        return self.get_order(order.id)

    def receive_order(self, order_id: int) -> ProcurementOrder:
        """Mark a pending order received and add its quantities to stock."""
        order = self.get_order(order_id)
        if order.status != ProcurementStatus.PENDING:
            raise ValidationError(f"Purchase order is {order.status.value}, not Pending")

        now = datetime.now(timezone.utc)
        inventory = InventoryService(self.db, self.ctx)
        with unit_of_work(self.db):
            for line in order.lines:
                if line.item_id is None:
                    continue
                item = inventory.get_item(line.item_id)
                item.quantity = item.quantity + line.quantity
                item.last_updated = now
            order.status = ProcurementStatus.RECEIVED
            order.received_date = now

        logger.info(f"Received purchase order {order_id}")
        return self.get_order(order_id)

    def cancel_order(self, order_id: int) -> ProcurementOrder:
        order = self.get_order(order_id)
        if order.status != ProcurementStatus.PENDING:
            raise ValidationError(f"Purchase order is {order.status.value}, not Pending")
        with unit_of_work(self.db):
            order.status = ProcurementStatus.CANCELLED
        return self.get_order(order_id)
