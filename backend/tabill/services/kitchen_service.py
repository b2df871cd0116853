"""Kitchen stock requests and chef production logs.

A kitchen request lists inventory items and quantities the kitchen needs.
Fulfilling it deducts every line from stock in one transaction: if any line
is short, or its inventory item was deleted, nothing is deducted and the
request stays Pending.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from tabill.core.exceptions import NotFoundError, ValidationError
from tabill.core.tenancy import TenantContext
from tabill.db.session import unit_of_work
from tabill.models.kitchen import (
    KitchenRequest,
    KitchenRequestItem,
    KitchenRequestStatus,
    ProductionLog,
)
from tabill.services.catalog_service import CatalogService
from tabill.services.inventory_service import InventoryService
from tabill.services.order_lines import require_int
from tabill.services.order_service import date_bounds

logger = logging.getLogger(__name__)


class KitchenService:
    """Stock requests from the kitchen to the store."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.inventory = InventoryService(db, ctx)

    def list_requests(
        self, status: Optional[KitchenRequestStatus] = None
    ) -> List[KitchenRequest]:
        query = (
            self.db.query(KitchenRequest)
            .options(selectinload(KitchenRequest.lines))
            .filter(*KitchenRequest.scoped(self.ctx))
        )
        if status:
            query = query.filter(KitchenRequest.status == status)
        return query.order_by(KitchenRequest.request_date.desc(), KitchenRequest.id.desc()).all()

    def get_request(self, request_id: int) -> KitchenRequest:
        kitchen_request = (
            self.db.query(KitchenRequest)
            .options(selectinload(KitchenRequest.lines))
            .filter(*KitchenRequest.scoped(self.ctx), KitchenRequest.id == request_id)
            .first()
        )
        if not kitchen_request:
            raise NotFoundError("Kitchen request not found")
        return kitchen_request

    def create_request(
        self,
        staff_name: str,
        lines: List[Dict[str, Any]],
        notes: Optional[str] = None,
    ) -> KitchenRequest:
        """Raise a Pending request. Item names and units are copied from inventory."""
        if not staff_name or not staff_name.strip():
            raise ValidationError("Requesting staff name is required")
        if not lines:
            raise ValidationError("Kitchen request must have at least one line")

        request_lines = []
        for line in lines:
            if line["quantity"] <= 0:
                raise ValidationError("Line quantity must be positive")
            stock_item = self.inventory.get_item(line["inventory_item_id"])
            request_lines.append(
                KitchenRequestItem(
                    inventory_item_id=stock_item.id,
                    item_name=stock_item.name,
                    quantity=line["quantity"],
                    unit=stock_item.unit,
                )
            )

        kitchen_request = KitchenRequest(
            owner_id=self.ctx.owner_id,
            branch_id=self.ctx.branch_id,
            requesting_staff_name=staff_name.strip(),
            status=KitchenRequestStatus.PENDING,
            notes=notes,
            lines=request_lines,
        )
        with unit_of_work(self.db):
            self.db.add(kitchen_request)
        logger.info(
            f"Kitchen request {kitchen_request.id} raised by {kitchen_request.requesting_staff_name}"
        )
        return self.get_request(kitchen_request.id)

    def fulfil_request(self, request_id: int) -> KitchenRequest:
        """Deduct the requested quantities from stock and mark the request Fulfilled."""
        kitchen_request = self._require_pending(request_id)

        for line in kitchen_request.lines:
            if line.inventory_item_id is None:
                raise ValidationError(
                    f"Inventory item '{line.item_name}' no longer exists"
                )
        deltas, items = self.inventory.check_adjustments(
            (line.inventory_item_id, -line.quantity) for line in kitchen_request.lines
        )

        now = datetime.now(timezone.utc)
        with unit_of_work(self.db):
            for item_id, delta in deltas.items():
                items[item_id].quantity = items[item_id].quantity + delta
                items[item_id].last_updated = now
            kitchen_request.status = KitchenRequestStatus.FULFILLED
            kitchen_request.fulfilled_date = now

        logger.info(f"Fulfilled kitchen request {request_id}")
        return self.get_request(request_id)

    def cancel_request(self, request_id: int) -> KitchenRequest:
        kitchen_request = self._require_pending(request_id)
        with unit_of_work(self.db):
            kitchen_request.status = KitchenRequestStatus.CANCELLED
        return self.get_request(request_id)

    def _require_pending(self, request_id: int) -> KitchenRequest:
        kitchen_request = self.get_request(request_id)
        if kitchen_request.status != KitchenRequestStatus.PENDING:
            raise ValidationError(
                f"Kitchen request is {kitchen_request.status.value}, not Pending"
            )
        return kitchen_request


class ProductionService:
    """What chefs prepared, and what it cost."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.catalog = CatalogService(db, ctx)

    def log_production(
        self,
        chef_name: str,
        menu_item_id: int,
        variant_id: int,
        quantity: int,
        chef_id: Optional[int] = None,
    ) -> ProductionLog:
        """Record a batch. Cost is the variant's current cost price times quantity."""
        quantity = require_int("quantity", quantity)
        if quantity <= 0:
            raise ValidationError("Quantity produced must be positive")
        if not chef_name or not chef_name.strip():
            raise ValidationError("Chef name is required")

        entry = self.catalog.require(menu_item_id, variant_id)
        log = ProductionLog(
            owner_id=self.ctx.owner_id,
            branch_id=self.ctx.branch_id,
            chef_id=chef_id,
            chef_name=chef_name.strip(),
            menu_item_id=menu_item_id,
            variant_id=variant_id,
            menu_item_name=entry.display_name,
            variant_name=entry.variant_name,
            quantity_produced=quantity,
            cost_of_production=entry.cost_price * quantity,
            production_date=datetime.now(timezone.utc),
        )
        with unit_of_work(self.db):
            self.db.add(log)
        self.db.refresh(log)
        logger.info(
            f"{log.chef_name} produced {quantity} x {log.menu_item_name} ({log.variant_name})"
        )
        return log

    def list_logs(
        self,
        chef_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[ProductionLog]:
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        query = self.db.query(ProductionLog).filter(*ProductionLog.scoped(self.ctx))
        if chef_id is not None:
            query = query.filter(ProductionLog.chef_id == chef_id)
        start, end = date_bounds(date_from, date_to)
        if start:
            query = query.filter(ProductionLog.production_date >= start)
        if end:
            query = query.filter(ProductionLog.production_date < end)
        return query.order_by(ProductionLog.production_date.desc(), ProductionLog.id.desc()).all()
