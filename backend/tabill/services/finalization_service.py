"""Finalization - turns a draft or a takeaway basket into an immutable order.

Checkout of a table runs as one transaction:

1. insert the order with totals recomputed from the current lines
2. insert its lines, freezing names and prices
3. delete the draft lines
4. delete the draft

Any failure rolls the whole transaction back, leaving the draft as it was.
A draft changed by another session after it was read fails the delete and
surfaces as VersionConflictError.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from tabill.core.exceptions import OrderValidationError, UnresolvedLineError
from tabill.core.tenancy import TenantContext
from tabill.db.session import unit_of_work
from tabill.models.order import Order, OrderItem, OrderType, PaymentMethod, PendingOrder
from tabill.services.catalog_service import CatalogEntry, CatalogService
from tabill.services.draft_order_service import DraftOrderService
from tabill.services.order_lines import LineAccumulator, LineKey
from tabill.services.tax_service import Totals, compute_totals, resolve_rates

logger = logging.getLogger(__name__)

EMPTY_ORDER_MESSAGE = "Cannot finalize empty or context-less order"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class FinalizationService:
    """Creates finalized orders."""

    def __init__(self, db: Session, ctx: Optional[TenantContext]):
        self.db = db
        self.ctx = ctx

    def _require_context(self) -> TenantContext:
        if self.ctx is None or not self.ctx.owner_id or not self.ctx.branch_id:
            raise OrderValidationError(EMPTY_ORDER_MESSAGE)
        return self.ctx

    @staticmethod
    def _validate_payment_method(payment_method: str) -> str:
        if payment_method not in PaymentMethod.ALL:
            raise OrderValidationError(
                f"Unsupported payment method '{payment_method}'. "
                f"Use one of: {', '.join(PaymentMethod.ALL)}"
            )
        return payment_method

    def _next_order_number(self, prefix: str) -> str:
        # Millisecond stamps can collide for back-to-back takeaway orders
        millis = _epoch_millis()
        while True:
            number = f"{prefix}-{millis}"
            exists = self.db.query(Order.id).filter(Order.order_number == number).first()
            if not exists:
                return number
            millis += 1

    def _price(
        self, ctx: TenantContext, accumulator: LineAccumulator
    ) -> List[Tuple[LineKey, int, CatalogEntry]]:
        """Resolve every line or raise UnresolvedLineError for the first stale one."""
        entries = CatalogService(self.db, ctx).resolve(accumulator.keys())
        priced = []
        for key, quantity in accumulator.lines():
            entry = entries[key]
            if not entry.resolved:
                raise UnresolvedLineError(key[0], key[1], quantity)
            priced.append((key, quantity, entry))
        return priced

    def _freeze_lines(
        self, order: Order, priced: Iterable[Tuple[LineKey, int, CatalogEntry]]
    ) -> None:
        order.items.extend(
            OrderItem(
                menu_item_id=key[0],
                variant_id=key[1],
                item_name=entry.display_name,
                variant_name=entry.variant_name,
                quantity=quantity,
                unit_price=entry.unit_price,
                total_price=entry.unit_price * quantity,
            )
            for key, quantity, entry in priced
        )
        self.db.flush()

    def _insert_order(
        self,
        ctx: TenantContext,
        order_number: str,
        table_id: Optional[int],
        order_type: str,
        totals: Totals,
        sgst_rate: float,
        cgst_rate: float,
        payment_method: str,
        staff_name: Optional[str],
    ) -> Order:
        order = Order(
            owner_id=ctx.owner_id,
            branch_id=ctx.branch_id,
            order_number=order_number,
            table_id=table_id,
            order_type=order_type,
            subtotal=totals.subtotal,
            sgst_rate=sgst_rate,
            cgst_rate=cgst_rate,
            sgst_amount=totals.sgst_amount,
            cgst_amount=totals.cgst_amount,
            total=totals.total,
            payment_status="Paid",
            payment_method=payment_method,
            status="completed",
            staff_name=staff_name,
            order_date=datetime.now(timezone.utc),
        )
        self.db.add(order)
        self.db.flush()
        return order

    def finalize_table(
        self,
        table_id: int,
        payment_method: str = PaymentMethod.CASH,
        staff_name: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Check out the draft of a dine-in table."""
        ctx = self._require_context()
        payment_method = self._validate_payment_method(payment_method)

        drafts = DraftOrderService(self.db, ctx)
        drafts.get_table(table_id)
        draft: Optional[PendingOrder] = drafts.get_draft(table_id)
        if draft is None or not draft.items:
            raise OrderValidationError(EMPTY_ORDER_MESSAGE)
        draft.check_version(expected_version)
        loaded_version = draft.version

        accumulator = LineAccumulator.from_items(draft.items)
        priced = self._price(ctx, accumulator)
        totals = compute_totals(
            ((entry.unit_price, quantity) for _, quantity, entry in priced),
            draft.sgst_rate,
            draft.cgst_rate,
        )

        with drafts.guard_version(table_id, loaded_version), unit_of_work(self.db):
            order = self._insert_order(
                ctx,
                self._next_order_number(f"ORD-{table_id}"),
                table_id,
                OrderType.DINE_IN,
                totals,
                draft.sgst_rate,
                draft.cgst_rate,
                payment_method,
                staff_name,
            )
            self._freeze_lines(order, priced)
            drafts.delete_draft(draft)

        logger.info(
            f"Finalized order {order.order_number} for table {table_id}: "
            f"{len(priced)} lines, total={totals.total}"
        )
        return order

    def finalize_takeaway(
        self,
        lines: Iterable[Tuple[int, int, int]],
        sgst_rate: Optional[float] = None,
        cgst_rate: Optional[float] = None,
        payment_method: str = PaymentMethod.CASH,
        staff_name: Optional[str] = None,
    ) -> Order:
        """Finalize a takeaway basket of (menu_item_id, variant_id, quantity) lines.

        There is no table and no draft. Repeated pairs are merged.
        """
        ctx = self._require_context()
        payment_method = self._validate_payment_method(payment_method)
        sgst_rate, cgst_rate = resolve_rates(sgst_rate, cgst_rate)

        accumulator = LineAccumulator()
        for menu_item_id, variant_id, quantity in lines:
            accumulator.add_line(menu_item_id, variant_id, quantity)
        if accumulator.is_empty():
            raise OrderValidationError(EMPTY_ORDER_MESSAGE)

        priced = self._price(ctx, accumulator)
        totals = compute_totals(
            ((entry.unit_price, quantity) for _, quantity, entry in priced),
            sgst_rate,
            cgst_rate,
        )

        with unit_of_work(self.db):
            order = self._insert_order(
                ctx,
                self._next_order_number("TKO"),
                None,
                OrderType.TAKEAWAY,
                totals,
                sgst_rate,
                cgst_rate,
                payment_method,
                staff_name,
            )
            self._freeze_lines(order, priced)

        logger.info(f"Finalized takeaway order {order.order_number}: total={totals.total}")
        return order
