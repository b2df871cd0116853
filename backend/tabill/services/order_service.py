"""Finalized order queries and bill rendering."""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from tabill.core.config import settings
from tabill.core.exceptions import NotFoundError
from tabill.core.tenancy import TenantContext
from tabill.models.order import Order
from tabill.models.restaurant import DiningTable
from tabill.services.tax_service import round_money


def date_bounds(
    date_from: Optional[date], date_to: Optional[date]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Turn an inclusive date range into [start, end) datetimes."""
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return start, end


class OrderService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def list_orders(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        order_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order).filter(*Order.scoped(self.ctx))

        start, end = date_bounds(date_from, date_to)
        if start:
            query = query.filter(Order.order_date >= start)
        if end:
            query = query.filter(Order.order_date < end)
        if order_type:
            query = query.filter(Order.order_type == order_type)

        total = query.count()
        orders = (
            query.options(selectinload(Order.items))
            .order_by(Order.order_date.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return orders, total

    def get_order(self, order_id: int) -> Order:
        order = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(*Order.scoped(self.ctx), Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    def render_bill(self, order: Order) -> Dict[str, Any]:
        """Printable bill. Amounts are rounded to two decimals here and only here."""
        table_name = None
        if order.table_id is not None:
            table = self.db.query(DiningTable).filter(DiningTable.id == order.table_id).first()
            table_name = table.name if table else None

        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "order_type": order.order_type,
            "table_name": table_name,
            "order_date": order.order_date.isoformat() if order.order_date else None,
            "currency": settings.currency_symbol,
            "lines": [
                {
                    "item_name": item.item_name,
                    "variant_name": item.variant_name,
                    "quantity": item.quantity,
                    "unit_price": round_money(item.unit_price),
                    "total_price": round_money(item.total_price),
                }
                for item in order.items
            ],
            "subtotal": round_money(order.subtotal),
            "sgst_rate": order.sgst_rate,
            "cgst_rate": order.cgst_rate,
            "sgst_amount": round_money(order.sgst_amount),
            "cgst_amount": round_money(order.cgst_amount),
            "total": round_money(order.total),
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "staff_name": order.staff_name,
        }
