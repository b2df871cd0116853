"""Sales reports built from finalized orders.

Per-line sales use the frozen ``total_price``. Cost comes from the current
variant cost price, so profit figures move when a cost price is edited.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from tabill.core.tenancy import OwnerContext, TenantContext
from tabill.models.branch import Branch
from tabill.models.menu import MenuItem, MenuItemVariant
from tabill.models.order import Order, OrderType, PaymentMethod
from tabill.models.restaurant import DiningTable
from tabill.services.catalog_service import UNCATEGORIZED
from tabill.services.order_service import date_bounds

logger = logging.getLogger(__name__)

TOP_N = 5
UNKNOWN_STAFF = "Unknown"


def _ranked(rows: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda row: row[key], reverse=True)[:TOP_N]


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def _orders(self, owner_id: int, branch_ids, date_from, date_to):
        query = self.db.query(Order).filter(
            Order.owner_id == owner_id, Order.branch_id.in_(branch_ids)
        )
        start, end = date_bounds(date_from, date_to)
        if start:
            query = query.filter(Order.order_date >= start)
        if end:
            query = query.filter(Order.order_date < end)
        return query

    def sales_summary(
        self,
        ctx: TenantContext,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Totals, per-item and per-category figures and hourly sales for a branch."""
        orders = (
            self._orders(ctx.owner_id, [ctx.branch_id], date_from, date_to)
            .options(selectinload(Order.items))
            .order_by(Order.order_date)
            .all()
        )

        variant_ids = {item.variant_id for order in orders for item in order.items}
        item_ids = {item.menu_item_id for order in orders for item in order.items}
        cost_by_variant = {
            v.id: float(v.cost_price or 0)
            for v in self.db.query(MenuItemVariant).filter(MenuItemVariant.id.in_(variant_ids)).all()
        } if variant_ids else {}
        category_by_item = {
            m.id: m.category
            for m in self.db.query(MenuItem)
            .filter(*MenuItem.scoped(ctx), MenuItem.id.in_(item_ids))
            .all()
        } if item_ids else {}

        summary = {
            "total_orders": len(orders),
            "total_revenue": 0.0,
            "total_subtotal": 0.0,
            "total_gst": 0.0,
            "cash_revenue": 0.0,
            "online_revenue": 0.0,
            "dine_in_orders": 0,
            "dine_in_revenue": 0.0,
            "takeaway_orders": 0,
            "takeaway_revenue": 0.0,
        }
        items: Dict[tuple, Dict[str, Any]] = {}
        categories: Dict[str, Dict[str, Any]] = {}
        hourly = defaultdict(lambda: {"orders": 0, "sales": 0.0})
        needs_reconciliation = []

        for order in orders:
            summary["total_revenue"] += order.total
            summary["total_subtotal"] += order.subtotal
            summary["total_gst"] += order.sgst_amount + order.cgst_amount
            if order.payment_method == PaymentMethod.CASH:
                summary["cash_revenue"] += order.total
            else:
                summary["online_revenue"] += order.total
            if order.order_type == OrderType.TAKEAWAY:
                summary["takeaway_orders"] += 1
                summary["takeaway_revenue"] += order.total
            else:
                summary["dine_in_orders"] += 1
                summary["dine_in_revenue"] += order.total

            hour = order.order_date.hour
            hourly[hour]["orders"] += 1
            hourly[hour]["sales"] += order.subtotal

            if not order.items:
                needs_reconciliation.append(order.id)
                logger.warning(f"Order {order.order_number} has no lines")
                continue

            for line in order.items:
                cost = cost_by_variant.get(line.variant_id, 0.0) * line.quantity
                key = (line.menu_item_id, line.variant_id)
                row = items.setdefault(
                    key,
                    {
                        "menu_item_id": line.menu_item_id,
                        "variant_id": line.variant_id,
                        "item_name": line.item_name,
                        "variant_name": line.variant_name,
                        "quantity": 0,
                        "sales": 0.0,
                        "cost": 0.0,
                        "profit": 0.0,
                    },
                )
                row["quantity"] += line.quantity
                row["sales"] += line.total_price
                row["cost"] += cost
                row["profit"] = row["sales"] - row["cost"]

                category = category_by_item.get(line.menu_item_id, UNCATEGORIZED)
                cat_row = categories.setdefault(
                    category,
                    {"category": category, "quantity": 0, "sales": 0.0, "cost": 0.0, "profit": 0.0},
                )
                cat_row["quantity"] += line.quantity
                cat_row["sales"] += line.total_price
                cat_row["cost"] += cost
                cat_row["profit"] = cat_row["sales"] - cat_row["cost"]

        count = summary["total_orders"]
        summary["average_order_value"] = summary["total_revenue"] / count if count else 0.0

        item_rows = list(items.values())
        return {
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "summary": summary,
            "items": sorted(item_rows, key=lambda row: row["sales"], reverse=True),
            "categories": sorted(categories.values(), key=lambda row: row["sales"], reverse=True),
            "top_by_quantity": _ranked(item_rows, "quantity"),
            "top_by_profit": _ranked(item_rows, "profit"),
            "hourly": [
                {"hour": hour, "orders": hourly[hour]["orders"], "sales": hourly[hour]["sales"]}
                for hour in sorted(hourly)
            ],
            "needs_reconciliation": needs_reconciliation,
        }

    def branch_comparison(
        self,
        owner: OwnerContext,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Orders, revenue and table count per branch of an owner."""
        branches = (
            self.db.query(Branch)
            .filter(Branch.owner_id == owner.owner_id)
            .order_by(Branch.id)
            .all()
        )
        if not branches:
            return []
        branch_ids = [b.id for b in branches]

        order_stats = {
            branch_id: (count, revenue or 0.0)
            for branch_id, count, revenue in self._orders(owner.owner_id, branch_ids, date_from, date_to)
            .with_entities(Order.branch_id, func.count(Order.id), func.sum(Order.total))
            .group_by(Order.branch_id)
            .all()
        }
        table_counts = dict(
            self.db.query(DiningTable.branch_id, func.count(DiningTable.id))
            .filter(DiningTable.owner_id == owner.owner_id, DiningTable.branch_id.in_(branch_ids))
            .group_by(DiningTable.branch_id)
            .all()
        )

        results = []
        for branch in branches:
            count, revenue = order_stats.get(branch.id, (0, 0.0))
            results.append({
                "branch_id": branch.id,
                "branch_name": branch.name,
                "orders": count,
                "revenue": float(revenue),
                "average_order_value": float(revenue) / count if count else 0.0,
                "tables": table_counts.get(branch.id, 0),
            })
        return results

    def staff_performance(
        self,
        ctx: TenantContext,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Orders and sales per staff member, best seller first.

        Orders without a staff name are grouped under "Unknown".
        """
        rows = (
            self._orders(ctx.owner_id, [ctx.branch_id], date_from, date_to)
            .with_entities(Order.staff_name, func.count(Order.id), func.sum(Order.total))
            .group_by(Order.staff_name)
            .all()
        )
        staff: Dict[str, Dict[str, Any]] = {}
        for name, count, sales in rows:
            label = (name or "").strip() or UNKNOWN_STAFF
            row = staff.setdefault(label, {"staff_name": label, "orders": 0, "sales": 0.0})
            row["orders"] += count
            row["sales"] += float(sales or 0.0)
        for row in staff.values():
            row["average_order_value"] = row["sales"] / row["orders"] if row["orders"] else 0.0
        return sorted(staff.values(), key=lambda row: (-row["sales"], row["staff_name"]))
