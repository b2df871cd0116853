"""SQLAlchemy models."""

from tabill.models.branch import Branch
from tabill.models.restaurant import DiningTable, TableStatus
from tabill.models.menu import Category, MenuItem, MenuItemVariant
from tabill.models.order import (
    Order,
    OrderItem,
    OrderType,
    PaymentMethod,
    PendingOrder,
    PendingOrderItem,
)
from tabill.models.inventory import (
    InventoryItem,
    ProcurementOrder,
    ProcurementOrderItem,
    ProcurementStatus,
    Supplier,
)
from tabill.models.expense import Expense, ExpenseCategory
from tabill.models.kitchen import (
    KitchenRequest,
    KitchenRequestItem,
    KitchenRequestStatus,
    ProductionLog,
)

__all__ = [
    "Branch",
    "DiningTable",
    "TableStatus",
    "Category",
    "MenuItem",
    "MenuItemVariant",
    "Order",
    "OrderItem",
    "OrderType",
    "PaymentMethod",
    "PendingOrder",
    "PendingOrderItem",
    "InventoryItem",
    "ProcurementOrder",
    "ProcurementOrderItem",
    "ProcurementStatus",
    "Supplier",
    "Expense",
    "ExpenseCategory",
    "KitchenRequest",
    "KitchenRequestItem",
    "KitchenRequestStatus",
    "ProductionLog",
]
