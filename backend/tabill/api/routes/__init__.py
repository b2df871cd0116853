"""API routes."""

from fastapi import APIRouter

from tabill.api.routes import (
    branches,
    expenses,
    inventory,
    kitchen,
    menu,
    orders,
    pending_orders,
    procurement,
    reports,
    tables,
)

api_router = APIRouter()

api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(pending_orders.router, prefix="/pending-orders", tags=["pending-orders"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(procurement.router, prefix="/procurement", tags=["procurement"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])
