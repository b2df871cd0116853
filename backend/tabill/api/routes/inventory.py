"""Inventory routes - stock items and batch adjustments."""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.models.inventory import InventoryItem
from tabill.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    StockAdjustRequest,
)
from tabill.services.inventory_service import InventoryService, is_low_stock

router = APIRouter()


def _to_response(item: InventoryItem) -> InventoryItemResponse:
    response = InventoryItemResponse.model_validate(item)
    response.low_stock = is_low_stock(item)
    return response


@router.get("/items")
def list_inventory_items(
    db: DbSession,
    ctx: CurrentTenant,
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None),
    low_stock: bool = Query(False),
):
    items = InventoryService(db, ctx).list_items(
        search=search, category=category, low_stock_only=low_stock
    )
    return list_response([_to_response(i).model_dump() for i in items])


@router.post("/items", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_inventory_item(
    request: Request, db: DbSession, ctx: CurrentTenant, body: InventoryItemCreate
):
    try:
        item = InventoryService(db, ctx).create_item(**body.model_dump())
    except TabillError as e:
        raise to_http_exception(e)
    return _to_response(item)


@router.post("/items/adjust")
@limiter.limit(settings.rate_limit_default)
def adjust_stock(request: Request, db: DbSession, ctx: CurrentTenant, body: StockAdjustRequest):
    """Apply stock deltas in one transaction. Zero deltas are ignored."""
    try:
        items = InventoryService(db, ctx).adjust(
            (adj.item_id, adj.delta) for adj in body.adjustments
        )
    except TabillError as e:
        raise to_http_exception(e)
    return list_response([_to_response(i).model_dump() for i in items])


@router.put("/items/{item_id}", response_model=InventoryItemResponse)
@limiter.limit(settings.rate_limit_default)
def update_inventory_item(
    request: Request, item_id: int, db: DbSession, ctx: CurrentTenant, body: InventoryItemUpdate
):
    try:
        item = InventoryService(db, ctx).update_item(item_id, **body.model_dump(exclude_unset=True))
    except TabillError as e:
        raise to_http_exception(e)
    return _to_response(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_inventory_item(request: Request, item_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        InventoryService(db, ctx).delete_item(item_id)
    except TabillError as e:
        raise to_http_exception(e)
