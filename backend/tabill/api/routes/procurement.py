"""Procurement routes - suppliers and purchase orders."""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.models.inventory import ProcurementStatus
from tabill.schemas.inventory import (
    ProcurementOrderCreate,
    ProcurementOrderResponse,
    SupplierCreate,
    SupplierResponse,
    SupplierUpdate,
)
from tabill.services.inventory_service import ProcurementService

router = APIRouter()


# ============== SUPPLIERS ==============

@router.get("/suppliers")
def list_suppliers(db: DbSession, ctx: CurrentTenant):
    suppliers = ProcurementService(db, ctx).list_suppliers()
    return list_response([SupplierResponse.model_validate(s).model_dump() for s in suppliers])


@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_supplier(request: Request, db: DbSession, ctx: CurrentTenant, body: SupplierCreate):
    return ProcurementService(db, ctx).create_supplier(**body.model_dump())


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse)
@limiter.limit(settings.rate_limit_default)
def update_supplier(
    request: Request, supplier_id: int, db: DbSession, ctx: CurrentTenant, body: SupplierUpdate
):
    try:
        return ProcurementService(db, ctx).update_supplier(
            supplier_id, **body.model_dump(exclude_unset=True)
        )
    except TabillError as e:
        raise to_http_exception(e)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_supplier(request: Request, supplier_id: int, db: DbSession, ctx: CurrentTenant):
    """Delete a supplier. Existing purchase orders keep the supplier name."""
    try:
        ProcurementService(db, ctx).delete_supplier(supplier_id)
    except TabillError as e:
        raise to_http_exception(e)


# ============== PURCHASE ORDERS ==============

@router.get("/orders")
def list_purchase_orders(
    db: DbSession,
    ctx: CurrentTenant,
    order_status: Optional[ProcurementStatus] = Query(None, alias="status"),
):
    orders = ProcurementService(db, ctx).list_orders(status=order_status)
    return list_response([ProcurementOrderResponse.model_validate(o).model_dump() for o in orders])


@router.post("/orders", response_model=ProcurementOrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_purchase_order(
    request: Request, db: DbSession, ctx: CurrentTenant, body: ProcurementOrderCreate
):
    """Raise a purchase order in Pending status."""
    try:
        return ProcurementService(db, ctx).create_order(
            body.supplier_id,
            [line.model_dump() for line in body.lines],
            notes=body.notes,
        )
    except TabillError as e:
        raise to_http_exception(e)


@router.post("/orders/{order_id}/receive", response_model=ProcurementOrderResponse)
@limiter.limit(settings.rate_limit_default)
def receive_purchase_order(request: Request, order_id: int, db: DbSession, ctx: CurrentTenant):
    """Mark a purchase order received and add its quantities to stock."""
    try:
        return ProcurementService(db, ctx).receive_order(order_id)
    except TabillError as e:
        raise to_http_exception(e)


@router.post("/orders/{order_id}/cancel", response_model=ProcurementOrderResponse)
@limiter.limit(settings.rate_limit_default)
def cancel_purchase_order(request: Request, order_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        return ProcurementService(db, ctx).cancel_order(order_id)
    except TabillError as e:
        raise to_http_exception(e)
