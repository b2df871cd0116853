"""Kitchen routes - stock requests and production logs."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.models.kitchen import KitchenRequestStatus
from tabill.schemas.kitchen import (
    KitchenRequestCreate,
    KitchenRequestResponse,
    ProductionLogCreate,
    ProductionLogResponse,
)
from tabill.services.kitchen_service import KitchenService, ProductionService

router = APIRouter()


# ============== STOCK REQUESTS ==============

@router.get("/requests")
def list_kitchen_requests(
    db: DbSession,
    ctx: CurrentTenant,
    request_status: Optional[KitchenRequestStatus] = Query(None, alias="status"),
):
    requests = KitchenService(db, ctx).list_requests(status=request_status)
    return list_response([KitchenRequestResponse.model_validate(r).model_dump() for r in requests])


@router.post("/requests", response_model=KitchenRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_kitchen_request(
    request: Request, db: DbSession, ctx: CurrentTenant, body: KitchenRequestCreate
):
    try:
        return KitchenService(db, ctx).create_request(
            body.requesting_staff_name,
            [line.model_dump() for line in body.lines],
            notes=body.notes,
        )
    except TabillError as e:
        raise to_http_exception(e)


@router.post("/requests/{request_id}/fulfil", response_model=KitchenRequestResponse)
@limiter.limit(settings.rate_limit_default)
def fulfil_kitchen_request(request: Request, request_id: int, db: DbSession, ctx: CurrentTenant):
    """Deduct the requested stock. Rejected as a whole if any line is short."""
    try:
        return KitchenService(db, ctx).fulfil_request(request_id)
    except TabillError as e:
        raise to_http_exception(e)


@router.post("/requests/{request_id}/cancel", response_model=KitchenRequestResponse)
@limiter.limit(settings.rate_limit_default)
def cancel_kitchen_request(request: Request, request_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        return KitchenService(db, ctx).cancel_request(request_id)
    except TabillError as e:
        raise to_http_exception(e)


# ============== PRODUCTION LOGS ==============

@router.get("/productions")
def list_production_logs(
    db: DbSession,
    ctx: CurrentTenant,
    chef_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    try:
        logs = ProductionService(db, ctx).list_logs(chef_id, date_from, date_to)
    except TabillError as e:
        raise to_http_exception(e)
    return list_response([ProductionLogResponse.model_validate(log).model_dump() for log in logs])


@router.post("/productions", response_model=ProductionLogResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def log_production(request: Request, db: DbSession, ctx: CurrentTenant, body: ProductionLogCreate):
    """Record portions a chef prepared. Cost is taken from the variant's cost price."""
    try:
        return ProductionService(db, ctx).log_production(
            body.chef_name,
            body.menu_item_id,
            body.variant_id,
            body.quantity,
            chef_id=body.chef_id,
        )
    except TabillError as e:
        raise to_http_exception(e)
