"""Finalized order routes - checkout, takeaway, history and bills."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.realtime import publish
from tabill.core.responses import paginated_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.schemas.order import FinalizeRequest, OrderResponse, TakeawayRequest
from tabill.services.finalization_service import FinalizationService
from tabill.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/table/{table_id}/finalize",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.rate_limit_default)
async def finalize_table_order(
    request: Request,
    table_id: int,
    db: DbSession,
    ctx: CurrentTenant,
    body: Optional[FinalizeRequest] = None,
):
    """Check out a table: create the order and clear the draft."""
    body = body or FinalizeRequest()
    try:
        order = FinalizationService(db, ctx).finalize_table(
            table_id,
            payment_method=body.payment_method,
            staff_name=body.staff_name,
            expected_version=body.expected_version,
        )
    except TabillError as e:
        raise to_http_exception(e)

    response = OrderResponse.model_validate(order)
    await publish(ctx.branch_id, "orders.created", response.model_dump(mode="json"))
    await publish(ctx.branch_id, "pending_orders.deleted", {"table_id": table_id})
    return response


@router.post("/takeaway", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
async def create_takeaway_order(
    request: Request, db: DbSession, ctx: CurrentTenant, body: TakeawayRequest
):
    """Finalize a takeaway basket directly, with no table and no draft."""
    try:
        order = FinalizationService(db, ctx).finalize_takeaway(
            [(line.menu_item_id, line.variant_id, line.quantity) for line in body.lines],
            sgst_rate=body.sgst_rate,
            cgst_rate=body.cgst_rate,
            payment_method=body.payment_method,
            staff_name=body.staff_name,
        )
    except TabillError as e:
        raise to_http_exception(e)

    response = OrderResponse.model_validate(order)
    await publish(ctx.branch_id, "orders.created", response.model_dump(mode="json"))
    return response


@router.get("")
def list_orders(
    db: DbSession,
    ctx: CurrentTenant,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    order_type: Optional[str] = Query(None, pattern="^(dine-in|takeaway)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List finalized orders of the branch, newest first."""
    orders, total = OrderService(db, ctx).list_orders(
        date_from=date_from, date_to=date_to, order_type=order_type, skip=skip, limit=limit
    )
    return paginated_response(
        [OrderResponse.model_validate(o).model_dump() for o in orders],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        return OrderService(db, ctx).get_order(order_id)
    except TabillError as e:
        raise to_http_exception(e)


@router.get("/{order_id}/bill")
def get_order_bill(order_id: int, db: DbSession, ctx: CurrentTenant):
    """Printable bill with amounts rounded to two decimals."""
    service = OrderService(db, ctx)
    try:
        order = service.get_order(order_id)
    except TabillError as e:
        raise to_http_exception(e)
    return service.render_bill(order)
