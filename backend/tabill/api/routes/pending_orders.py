"""Pending order (draft) routes for dine-in tables.

Every change publishes ``pending_orders.updated`` or, when the last line
is removed, ``pending_orders.deleted`` on the branch channel.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.realtime import publish
from tabill.core.tenancy import CurrentTenant, TenantContext
from tabill.db.session import DbSession
from tabill.schemas.order import LineAdd, LineDelta, LineSet, PendingOrderResponse, RatesUpdate
from tabill.services.draft_order_service import DraftOrderService, DraftView

logger = logging.getLogger(__name__)

router = APIRouter()


async def _publish_view(ctx: TenantContext, view: DraftView) -> PendingOrderResponse:
    response = PendingOrderResponse.from_view(view)
    if view.draft is None:
        await publish(ctx.branch_id, "pending_orders.deleted", {"table_id": view.table_id})
    else:
        await publish(ctx.branch_id, "pending_orders.updated", response.model_dump())
    return response


@router.get("/table/{table_id}", response_model=PendingOrderResponse)
def get_pending_order(table_id: int, db: DbSession, ctx: CurrentTenant):
    """Draft of a table with resolved lines and totals (empty when none exists)."""
    try:
        view = DraftOrderService(db, ctx).view(table_id)
    except TabillError as e:
        raise to_http_exception(e)
    return PendingOrderResponse.from_view(view)


@router.post("/table/{table_id}/lines", response_model=PendingOrderResponse)
@limiter.limit(settings.rate_limit_default)
async def add_line(request: Request, table_id: int, db: DbSession, ctx: CurrentTenant, body: LineAdd):
    """Add portions of an item variant. An existing line is incremented."""
    try:
        view = DraftOrderService(db, ctx).add_line(
            table_id, body.menu_item_id, body.variant_id, body.quantity, body.expected_version
        )
    except TabillError as e:
        raise to_http_exception(e)
    return await _publish_view(ctx, view)


@router.put("/table/{table_id}/lines", response_model=PendingOrderResponse)
@limiter.limit(settings.rate_limit_default)
async def set_line_quantity(
    request: Request, table_id: int, db: DbSession, ctx: CurrentTenant, body: LineSet
):
    """Set a line's quantity. Zero removes the line; no lines deletes the draft."""
    try:
        view = DraftOrderService(db, ctx).set_quantity(
            table_id, body.menu_item_id, body.variant_id, body.quantity, body.expected_version
        )
    except TabillError as e:
        raise to_http_exception(e)
    return await _publish_view(ctx, view)


@router.patch("/table/{table_id}/lines", response_model=PendingOrderResponse)
@limiter.limit(settings.rate_limit_default)
async def change_line_quantity(
    request: Request, table_id: int, db: DbSession, ctx: CurrentTenant, body: LineDelta
):
    try:
        view = DraftOrderService(db, ctx).change_quantity(
            table_id, body.menu_item_id, body.variant_id, body.delta, body.expected_version
        )
    except TabillError as e:
        raise to_http_exception(e)
    return await _publish_view(ctx, view)


@router.put("/table/{table_id}/rates", response_model=PendingOrderResponse)
@limiter.limit(settings.rate_limit_default)
async def update_rates(
    request: Request, table_id: int, db: DbSession, ctx: CurrentTenant, body: RatesUpdate
):
    """Change SGST/CGST rates of a draft and recompute its amounts."""
    try:
        view = DraftOrderService(db, ctx).update_rates(
            table_id, body.sgst_rate, body.cgst_rate, body.expected_version
        )
    except TabillError as e:
        raise to_http_exception(e)
    return await _publish_view(ctx, view)


@router.delete("/table/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
async def discard_pending_order(
    request: Request,
    table_id: int,
    db: DbSession,
    ctx: CurrentTenant,
    expected_version: Optional[int] = Query(None),
):
    try:
        DraftOrderService(db, ctx).discard(table_id, expected_version)
    except TabillError as e:
        raise to_http_exception(e)
    await publish(ctx.branch_id, "pending_orders.deleted", {"table_id": table_id})
