"""Dining table routes.

The status reported for a table is derived: a table with a pending order is
Occupied regardless of what was stored.
"""

from fastapi import APIRouter, HTTPException, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.realtime import publish
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession, unit_of_work
from tabill.models.restaurant import DiningTable, TableStatus
from tabill.schemas.restaurant import TableCreate, TableResponse, TableUpdate
from tabill.services.draft_order_service import DraftOrderService

router = APIRouter()


def _to_response(table: DiningTable, occupied: set) -> TableResponse:
    has_draft = table.id in occupied
    return TableResponse(
        id=table.id,
        name=table.name,
        location=table.location,
        status=TableStatus.OCCUPIED if has_draft else (table.status or TableStatus.AVAILABLE),
        has_pending_order=has_draft,
    )


def _get_table(db, ctx, table_id: int) -> DiningTable:
    table = db.query(DiningTable).filter(*DiningTable.scoped(ctx), DiningTable.id == table_id).first()
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


def _ensure_unique_name(db, ctx, name: str, exclude_id: int = None):
    query = db.query(DiningTable.id).filter(*DiningTable.scoped(ctx), DiningTable.name == name)
    if exclude_id is not None:
        query = query.filter(DiningTable.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail=f"Table '{name}' already exists")


@router.get("")
def list_tables(db: DbSession, ctx: CurrentTenant):
    """List tables of the active branch with derived status."""
    occupied = DraftOrderService(db, ctx).occupied_table_ids()
    tables = db.query(DiningTable).filter(*DiningTable.scoped(ctx)).order_by(DiningTable.id).all()
    return list_response([_to_response(t, occupied).model_dump() for t in tables])


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
async def create_table(request: Request, db: DbSession, ctx: CurrentTenant, body: TableCreate):
    _ensure_unique_name(db, ctx, body.name)
    table = DiningTable(
        owner_id=ctx.owner_id,
        branch_id=ctx.branch_id,
        name=body.name,
        location=body.location,
        status=TableStatus.AVAILABLE,
    )
    db.add(table)
    db.commit()
    db.refresh(table)

    response = _to_response(table, set())
    await publish(ctx.branch_id, "dining_tables.created", response.model_dump())
    return response


@router.get("/{table_id}", response_model=TableResponse)
def get_table(table_id: int, db: DbSession, ctx: CurrentTenant):
    table = _get_table(db, ctx, table_id)
    return _to_response(table, DraftOrderService(db, ctx).occupied_table_ids())


@router.put("/{table_id}", response_model=TableResponse)
@limiter.limit(settings.rate_limit_default)
async def update_table(
    request: Request, table_id: int, db: DbSession, ctx: CurrentTenant, body: TableUpdate
):
    table = _get_table(db, ctx, table_id)
    if body.name is not None and body.name != table.name:
        _ensure_unique_name(db, ctx, body.name, exclude_id=table.id)
        table.name = body.name
    if body.location is not None:
        table.location = body.location
    if body.status is not None:
        if body.status not in (TableStatus.AVAILABLE, TableStatus.OCCUPIED):
            raise HTTPException(status_code=400, detail=f"Invalid table status '{body.status}'")
        table.status = body.status
    db.commit()
    db.refresh(table)

    response = _to_response(table, DraftOrderService(db, ctx).occupied_table_ids())
    await publish(ctx.branch_id, "dining_tables.updated", response.model_dump())
    return response


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
async def delete_table(request: Request, table_id: int, db: DbSession, ctx: CurrentTenant):
    """Delete a table. Its pending order, if any, goes with it."""
    table = _get_table(db, ctx, table_id)
    drafts = DraftOrderService(db, ctx)
    draft = drafts.get_draft(table_id)
    try:
        with drafts.guard_version(table_id, draft.version if draft else 0), unit_of_work(db):
            if draft is not None:
                drafts.delete_draft(draft)
            db.delete(table)
    except TabillError as e:
        raise to_http_exception(e)

    if draft is not None:
        await publish(ctx.branch_id, "pending_orders.deleted", {"table_id": table_id})
    await publish(ctx.branch_id, "dining_tables.deleted", {"id": table_id})
