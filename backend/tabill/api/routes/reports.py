"""Sales report routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from tabill.core.rate_limit import limiter
from tabill.core.tenancy import CurrentOwner, CurrentTenant
from tabill.db.session import DbSession
from tabill.services.report_service import ReportService

router = APIRouter()


def _check_range(date_from: Optional[date], date_to: Optional[date]):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail="date_from must not be after date_to")


@router.get("/sales")
@limiter.limit("30/minute")
def sales_report(
    request: Request,
    db: DbSession,
    ctx: CurrentTenant,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    """Sales summary of the active branch over an inclusive date range."""
    _check_range(date_from, date_to)
    return ReportService(db).sales_summary(ctx, date_from, date_to)


@router.get("/branches")
@limiter.limit("30/minute")
def branch_comparison(
    request: Request,
    db: DbSession,
    owner: CurrentOwner,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    """Orders, revenue and table count for every branch of the owner."""
    _check_range(date_from, date_to)
    return {"branches": ReportService(db).branch_comparison(owner, date_from, date_to)}


@router.get("/staff")
@limiter.limit("30/minute")
def staff_performance(
    request: Request,
    db: DbSession,
    ctx: CurrentTenant,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    """Orders and sales per staff member of the active branch."""
    _check_range(date_from, date_to)
    return {"staff": ReportService(db).staff_performance(ctx, date_from, date_to)}
