"""Expense routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.models.expense import ExpenseCategory
from tabill.schemas.expense import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseSummary,
    ExpenseUpdate,
)
from tabill.services.expense_service import ExpenseService

router = APIRouter()


@router.get("")
def list_expenses(
    db: DbSession,
    ctx: CurrentTenant,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    category: Optional[ExpenseCategory] = Query(None),
):
    try:
        expenses = ExpenseService(db, ctx).list_expenses(date_from, date_to, category)
    except TabillError as e:
        raise to_http_exception(e)
    return list_response([ExpenseResponse.model_validate(x).model_dump() for x in expenses])


@router.get("/summary", response_model=ExpenseSummary)
def expense_summary(
    db: DbSession,
    ctx: CurrentTenant,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    """Total spend and spend per category over an inclusive date range."""
    try:
        return ExpenseService(db, ctx).summary(date_from, date_to)
    except TabillError as e:
        raise to_http_exception(e)


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_expense(request: Request, db: DbSession, ctx: CurrentTenant, body: ExpenseCreate):
    try:
        return ExpenseService(db, ctx).create_expense(**body.model_dump())
    except TabillError as e:
        raise to_http_exception(e)


@router.put("/{expense_id}", response_model=ExpenseResponse)
@limiter.limit(settings.rate_limit_default)
def update_expense(
    request: Request, expense_id: int, db: DbSession, ctx: CurrentTenant, body: ExpenseUpdate
):
    try:
        return ExpenseService(db, ctx).update_expense(
            expense_id, **body.model_dump(exclude_unset=True)
        )
    except TabillError as e:
        raise to_http_exception(e)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_expense(request: Request, expense_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        ExpenseService(db, ctx).delete_expense(expense_id)
    except TabillError as e:
        raise to_http_exception(e)
