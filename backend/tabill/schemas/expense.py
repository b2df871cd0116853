"""Expense schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from tabill.models.expense import ExpenseCategory


class ExpenseCreate(BaseModel):
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: float = Field(..., gt=0)
    description: Optional[str] = Field(default=None, max_length=500)
    expense_date: date


class ExpenseUpdate(BaseModel):
    category: Optional[ExpenseCategory] = None
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=500)
    expense_date: Optional[date] = None


class ExpenseResponse(BaseModel):
    id: int
    category: ExpenseCategory
    amount: float
    description: Optional[str] = None
    expense_date: date
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenseSummary(BaseModel):
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    total: float
    by_category: Dict[str, float]
