"""Branch expenses and their per-category summary."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tabill.core.exceptions import NotFoundError, ValidationError
from tabill.core.tenancy import TenantContext
from tabill.db.session import unit_of_work
from tabill.models.expense import Expense, ExpenseCategory

logger = logging.getLogger(__name__)


class ExpenseService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def _query(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category: Optional[ExpenseCategory] = None,
    ):
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        query = self.db.query(Expense).filter(*Expense.scoped(self.ctx))
        if date_from:
            query = query.filter(Expense.expense_date >= date_from)
        if date_to:
            query = query.filter(Expense.expense_date <= date_to)
        if category:
            query = query.filter(Expense.category == category)
        return query

    def list_expenses(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category: Optional[ExpenseCategory] = None,
    ) -> List[Expense]:
        """Expenses in an inclusive date range, newest first."""
        return (
            self._query(date_from, date_to, category)
            .order_by(Expense.expense_date.desc(), Expense.id.desc())
            .all()
        )

    def get_expense(self, expense_id: int) -> Expense:
        expense = (
            self.db.query(Expense)
            .filter(*Expense.scoped(self.ctx), Expense.id == expense_id)
            .first()
        )
        if not expense:
            raise NotFoundError("Expense not found")
        return expense

    def create_expense(
        self,
        category: ExpenseCategory,
        amount: float,
        expense_date: date,
        description: Optional[str] = None,
    ) -> Expense:
        if amount is None or amount <= 0:
            raise ValidationError("Expense amount must be positive")
        expense = Expense(
            owner_id=self.ctx.owner_id,
            branch_id=self.ctx.branch_id,
            category=category,
            amount=amount,
            expense_date=expense_date,
            description=description,
        )
        with unit_of_work(self.db):
            self.db.add(expense)
        self.db.refresh(expense)
        logger.info(
            f"Recorded {category.value} expense of {amount} for branch {self.ctx.branch_id}"
        )
        return expense

    def update_expense(self, expense_id: int, **fields) -> Expense:
        expense = self.get_expense(expense_id)
        amount = fields.get("amount")
        if amount is not None and amount <= 0:
            raise ValidationError("Expense amount must be positive")
        with unit_of_work(self.db):
            for field, value in fields.items():
                if value is not None:
                    setattr(expense, field, value)
        self.db.refresh(expense)
        return expense

    def delete_expense(self, expense_id: int) -> None:
        expense = self.get_expense(expense_id)
        with unit_of_work(self.db):
            self.db.delete(expense)

    def summary(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Total spend and spend per category. Every category is listed, unused ones at 0."""
        sums = dict(
            self._query(date_from, date_to)
            .with_entities(Expense.category, func.sum(Expense.amount))
            .group_by(Expense.category)
            .all()
        )
        by_category = {
            category.value: float(sums.get(category) or 0.0) for category in ExpenseCategory
        }
        return {
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "total": sum(by_category.values()),
            "by_category": by_category,
        }
