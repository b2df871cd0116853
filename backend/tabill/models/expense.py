"""Branch operating expenses."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import Date, Enum as SQLEnum, Float, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from tabill.db.base import Base, TenantMixin, TimestampMixin
from tabill.models.validators import positive


class ExpenseCategory(str, Enum):
    RENT = "Rent"
    UTILITIES = "Utilities"
    SALARIES = "Salaries"
    SUPPLIES = "Supplies"
    EQUIPMENT = "Equipment"
    MARKETING = "Marketing"
    MAINTENANCE = "Maintenance"
    OTHER = "Other"


class Expense(Base, TenantMixin, TimestampMixin):
    """A single spend recorded against a branch (rent, a gas bill)."""

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True)
    category: Mapped[ExpenseCategory] = mapped_column(
        SQLEnum(ExpenseCategory), default=ExpenseCategory.OTHER, nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    @validates("amount")
    def _validate_amount(self, key, value):
        return positive(key, value)
