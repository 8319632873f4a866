"""
Module: expense_kernel.models.reference
Responsibility: ORM persistence for the reference data an expense points at:
    currencies and expense categories.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Currency codes and category names are unique.
    - Category budgets are per user: the daily and monthly limits apply to
      one user's spend in that category.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from expense_kernel.domain.expense import ExpenseCategory


class CurrencyModel(TrackedBase):
    """
    A currency an expense may be recorded in.

    The exchange rate is reference data only; amounts are never converted.
    """

    __tablename__ = "currencies"

    __table_args__ = (
        UniqueConstraint("code", name="uq_currency_code"),
    )

    code: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(15, 6),
        nullable=False,
        default=Decimal("1"),
    )

    def __repr__(self) -> str:
        return f"<Currency {self.code}>"


class ExpenseCategoryModel(TrackedBase):
    """An expense category with per-user daily and monthly limits."""

    __tablename__ = "expense_categories"

    __table_args__ = (
        UniqueConstraint("name", name="uq_expense_category_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    daily_budget: Mapped[Decimal] = mapped_column(nullable=False)
    monthly_budget: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    def __repr__(self) -> str:
        return f"<ExpenseCategory {self.name}>"

    def to_dto(self) -> ExpenseCategory:
        from expense_kernel.domain.expense import ExpenseCategory

        return ExpenseCategory(
            id=self.id,
            name=self.name,
            daily_budget=self.daily_budget,
            monthly_budget=self.monthly_budget,
            currency=self.currency,
        )
