"""
Module: expense_kernel.models.expense
Responsibility: ORM persistence for expenses, the aggregate every workflow
    transition and budget sum operates on.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models.  Domain DTOs are imported lazily inside to_dto().

Invariants enforced:
    - Optimistic concurrency: ``version`` is the mapper's version_id_col.
      Every UPDATE carries ``WHERE version = <loaded>`` and increments it;
      a stale write raises StaleDataError, translated by the store into
      OptimisticLockError.
    - The owner's department is NOT stored on the expense.  to_dto() reads
      it from the owner row, so department checks always see the owner's
      current department.
    - status holds an ExpenseStatus value.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_kernel.db.base import TrackedBase
from expense_kernel.models.organization import UserModel
from expense_kernel.models.reference import ExpenseCategoryModel

if TYPE_CHECKING:
    from expense_kernel.domain.expense import Expense


class ExpenseModel(TrackedBase):
    """A single reimbursement claim."""

    __tablename__ = "expenses"

    __table_args__ = (
        # Category budget sums: (user, category, date)
        Index("idx_expense_user_category_date", "user_id", "category_id", "expense_date"),
        Index("idx_expense_date", "expense_date"),
        Index("idx_expense_status", "status"),
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("expense_categories.id"),
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    owner: Mapped[UserModel] = relationship(UserModel, lazy="joined", innerjoin=True)
    category: Mapped[ExpenseCategoryModel] = relationship(ExpenseCategoryModel)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Expense {self.id} {self.amount} {self.currency} status={self.status}>"

    def to_dto(self) -> Expense:
        """Convert ORM model to frozen domain DTO."""
        from expense_kernel.domain.expense import Expense, ExpenseStatus

        return Expense(
            id=self.id,
            amount=self.amount,
            expense_date=self.expense_date,
            user_id=self.user_id,
            category_id=self.category_id,
            currency=self.currency,
            status=ExpenseStatus(self.status),
            description=self.description,
            department_id=self.owner.department_id if self.owner is not None else None,
            receipt_url=self.receipt_url,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: Expense) -> ExpenseModel:
        """Create ORM model from domain DTO.  ``id`` and ``version`` are assigned on flush."""
        return cls(
            amount=dto.amount,
            description=dto.description,
            expense_date=dto.expense_date,
            user_id=dto.user_id,
            category_id=dto.category_id,
            currency=dto.currency,
            status=dto.status.value,
            receipt_url=dto.receipt_url,
        )

    def apply_dto(self, dto: Expense) -> None:
        """Copy the mutable fields of ``dto`` onto this row."""
        self.amount = dto.amount
        self.description = dto.description
        self.expense_date = dto.expense_date
        self.category_id = dto.category_id
        self.currency = dto.currency
        self.status = dto.status.value
        self.receipt_url = dto.receipt_url
