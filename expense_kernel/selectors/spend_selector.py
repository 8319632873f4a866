"""
Module: expense_kernel.selectors.spend_selector
Responsibility: Live spend totals for budget validation.  Implements the
    ``SpendAggregator`` protocol over the expenses table.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Rejected expenses never count toward a total.
    - ``exclude_expense_id`` removes exactly one expense from the total.
    - Department totals follow each owner's current department (join on
      users), not a value stored on the expense.
    - Every total is a Decimal; an empty set sums to Decimal("0").

Failure modes:
    - Totals are read inside the caller's transaction; concurrent
      uncommitted expenses are not visible.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from expense_kernel.domain.expense import ExpenseStatus
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.models.organization import UserModel
from expense_kernel.selectors.base import BaseSelector


class SpendSelector(BaseSelector[ExpenseModel]):
    """Sum of non-rejected expense amounts over a scope and a date window."""

    def sum_by_user_category_on_date(
        self,
        user_id: int,
        category_id: int,
        on_date: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        return self._sum(
            [
                ExpenseModel.user_id == user_id,
                ExpenseModel.category_id == category_id,
                ExpenseModel.expense_date == on_date,
            ],
            exclude_expense_id,
        )

    def sum_by_user_category_between(
        self,
        user_id: int,
        category_id: int,
        start: date,
        end: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        """Inclusive of both ``start`` and ``end``."""
        return self._sum(
            [
                ExpenseModel.user_id == user_id,
                ExpenseModel.category_id == category_id,
                ExpenseModel.expense_date.between(start, end),
            ],
            exclude_expense_id,
        )

    def sum_by_department_on_date(
        self,
        department_id: int,
        on_date: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        return self._sum(
            [
                UserModel.department_id == department_id,
                ExpenseModel.expense_date == on_date,
            ],
            exclude_expense_id,
            join_owner=True,
        )

    def sum_by_department_between(
        self,
        department_id: int,
        start: date,
        end: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        """Inclusive of both ``start`` and ``end``."""
        return self._sum(
            [
                UserModel.department_id == department_id,
                ExpenseModel.expense_date.between(start, end),
            ],
            exclude_expense_id,
            join_owner=True,
        )

    def _sum(
        self,
        conditions: list,
        exclude_expense_id: int | None,
        join_owner: bool = False,
    ) -> Decimal:
        total = func.coalesce(func.sum(ExpenseModel.amount), Decimal("0")).label("total")

        query = select(total).select_from(ExpenseModel)
        if join_owner:
            query = query.join(UserModel, ExpenseModel.user_id == UserModel.id)

        query = query.where(
            ExpenseModel.status != ExpenseStatus.REJECTED.value,
            *conditions,
        )
        if exclude_expense_id is not None:
            query = query.where(ExpenseModel.id != exclude_expense_id)

        value = self.session.execute(query).scalar_one()
        if value is None:
            return Decimal("0")
        # SQLite may hand back a float or int for SUM over NUMERIC.
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(Decimal("0.01"))
