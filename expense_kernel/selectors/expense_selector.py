"""
Module: expense_kernel.selectors.expense_selector
Responsibility: Read-only expense and budget-alert queries for the listing
    and lookup paths.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import select

from expense_kernel.domain.budget import AlertStatus, BudgetAlert
from expense_kernel.domain.expense import Expense, ExpenseFilter
from expense_kernel.models.alert import AlertModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.selectors.base import BaseSelector


class ExpenseSelector(BaseSelector[ExpenseModel]):
    """Expense lookups returning frozen DTOs."""

    def get(self, expense_id: int) -> Expense | None:
        model = self.session.get(ExpenseModel, expense_id)
        return model.to_dto() if model is not None else None

    def list_expenses(self, filters: ExpenseFilter | None = None) -> list[Expense]:
        """Expenses matching ``filters``, newest expense date first."""
        filters = filters or ExpenseFilter()
        query = select(ExpenseModel)

        if filters.user_id is not None:
            query = query.where(ExpenseModel.user_id == filters.user_id)
        if filters.status is not None:
            query = query.where(ExpenseModel.status == filters.status.value)
        if filters.category_id is not None:
            query = query.where(ExpenseModel.category_id == filters.category_id)
        if filters.start_date is not None:
            query = query.where(ExpenseModel.expense_date >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(ExpenseModel.expense_date <= filters.end_date)

        query = query.order_by(ExpenseModel.expense_date.desc(), ExpenseModel.id.desc())
        return [model.to_dto() for model in self.session.scalars(query).unique()]


class AlertSelector(BaseSelector[AlertModel]):
    """Budget alert lookups."""

    def get(self, alert_id: int) -> BudgetAlert | None:
        model = self.session.get(AlertModel, alert_id)
        return model.to_dto() if model is not None else None

    def for_expense(self, expense_id: int) -> BudgetAlert | None:
        model = self.session.scalars(
            select(AlertModel).where(AlertModel.expense_id == expense_id)
        ).one_or_none()
        return model.to_dto() if model is not None else None

    def list_alerts(self, status: AlertStatus | None = None) -> list[BudgetAlert]:
        query = select(AlertModel)
        if status is not None:
            query = query.where(AlertModel.status == status.value)
        query = query.order_by(AlertModel.id)
        return [model.to_dto() for model in self.session.scalars(query)]
