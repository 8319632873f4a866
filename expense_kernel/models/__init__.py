"""ORM models for the expense kernel."""

from expense_kernel.models.alert import AlertModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.models.organization import DepartmentModel, UserModel
from expense_kernel.models.reference import CurrencyModel, ExpenseCategoryModel

__all__ = [
    "AlertModel",
    "CurrencyModel",
    "DepartmentModel",
    "ExpenseCategoryModel",
    "ExpenseModel",
    "UserModel",
]
