"""
Module: expense_kernel.selectors.reference_selector
Responsibility: Resolves the reference data a request names: expense
    categories, currencies, departments and acting users.
Architecture position: Kernel > Selectors.  Implements the
    ``DepartmentDirectory`` protocol used by the budget validator.

Failure modes:
    - CategoryNotFoundError, CurrencyNotFoundError, DepartmentNotFoundError,
      UserNotFoundError when a reference does not resolve.
"""

from sqlalchemy import select

from expense_kernel.domain.expense import Actor, Department, ExpenseCategory
from expense_kernel.exceptions import (
    CategoryNotFoundError,
    CurrencyNotFoundError,
    DepartmentNotFoundError,
    UserNotFoundError,
)
from expense_kernel.models.organization import DepartmentModel, UserModel
from expense_kernel.models.reference import CurrencyModel, ExpenseCategoryModel
from expense_kernel.selectors.base import BaseSelector


class ReferenceSelector(BaseSelector[ExpenseCategoryModel]):
    """Lookups that raise a typed NotFound error instead of returning None."""

    def get_category(self, category_id: int) -> ExpenseCategory:
        model = self.session.get(ExpenseCategoryModel, category_id)
        if model is None:
            raise CategoryNotFoundError(category_id)
        return model.to_dto()

    def get_currency(self, code: str) -> str:
        """Return the canonical currency code for ``code``."""
        model = self.session.scalars(
            select(CurrencyModel).where(CurrencyModel.code == code.upper())
        ).one_or_none()
        if model is None:
            raise CurrencyNotFoundError(code)
        return model.code

    def get_department(self, department_id: int) -> Department:
        model = self.session.get(DepartmentModel, department_id)
        if model is None:
            raise DepartmentNotFoundError(department_id)
        return model.to_dto()

    def get_actor(self, user_id: int) -> Actor:
        model = self.session.get(UserModel, user_id)
        if model is None:
            raise UserNotFoundError(user_id)
        return model.to_actor()
