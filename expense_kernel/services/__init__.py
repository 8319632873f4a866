"""Services for the expense kernel (write side)."""

from expense_kernel.services.alert_service import AlertService
from expense_kernel.services.budget_validator import (
    BudgetValidationStrategy,
    BudgetValidator,
    CategoryBudgetValidationStrategy,
    DepartmentBudgetValidationStrategy,
)
from expense_kernel.services.event_publisher import EventPublisher
from expense_kernel.services.expense_store import ExpenseStore
from expense_kernel.services.expense_workflow import ExpenseWorkflowService

__all__ = [
    "AlertService",
    "BudgetValidationStrategy",
    "BudgetValidator",
    "CategoryBudgetValidationStrategy",
    "DepartmentBudgetValidationStrategy",
    "EventPublisher",
    "ExpenseStore",
    "ExpenseWorkflowService",
]
