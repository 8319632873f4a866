"""Read-only selectors for the expense kernel."""

from expense_kernel.selectors.expense_selector import AlertSelector, ExpenseSelector
from expense_kernel.selectors.reference_selector import ReferenceSelector
from expense_kernel.selectors.spend_selector import SpendSelector

__all__ = [
    "AlertSelector",
    "ExpenseSelector",
    "ReferenceSelector",
    "SpendSelector",
]
