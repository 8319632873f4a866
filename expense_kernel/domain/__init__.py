"""
Pure domain layer.

Value objects, the approval state machine and budget rules with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Persistence is reached only through the protocols declared here.
"""

from expense_kernel.domain.budget import (
    AlertStatus,
    AlertType,
    BudgetAlert,
    BudgetEventSink,
    BudgetExceededEvent,
    BudgetType,
    BudgetWindow,
    DepartmentDirectory,
    SpendAggregator,
    YearMonth,
    exceeds_limit,
    format_budget_message,
)
from expense_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from expense_kernel.domain.expense import (
    Actor,
    Department,
    Expense,
    ExpenseAction,
    ExpenseCategory,
    ExpenseChanges,
    ExpenseFilter,
    ExpenseStatus,
    NewExpense,
    UserRole,
)
from expense_kernel.domain.expense_state import (
    EXPENSE_TRANSITIONS,
    TERMINAL_EXPENSE_STATUSES,
    ExpenseState,
    ExpenseStateMachine,
    ExpenseWriter,
    TransitionContext,
    build_expense_states,
)

__all__ = [
    "EXPENSE_TRANSITIONS",
    "TERMINAL_EXPENSE_STATUSES",
    "Actor",
    "AlertStatus",
    "AlertType",
    "BudgetAlert",
    "BudgetEventSink",
    "BudgetExceededEvent",
    "BudgetType",
    "BudgetWindow",
    "Clock",
    "Department",
    "DepartmentDirectory",
    "DeterministicClock",
    "Expense",
    "ExpenseAction",
    "ExpenseCategory",
    "ExpenseChanges",
    "ExpenseFilter",
    "ExpenseState",
    "ExpenseStateMachine",
    "ExpenseStatus",
    "ExpenseWriter",
    "NewExpense",
    "SpendAggregator",
    "SystemClock",
    "TransitionContext",
    "UserRole",
    "YearMonth",
    "build_expense_states",
    "exceeds_limit",
    "format_budget_message",
]
