"""
Expense domain types (``expense_kernel.domain.expense``).

Responsibility
--------------
Pure value objects for the expense workflow: statuses, roles, actions,
the acting user, reference data (departments, categories) and the
expense itself, plus the request objects the orchestrator accepts.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* ``Expense`` is frozen; a status change produces a new instance via
  ``with_status`` so a failed transition can never leave a half-mutated
  object behind.
* ``Expense.department_id`` is the owner's department at load time and is
  the value every department check compares against.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum


class ExpenseStatus(str, Enum):
    """Expense lifecycle states."""

    PENDING = "pending"
    APPROVED_BY_MANAGER = "approved_by_manager"
    APPROVED_BY_FINANCE = "approved_by_finance"
    REJECTED = "rejected"


class UserRole(str, Enum):
    """Roles an acting user can hold."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    FINANCE = "finance"


class ExpenseAction(str, Enum):
    """Workflow actions an actor can invoke on an expense."""

    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class Actor:
    """The resolved acting user.  The kernel authorizes, never authenticates."""

    id: int
    username: str
    role: UserRole
    department_id: int | None = None
    is_active: bool = True

    def has_role(self, role: UserRole) -> bool:
        return self.role is role


@dataclass(frozen=True)
class Department:
    """A department with its spending limits.  ``daily_budget`` is optional."""

    id: int
    name: str
    monthly_budget: Decimal
    currency: str
    daily_budget: Decimal | None = None


@dataclass(frozen=True)
class ExpenseCategory:
    """An expense category with its per-user spending limits."""

    id: int
    name: str
    daily_budget: Decimal
    monthly_budget: Decimal
    currency: str


@dataclass(frozen=True)
class Expense:
    """A single reimbursement claim.

    ``id`` and ``version`` are assigned by persistence; a freshly built
    expense has ``id=None``.
    """

    id: int | None
    amount: Decimal
    expense_date: date
    user_id: int
    category_id: int
    currency: str
    status: ExpenseStatus = ExpenseStatus.PENDING
    description: str = ""
    department_id: int | None = None
    receipt_url: str | None = None
    version: int = 0

    def with_status(self, status: ExpenseStatus) -> Expense:
        return replace(self, status=status)

    def is_owned_by(self, actor: Actor) -> bool:
        return self.user_id == actor.id


@dataclass(frozen=True)
class NewExpense:
    """Fields an employee supplies when submitting an expense."""

    category_id: int
    currency: str
    amount: Decimal
    expense_date: date
    description: str = ""
    receipt_url: str | None = None


@dataclass(frozen=True)
class ExpenseChanges:
    """Partial update of a pending expense.  ``None`` leaves a field as is."""

    category_id: int | None = None
    currency: str | None = None
    amount: Decimal | None = None
    expense_date: date | None = None
    description: str | None = None
    receipt_url: str | None = None

    def apply_to(self, expense: Expense) -> Expense:
        updates = {
            name: value
            for name, value in (
                ("category_id", self.category_id),
                ("currency", self.currency),
                ("amount", self.amount),
                ("expense_date", self.expense_date),
                ("description", self.description),
                ("receipt_url", self.receipt_url),
            )
            if value is not None
        }
        return replace(expense, **updates)


@dataclass(frozen=True)
class ExpenseFilter:
    """Read-path filters.  Employees are always narrowed to their own rows."""

    user_id: int | None = None
    status: ExpenseStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    category_id: int | None = None
