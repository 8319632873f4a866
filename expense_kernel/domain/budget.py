"""
Budget domain types (``expense_kernel.domain.budget``).

Responsibility
--------------
Value objects and pure helpers for advisory budget checks: the budget
scope and window enums, the ``BudgetExceededEvent`` emitted by the
validator, the calendar-month helper, the threshold rule and the alert
message rendering.  Also declares the collaborator protocols the validator
depends on.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Threshold rule: ``current_total + amount > limit`` exceeds; reaching the
  limit exactly does not.
* A daily event carries ``on_date``; a monthly event carries ``year_month``.
  Never both.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol

from expense_kernel.domain.expense import Department


class BudgetType(str, Enum):
    """Which budget was exceeded."""

    CATEGORY = "category"
    DEPARTMENT = "department"


class BudgetWindow(str, Enum):
    """Aggregation window of a budget check."""

    DAILY = "daily"
    MONTHLY = "monthly"


class AlertType(str, Enum):
    """Scope of a persisted budget alert.  ``ALL`` means both scopes fired."""

    CATEGORY = "category"
    DEPARTMENT = "department"
    ALL = "all"

    @classmethod
    def for_budget(cls, budget_type: BudgetType) -> AlertType:
        return cls(budget_type.value)


class AlertStatus(str, Enum):
    NEW = "new"
    RESOLVED = "resolved"


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> YearMonth:
        return cls(value.year, value.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def label(self) -> str:
        """Human form used in alert messages, e.g. ``October 2026``."""
        return f"{calendar.month_name[self.month]} {self.year}"

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def exceeds_limit(current_total: Decimal, amount: Decimal, limit: Decimal) -> bool:
    """True when adding ``amount`` pushes spend strictly above ``limit``."""
    return current_total + amount > limit


@dataclass(frozen=True)
class BudgetExceededEvent:
    """Advisory signal that one budget threshold would be crossed.

    Produced by the budget validator and handed to the event sink; never
    persisted as-is.  Carries everything a notifier needs to render a
    message without querying again.
    """

    budget_type: BudgetType
    window: BudgetWindow
    expense_id: int | None
    user_id: int
    category_id: int
    department_id: int | None
    scope_name: str
    current_total: Decimal
    new_total: Decimal
    budget_limit: Decimal
    on_date: date | None = None
    year_month: YearMonth | None = None

    def __post_init__(self):
        if self.window is BudgetWindow.DAILY and self.on_date is None:
            raise ValueError("daily budget event requires on_date")
        if self.window is BudgetWindow.MONTHLY and self.year_month is None:
            raise ValueError("monthly budget event requires year_month")

    @property
    def period_label(self) -> str:
        if self.window is BudgetWindow.DAILY:
            return self.on_date.isoformat()
        return self.year_month.label()


def format_budget_message(event: BudgetExceededEvent) -> str:
    """Render the alert text for one exceeded threshold."""
    return (
        f"{event.window.value.capitalize()} budget exceeded for "
        f"{event.budget_type.value} '{event.scope_name}' on {event.period_label}. "
        f"Current total: {event.current_total}, New total: {event.new_total}, "
        f"Budget limit: {event.budget_limit}"
    )


@dataclass(frozen=True)
class BudgetAlert:
    """A persisted alert raised from one or more budget events."""

    id: int
    expense_id: int
    alert_type: AlertType
    message: str
    status: AlertStatus = AlertStatus.NEW


# =========================================================================
# Collaborator protocols
# =========================================================================


class SpendAggregator(Protocol):
    """Live spend sums.  Every sum ignores rejected expenses.

    ``exclude_expense_id`` removes one expense from the total so an
    expense is never counted against itself.
    """

    def sum_by_user_category_on_date(
        self, user_id: int, category_id: int, on_date: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        ...

    def sum_by_user_category_between(
        self, user_id: int, category_id: int, start: date, end: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        ...

    def sum_by_department_on_date(
        self, department_id: int, on_date: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        ...

    def sum_by_department_between(
        self, department_id: int, start: date, end: date,
        exclude_expense_id: int | None = None,
    ) -> Decimal:
        ...


class DepartmentDirectory(Protocol):
    def get_department(self, department_id: int) -> Department:
        ...


class BudgetEventSink(Protocol):
    """Fire-and-forget receiver of budget events."""

    def publish(self, event: BudgetExceededEvent) -> None:
        ...

