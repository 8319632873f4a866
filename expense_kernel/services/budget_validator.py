"""
BudgetValidator -- advisory budget-threshold checks.

Responsibility:
    Given an expense and its amount, asks each budget strategy whether the
    expense pushes a daily or monthly total above its limit, logs and
    publishes every resulting ``BudgetExceededEvent``, and returns them.

Architecture position:
    Kernel > Services.  Depends only on the ``SpendAggregator``,
    ``DepartmentDirectory`` and ``BudgetEventSink`` protocols; holds no
    state between calls.

Invariants enforced:
    - ``current + amount > limit`` triggers; reaching the limit exactly
      does not.
    - Totals exclude rejected expenses and the evaluated expense itself.
    - Category checks are keyed by (user, category); department checks by
      the owner's department alone.
    - A department without a daily budget only gets the monthly check; an
      expense whose owner has no department gets no department check.
    - Exceeding a budget is never an error.

Failure modes:
    - Aggregator and sink errors propagate unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from expense_kernel.domain.budget import (
    BudgetEventSink,
    BudgetExceededEvent,
    BudgetType,
    BudgetWindow,
    DepartmentDirectory,
    SpendAggregator,
    YearMonth,
    exceeds_limit,
)
from expense_kernel.domain.expense import Expense, ExpenseCategory
from expense_kernel.logging_config import get_logger

logger = get_logger("services.budget_validator")


class BudgetValidationStrategy(ABC):
    """One budget scope.  Strategies are pure apart from aggregator reads."""

    budget_type: BudgetType

    @abstractmethod
    def check(
        self,
        user_id: int,
        category: ExpenseCategory,
        expense: Expense,
        amount: Decimal,
    ) -> list[BudgetExceededEvent]:
        ...

    def _event(
        self,
        window: BudgetWindow,
        *,
        user_id: int,
        category: ExpenseCategory,
        expense: Expense,
        scope_name: str,
        current: Decimal,
        amount: Decimal,
        limit: Decimal,
    ) -> BudgetExceededEvent:
        return BudgetExceededEvent(
            budget_type=self.budget_type,
            window=window,
            expense_id=expense.id,
            user_id=user_id,
            category_id=category.id,
            department_id=expense.department_id,
            scope_name=scope_name,
            current_total=current,
            new_total=current + amount,
            budget_limit=limit,
            on_date=expense.expense_date if window is BudgetWindow.DAILY else None,
            year_month=(
                YearMonth.from_date(expense.expense_date)
                if window is BudgetWindow.MONTHLY else None
            ),
        )


class CategoryBudgetValidationStrategy(BudgetValidationStrategy):
    """Per-user daily and monthly limits of the expense category."""

    budget_type = BudgetType.CATEGORY

    def __init__(self, aggregator: SpendAggregator):
        self._aggregator = aggregator

    def check(self, user_id, category, expense, amount):
        events: list[BudgetExceededEvent] = []
        day: date = expense.expense_date
        month = YearMonth.from_date(day)

        daily = self._aggregator.sum_by_user_category_on_date(
            user_id, category.id, day, exclude_expense_id=expense.id,
        )
        if exceeds_limit(daily, amount, category.daily_budget):
            events.append(self._event(
                BudgetWindow.DAILY,
                user_id=user_id, category=category, expense=expense,
                scope_name=category.name, current=daily, amount=amount,
                limit=category.daily_budget,
            ))

        monthly = self._aggregator.sum_by_user_category_between(
            user_id, category.id, month.first_day, month.last_day,
            exclude_expense_id=expense.id,
        )
        if exceeds_limit(monthly, amount, category.monthly_budget):
            events.append(self._event(
                BudgetWindow.MONTHLY,
                user_id=user_id, category=category, expense=expense,
                scope_name=category.name, current=monthly, amount=amount,
                limit=category.monthly_budget,
            ))

        return events


class DepartmentBudgetValidationStrategy(BudgetValidationStrategy):
    """Department-wide limits for the owner's department."""

    budget_type = BudgetType.DEPARTMENT

    def __init__(self, aggregator: SpendAggregator, departments: DepartmentDirectory):
        self._aggregator = aggregator
        self._departments = departments

    def check(self, user_id, category, expense, amount):
        if expense.department_id is None:
            return []

        department = self._departments.get_department(expense.department_id)
        events: list[BudgetExceededEvent] = []
        day: date = expense.expense_date
        month = YearMonth.from_date(day)

        if department.daily_budget is not None:
            daily = self._aggregator.sum_by_department_on_date(
                department.id, day, exclude_expense_id=expense.id,
            )
            if exceeds_limit(daily, amount, department.daily_budget):
                events.append(self._event(
                    BudgetWindow.DAILY,
                    user_id=user_id, category=category, expense=expense,
                    scope_name=department.name, current=daily, amount=amount,
                    limit=department.daily_budget,
                ))

        monthly = self._aggregator.sum_by_department_between(
            department.id, month.first_day, month.last_day,
            exclude_expense_id=expense.id,
        )
        if exceeds_limit(monthly, amount, department.monthly_budget):
            events.append(self._event(
                BudgetWindow.MONTHLY,
                user_id=user_id, category=category, expense=expense,
                scope_name=department.name, current=monthly, amount=amount,
                limit=department.monthly_budget,
            ))

        return events


class BudgetValidator:
    """Runs every strategy and publishes what they find.

    Build with ``BudgetValidator.default(...)`` for the category and
    department checks, or pass strategies explicitly.
    """

    def __init__(
        self,
        strategies: Sequence[BudgetValidationStrategy],
        sink: BudgetEventSink,
    ):
        self._strategies = tuple(strategies)
        self._sink = sink

    @classmethod
    def default(
        cls,
        aggregator: SpendAggregator,
        departments: DepartmentDirectory,
        sink: BudgetEventSink,
    ) -> BudgetValidator:
        return cls(
            [
                CategoryBudgetValidationStrategy(aggregator),
                DepartmentBudgetValidationStrategy(aggregator, departments),
            ],
            sink,
        )

    def validate(
        self,
        user_id: int,
        category: ExpenseCategory,
        expense: Expense,
        amount: Decimal,
    ) -> list[BudgetExceededEvent]:
        events: list[BudgetExceededEvent] = []
        for strategy in self._strategies:
            events.extend(strategy.check(user_id, category, expense, amount))

        for event in events:
            logger.warning(
                "budget_exceeded",
                extra={
                    "budget_type": event.budget_type,
                    "window": event.window,
                    "scope_name": event.scope_name,
                    "period": event.period_label,
                    "user_id": event.user_id,
                    "expense_id": event.expense_id,
                    "current_total": event.current_total,
                    "new_total": event.new_total,
                    "budget_limit": event.budget_limit,
                },
            )
            self._sink.publish(event)

        logger.debug(
            "budget_validation_completed",
            extra={"expense_id": expense.id, "event_count": len(events)},
        )
        return events
