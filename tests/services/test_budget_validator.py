"""
Tests for BudgetValidator and its strategies
(``expense_kernel.services.budget_validator``).

The aggregator is faked so each test states the running totals directly.
"""

from datetime import date
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from expense_kernel.domain.budget import BudgetType, BudgetWindow, YearMonth
from expense_kernel.domain.expense import Department, Expense, ExpenseCategory
from expense_kernel.services.budget_validator import (
    BudgetValidator,
    CategoryBudgetValidationStrategy,
    DepartmentBudgetValidationStrategy,
)
from tests.conftest import RecordingSink

DAY = date(2026, 10, 19)
ZERO = Decimal("0.00")


class FakeAggregator:
    """SpendAggregator returning fixed totals and recording every call."""

    def __init__(
        self,
        category_daily: Decimal = ZERO,
        category_monthly: Decimal = ZERO,
        department_daily: Decimal = ZERO,
        department_monthly: Decimal = ZERO,
    ):
        self.category_daily = category_daily
        self.category_monthly = category_monthly
        self.department_daily = department_daily
        self.department_monthly = department_monthly
        self.calls: list[tuple] = []

    def sum_by_user_category_on_date(self, user_id, category_id, on_date, exclude_expense_id=None):
        self.calls.append(("category_daily", user_id, category_id, on_date, exclude_expense_id))
        return self.category_daily

    def sum_by_user_category_between(
        self, user_id, category_id, start, end, exclude_expense_id=None,
    ):
        self.calls.append(("category_monthly", user_id, category_id, start, end, exclude_expense_id))
        return self.category_monthly

    def sum_by_department_on_date(self, department_id, on_date, exclude_expense_id=None):
        self.calls.append(("department_daily", department_id, on_date, exclude_expense_id))
        return self.department_daily

    def sum_by_department_between(self, department_id, start, end, exclude_expense_id=None):
        self.calls.append(("department_monthly", department_id, start, end, exclude_expense_id))
        return self.department_monthly

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)


class FakeDirectory:
    def __init__(self, *departments: Department):
        self.departments = {d.id: d for d in departments}
        self.lookups: list[int] = []

    def get_department(self, department_id):
        self.lookups.append(department_id)
        return self.departments[department_id]


TRAVEL = ExpenseCategory(
    id=2,
    name="Travel",
    daily_budget=Decimal("100.00"),
    monthly_budget=Decimal("100000.00"),
    currency="EUR",
)
IT = Department(id=10, name="IT", monthly_budget=Decimal("100000.00"), currency="EUR")


def make_expense(amount: Decimal, department_id: int | None = 10, expense_id=101) -> Expense:
    return Expense(
        id=expense_id,
        amount=amount,
        expense_date=DAY,
        user_id=1,
        category_id=TRAVEL.id,
        currency="EUR",
        department_id=department_id,
        version=1,
    )


def build(aggregator, *departments, sink=None):
    sink = sink if sink is not None else RecordingSink()
    validator = BudgetValidator.default(aggregator, FakeDirectory(*(departments or (IT,))), sink)
    return validator, sink


# =========================================================================
# Threshold boundary
# =========================================================================


class TestThresholdBoundary:
    def test_reaching_daily_limit_exactly_emits_nothing(self):
        validator, sink = build(FakeAggregator(category_daily=Decimal("60.00")))

        events = validator.validate(1, TRAVEL, make_expense(Decimal("40.00")), Decimal("40.00"))

        assert events == []
        assert sink.events == []

    def test_one_cent_over_emits_one_daily_category_event(self):
        validator, sink = build(FakeAggregator(category_daily=Decimal("60.00")))

        events = validator.validate(1, TRAVEL, make_expense(Decimal("40.01")), Decimal("40.01"))

        assert len(events) == 1
        event = events[0]
        assert event.budget_type is BudgetType.CATEGORY
        assert event.window is BudgetWindow.DAILY
        assert event.budget_limit == Decimal("100.00")
        assert event.current_total == Decimal("60.00")
        assert event.new_total == Decimal("100.01")
        assert event.on_date == DAY
        assert event.scope_name == "Travel"
        assert event.expense_id == 101
        assert sink.events == events

    @given(
        current=st.decimals(min_value=0, max_value=10000, places=2),
        amount=st.decimals(min_value=Decimal("0.01"), max_value=10000, places=2),
        limit=st.decimals(min_value=0, max_value=10000, places=2),
    )
    def test_event_emitted_iff_strictly_above_limit(self, current, amount, limit):
        category = ExpenseCategory(
            id=2, name="Travel", daily_budget=limit,
            monthly_budget=Decimal("1000000.00"), currency="EUR",
        )
        validator, _ = build(FakeAggregator(category_daily=current))

        events = validator.validate(1, category, make_expense(amount), amount)

        assert (len(events) == 1) == (current + amount > limit)


# =========================================================================
# Category windows
# =========================================================================


class TestCategoryWindows:
    def test_daily_and_monthly_emit_independently(self):
        category = ExpenseCategory(
            id=2, name="Travel", daily_budget=Decimal("100.00"),
            monthly_budget=Decimal("1000.00"), currency="EUR",
        )
        aggregator = FakeAggregator(
            category_daily=Decimal("90.00"), category_monthly=Decimal("995.00"),
        )
        validator, sink = build(aggregator)

        events = validator.validate(1, category, make_expense(Decimal("20.00")), Decimal("20.00"))

        assert [e.window for e in events] == [BudgetWindow.DAILY, BudgetWindow.MONTHLY]
        assert {e.budget_type for e in events} == {BudgetType.CATEGORY}
        assert events[1].year_month == YearMonth(2026, 10)
        assert events[1].new_total == Decimal("1015.00")
        assert len(sink.events) == 2

    def test_monthly_window_spans_calendar_month(self):
        aggregator = FakeAggregator()
        validator, _ = build(aggregator)

        validator.validate(1, TRAVEL, make_expense(Decimal("1.00")), Decimal("1.00"))

        monthly = next(c for c in aggregator.calls if c[0] == "category_monthly")
        assert monthly[3:5] == (date(2026, 10, 1), date(2026, 10, 31))

    def test_own_expense_excluded_from_totals(self):
        aggregator = FakeAggregator()
        validator, _ = build(aggregator)

        validator.validate(1, TRAVEL, make_expense(Decimal("1.00"), expense_id=555), Decimal("1.00"))

        assert aggregator.calls
        assert all(call[-1] == 555 for call in aggregator.calls)


# =========================================================================
# Department scope
# =========================================================================


class TestDepartmentScope:
    def test_department_without_daily_budget_never_emits_daily(self):
        department = Department(
            id=10, name="IT", monthly_budget=Decimal("500.00"), currency="EUR", daily_budget=None,
        )
        aggregator = FakeAggregator(department_daily=Decimal("999999.00"))
        validator, _ = build(aggregator, department)
        amount = Decimal("10000.00")

        events = validator.validate(1, TRAVEL, make_expense(amount), amount)

        department_events = [e for e in events if e.budget_type is BudgetType.DEPARTMENT]
        assert [e.window for e in department_events] == [BudgetWindow.MONTHLY]
        assert department_events[0].scope_name == "IT"
        assert department_events[0].department_id == 10
        assert not aggregator.called("department_daily")

    def test_department_daily_budget_checked_when_set(self):
        department = Department(
            id=10, name="IT", monthly_budget=Decimal("100000.00"), currency="EUR",
            daily_budget=Decimal("200.00"),
        )
        aggregator = FakeAggregator(department_daily=Decimal("150.00"))
        validator, _ = build(aggregator, department)

        events = validator.validate(1, TRAVEL, make_expense(Decimal("60.00")), Decimal("60.00"))

        assert [(e.budget_type, e.window) for e in events] == [
            (BudgetType.DEPARTMENT, BudgetWindow.DAILY),
        ]

    def test_no_department_skips_department_checks(self):
        aggregator = FakeAggregator(department_monthly=Decimal("999999.00"))
        directory = FakeDirectory(IT)
        validator = BudgetValidator.default(aggregator, directory, RecordingSink())

        events = validator.validate(
            1, TRAVEL, make_expense(Decimal("1.00"), department_id=None), Decimal("1.00"),
        )

        assert events == []
        assert directory.lookups == []
        assert not aggregator.called("department_monthly")


# =========================================================================
# Composition and side effects
# =========================================================================


class TestBudgetValidator:
    def test_custom_strategy_list(self):
        aggregator = FakeAggregator(department_monthly=Decimal("999999.00"))
        sink = RecordingSink()
        validator = BudgetValidator([CategoryBudgetValidationStrategy(aggregator)], sink)

        events = validator.validate(1, TRAVEL, make_expense(Decimal("1.00")), Decimal("1.00"))

        assert events == []
        assert not aggregator.called("department_monthly")

    def test_department_strategy_alone(self):
        aggregator = FakeAggregator(department_monthly=Decimal("99999.99"))
        sink = RecordingSink()
        validator = BudgetValidator(
            [DepartmentBudgetValidationStrategy(aggregator, FakeDirectory(IT))], sink,
        )

        events = validator.validate(1, TRAVEL, make_expense(Decimal("0.02")), Decimal("0.02"))

        assert [e.budget_type for e in events] == [BudgetType.DEPARTMENT]

    def test_warning_logged_per_event(self, captured_logs):
        aggregator = FakeAggregator(
            category_daily=Decimal("100.00"), category_monthly=Decimal("100000.00"),
        )
        validator, _ = build(aggregator)

        validator.validate(1, TRAVEL, make_expense(Decimal("1.00")), Decimal("1.00"))

        warnings = [r for r in captured_logs() if r["message"] == "budget_exceeded"]
        assert len(warnings) == 2
        assert {w["window"] for w in warnings} == {"daily", "monthly"}
        assert all(w["level"] == "WARNING" for w in warnings)
