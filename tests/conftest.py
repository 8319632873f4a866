"""
Pytest fixtures for the expense kernel test suite.

Provides:
- Structured logging configured for the whole run, plus ``captured_logs``
- A fresh in-memory SQLite database per test
- Factories for departments, users, currencies, categories and expenses
- A standard organisation (``org``) and a wired workflow (``workflow``)
- ``RecordingSink`` for asserting on published budget events
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from expense_kernel.bootstrap import build_expense_workflow
from expense_kernel.config import WorkflowSettings
from expense_kernel.db.engine import build_engine, create_tables
from expense_kernel.domain.budget import BudgetExceededEvent
from expense_kernel.domain.clock import DeterministicClock
from expense_kernel.domain.expense import Actor, ExpenseStatus, UserRole
from expense_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from expense_kernel.models import (
    CurrencyModel,
    DepartmentModel,
    ExpenseCategoryModel,
    ExpenseModel,
    UserModel,
)

TODAY = date(2026, 10, 19)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture expense_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.service.approve(expense_id, manager)
            logs = captured_logs()
            assert any(r["message"] == "expense_transition_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("expense_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = build_engine("sqlite:///:memory:")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    db_session = SessionLocal()
    try:
        yield db_session
    finally:
        db_session.rollback()
        db_session.close()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_department(session):
    def _make(
        name: str,
        monthly_budget: Decimal = Decimal("10000.00"),
        daily_budget: Decimal | None = None,
        currency: str = "EUR",
    ) -> DepartmentModel:
        department = DepartmentModel(
            name=name,
            monthly_budget=monthly_budget,
            daily_budget=daily_budget,
            currency=currency,
        )
        session.add(department)
        session.flush()
        return department

    return _make


@pytest.fixture
def make_user(session):
    def _make(
        username: str,
        role: UserRole = UserRole.EMPLOYEE,
        department: DepartmentModel | None = None,
    ) -> Actor:
        user = UserModel(
            username=username,
            role=role.value,
            department_id=department.id if department is not None else None,
        )
        session.add(user)
        session.flush()
        return user.to_actor()

    return _make


@pytest.fixture
def make_currency(session):
    def _make(code: str = "EUR", exchange_rate: Decimal = Decimal("1")) -> CurrencyModel:
        currency = CurrencyModel(code=code, exchange_rate=exchange_rate)
        session.add(currency)
        session.flush()
        return currency

    return _make


@pytest.fixture
def make_category(session):
    def _make(
        name: str,
        daily_budget: Decimal = Decimal("100.00"),
        monthly_budget: Decimal = Decimal("1000.00"),
        currency: str = "EUR",
    ) -> ExpenseCategoryModel:
        category = ExpenseCategoryModel(
            name=name,
            daily_budget=daily_budget,
            monthly_budget=monthly_budget,
            currency=currency,
        )
        session.add(category)
        session.flush()
        return category

    return _make


@pytest.fixture
def make_expense(session):
    """Insert an expense row directly, bypassing the workflow."""

    def _make(
        owner: Actor,
        category: ExpenseCategoryModel,
        amount: Decimal = Decimal("50.00"),
        expense_date: date = TODAY,
        status: ExpenseStatus = ExpenseStatus.PENDING,
        expense_id: int | None = None,
        currency: str = "EUR",
    ):
        model = ExpenseModel(
            id=expense_id,
            amount=amount,
            description="",
            expense_date=expense_date,
            user_id=owner.id,
            category_id=category.id,
            currency=currency,
            status=status.value,
        )
        session.add(model)
        session.flush()
        return model.to_dto()

    return _make


@dataclass
class Org:
    """Standard test organisation: IT and HR, one currency, one category."""

    it: DepartmentModel
    hr: DepartmentModel
    travel: ExpenseCategoryModel
    employee: Actor
    colleague: Actor
    alice: Actor
    dave: Actor
    bob: Actor


@pytest.fixture
def org(make_department, make_user, make_currency, make_category) -> Org:
    it = make_department("IT")
    hr = make_department("HR")
    make_currency("EUR")
    make_currency("USD", Decimal("1.08"))
    travel = make_category("Travel")
    return Org(
        it=it,
        hr=hr,
        travel=travel,
        employee=make_user("erin", UserRole.EMPLOYEE, it),
        colleague=make_user("frank", UserRole.EMPLOYEE, it),
        alice=make_user("alice", UserRole.MANAGER, it),
        dave=make_user("dave", UserRole.MANAGER, hr),
        bob=make_user("bob", UserRole.FINANCE),
    )


@pytest.fixture
def workflow(session, clock):
    return build_expense_workflow(session, WorkflowSettings(), clock=clock)


# =============================================================================
# Fakes
# =============================================================================


class RecordingSink:
    """BudgetEventSink that keeps every published event."""

    def __init__(self):
        self.events: list[BudgetExceededEvent] = []

    def publish(self, event: BudgetExceededEvent) -> None:
        self.events.append(event)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()
