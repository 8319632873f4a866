"""Tests for structured logging (expense_kernel/logging_config.py)."""

import json
import logging
import threading
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from expense_kernel.domain.budget import BudgetType, BudgetWindow
from expense_kernel.domain.expense import ExpenseStatus, NewExpense
from expense_kernel.exceptions import (
    InvalidStatusTransitionError,
    UnauthorizedExpenseAccessError,
)
from expense_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def json_lines():
    """Install a JSON handler at DEBUG and return a reader for its lines."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler, level=logging.DEBUG)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


def _only(records, message):
    matches = [r for r in records if r["message"] == message]
    assert len(matches) == 1, [r["message"] for r in records]
    return matches[0]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_budget_payload_keeps_scale(self, json_lines):
        get_logger("services.budget_validator").warning(
            "budget_exceeded",
            extra={
                "budget_type": BudgetType.DEPARTMENT,
                "window": BudgetWindow.MONTHLY,
                "current_total": Decimal("60.00"),
                "new_total": Decimal("100.10"),
                "on_date": date(2026, 10, 19),
            },
        )

        record = _only(json_lines(), "budget_exceeded")
        assert record["level"] == "WARNING"
        assert record["logger"] == "expense_kernel.services.budget_validator"
        assert record["budget_type"] == "department"
        assert record["window"] == "monthly"
        assert record["current_total"] == "60.00"
        assert record["new_total"] == "100.10"
        assert record["on_date"] == "2026-10-19"

    def test_bound_ids_attached(self, json_lines):
        logger = get_logger("test")
        with LogContext.bind(actor_id=3, expense_id=101):
            logger.info("inside")
        logger.info("outside")

        inside, outside = json_lines()
        assert (inside["actor_id"], inside["expense_id"]) == ("3", "101")
        assert "actor_id" not in outside
        assert "expense_id" not in outside

    def test_transition_error_fields(self, json_lines):
        try:
            raise InvalidStatusTransitionError.terminal("rejected", "approve")
        except InvalidStatusTransitionError:
            get_logger("test").error("transition_failed", exc_info=True)

        record = _only(json_lines(), "transition_failed")
        assert record["exc_type"] == "InvalidStatusTransitionError"
        assert record["exc_code"] == "INVALID_STATUS_TRANSITION"
        assert record["exc_current_status"] == "rejected"
        assert record["exc_action"] == "approve"
        assert "terminal status rejected" in record["exc_message"]
        assert "Traceback" in record["traceback"]

    def test_authorization_error_fields(self, json_lines):
        try:
            raise UnauthorizedExpenseAccessError(9, 101, "not your department")
        except UnauthorizedExpenseAccessError:
            get_logger("test").warning("denied", exc_info=True)

        record = _only(json_lines(), "denied")
        assert record["exc_code"] == "UNAUTHORIZED_EXPENSE_ACCESS"
        assert record["exc_actor_id"] == 9
        assert record["exc_expense_id"] == 101
        assert record["exc_reason"] == "not your department"

    def test_foreign_exception_has_no_code(self, json_lines):
        try:
            raise KeyError("category")
        except KeyError:
            get_logger("test").error("lookup_failed", exc_info=True)

        record = _only(json_lines(), "lookup_failed")
        assert record["exc_type"] == "KeyError"
        assert "exc_code" not in record

    def test_formatter_usable_standalone(self):
        record = logging.makeLogRecord({
            "name": "expense_kernel.test",
            "levelname": "INFO",
            "msg": "expense_deleted",
            "expense_id": 5,
        })
        payload = json.loads(StructuredFormatter().format(record))
        assert payload["message"] == "expense_deleted"
        assert payload["expense_id"] == 5


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_nested_bind_restores_outer(self):
        with LogContext.bind(actor_id=1, expense_id=10):
            with LogContext.bind(expense_id=11):
                assert LogContext.get_all() == {"actor_id": "1", "expense_id": "11"}
            assert LogContext.get_all() == {"actor_id": "1", "expense_id": "10"}
        assert LogContext.get_all() == {}

    def test_none_and_unknown_fields_ignored(self):
        with LogContext.bind(actor_id=None, status="pending"):
            assert LogContext.get_all() == {}

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(expense_id=7):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_context_is_per_thread(self):
        seen = {}

        def worker():
            seen["context"] = LogContext.get_all()

        with LogContext.bind(actor_id=1):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen["context"] == {}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        root = logging.getLogger("expense_kernel")
        assert [h for h in root.handlers if h in (first, second)] == [first]
        assert isinstance(first.formatter, StructuredFormatter)

    def test_level_filters_debug(self):
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream), level="INFO")
        logger = get_logger("services.budget_validator")
        logger.debug("budget_validation_completed")
        logger.info("kept")

        messages = [json.loads(line)["message"] for line in stream.getvalue().splitlines()]
        assert messages == ["kept"]

    def test_reset_allows_reconfiguration(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        reset_logging()
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=second)

        root = logging.getLogger("expense_kernel")
        assert second in root.handlers
        assert first not in root.handlers


# ---------------------------------------------------------------------------
# Kernel log output
# ---------------------------------------------------------------------------


class TestWorkflowLogging:
    def test_creation_and_budget_warning(self, json_lines, org, workflow):
        expense = workflow.service.create(
            org.employee,
            NewExpense(
                category_id=org.travel.id,
                currency="EUR",
                amount=Decimal("120.00"),
                expense_date=date(2026, 10, 19),
            ),
        )
        records = json_lines()

        created = _only(records, "expense_created")
        assert created["actor_id"] == str(org.employee.id)
        assert created["expense_id"] == str(expense.id)
        assert created["amount"] == "120.00"

        warning = _only(records, "budget_exceeded")
        assert warning["level"] == "WARNING"
        assert warning["scope_name"] == "Travel"
        assert warning["budget_limit"] == "100.00"
        assert warning["period"] == "2026-10-19"
        assert LogContext.get_all() == {}

    def test_transition_logged_with_statuses(self, json_lines, org, workflow, make_expense):
        expense = make_expense(org.employee, org.travel)

        workflow.service.approve(expense.id, org.alice)

        applied = _only(json_lines(), "expense_transition_applied")
        assert applied["from_status"] == ExpenseStatus.PENDING.value
        assert applied["to_status"] == ExpenseStatus.APPROVED_BY_MANAGER.value
        assert applied["action"] == "approve"

    def test_refused_transition_logs_reason(self, json_lines, org, workflow, make_expense):
        expense = make_expense(org.employee, org.travel)

        with pytest.raises(UnauthorizedExpenseAccessError):
            workflow.service.approve(expense.id, org.dave)

        refused = _only(json_lines(), "expense_transition_unauthorized")
        assert refused["level"] == "WARNING"
        assert refused["actor_id"] == str(org.dave.id)
        assert "your department" in refused["reason"]
