"""
ExpenseWorkflowService -- orchestrates the expense lifecycle.

Responsibility:
    Entry point for every expense operation.  Submission and edits validate
    their fields, resolve reference data, persist, then run the advisory
    budget checks.  Approvals and rejections load the expense, resolve its
    state policy, and delegate to the state machine with a transition
    context.  Reads enforce the employee visibility rule.

Architecture position:
    Kernel > Services.  Composes ExpenseStore (writes), the selectors
    (reads), the ExpenseStateMachine (transition policy) and an optional
    BudgetValidator.

Invariants enforced:
    - Only the owner may update or delete an expense, and only while it
      is pending.  Ownership is checked before status.
    - Employees read and list only their own expenses.
    - Amounts are finite, positive and whole cents; they are stored and
      budget-checked at two decimal places.
    - Budget events never abort an operation.
    - Domain errors propagate unchanged; nothing is retried.

Failure modes:
    - ExpenseNotFoundError, CategoryNotFoundError, CurrencyNotFoundError,
      UserNotFoundError for unresolved references.
    - InvalidExpenseError for malformed fields.
    - UnauthorizedExpenseAccessError, InvalidStatusTransitionError from
      the access rules and the state machine.
    - OptimisticLockError on a concurrent write.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from expense_kernel.domain.budget import BudgetExceededEvent
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.expense import (
    Actor,
    Expense,
    ExpenseAction,
    ExpenseCategory,
    ExpenseChanges,
    ExpenseFilter,
    ExpenseStatus,
    NewExpense,
    UserRole,
)
from expense_kernel.domain.expense_state import ExpenseStateMachine, TransitionContext
from expense_kernel.exceptions import (
    ExpenseNotFoundError,
    InvalidExpenseError,
    InvalidStatusTransitionError,
    UnauthorizedExpenseAccessError,
)
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.selectors.expense_selector import ExpenseSelector
from expense_kernel.selectors.reference_selector import ReferenceSelector
from expense_kernel.services.base import BaseService
from expense_kernel.services.budget_validator import BudgetValidator
from expense_kernel.services.expense_store import ExpenseStore

logger = get_logger("services.expense_workflow")

MAX_DESCRIPTION_LENGTH = 500
MAX_RECEIPT_URL_LENGTH = 1000
# Numeric(15, 2): thirteen integer digits, amounts stored to the cent.
MAX_AMOUNT = Decimal("10000000000000")
CENT = Decimal("0.01")


class ExpenseWorkflowService(BaseService[ExpenseModel]):
    """
    Expense lifecycle operations within the caller's transaction.

    ``validator=None`` disables budget checks.
    """

    def __init__(
        self,
        session: Session,
        state_machine: ExpenseStateMachine,
        validator: BudgetValidator | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._machine = state_machine
        self._validator = validator
        self._clock = clock or SystemClock()
        self._store = ExpenseStore(session)
        self._expenses = ExpenseSelector(session)
        self._references = ReferenceSelector(session)

    # =========================================================================
    # Submission and edits
    # =========================================================================

    def create(self, owner: Actor, request: NewExpense) -> Expense:
        with LogContext.bind(actor_id=owner.id):
            self._validate_fields(
                amount=request.amount.quantize(CENT),
                description=request.description,
                currency=request.currency,
                receipt_url=request.receipt_url,
                expense_date=request.expense_date,
            )
            stored_owner = self._references.get_actor(owner.id)
            category = self._references.get_category(request.category_id)
            currency = self._references.get_currency(request.currency)

            expense = Expense(
                id=None,
                amount=request.amount,
                expense_date=request.expense_date,
                user_id=stored_owner.id,
                category_id=category.id,
                currency=currency,
                status=ExpenseStatus.PENDING,
                description=request.description,
                department_id=stored_owner.department_id,
                receipt_url=request.receipt_url,
            )
            saved = self._store.save_expense(expense)

            with LogContext.bind(expense_id=saved.id):
                logger.info(
                    "expense_created",
                    extra={
                        "user_id": saved.user_id,
                        "category_id": saved.category_id,
                        "amount": saved.amount,
                        "currency": saved.currency,
                    },
                )
                self._check_budgets(saved, category)
            return saved

    def update(self, expense_id: int, actor: Actor, changes: ExpenseChanges) -> Expense:
        with LogContext.bind(actor_id=actor.id, expense_id=expense_id):
            expense = self._store.find_expense_by_id(expense_id, for_update=True)
            self._require_editable(expense, actor, "update")

            self._validate_fields(
                amount=changes.amount,
                description=changes.description,
                currency=changes.currency,
                receipt_url=changes.receipt_url,
                expense_date=changes.expense_date,
            )
            category = self._references.get_category(
                changes.category_id if changes.category_id is not None else expense.category_id
            )
            if changes.currency is not None:
                changes = replace(changes, currency=self._references.get_currency(changes.currency))
            if changes.amount is not None:
                changes = replace(changes, amount=changes.amount.quantize(CENT))

            saved = self._store.save_expense(changes.apply_to(expense))
            logger.info(
                "expense_updated",
                extra={"amount": saved.amount, "category_id": saved.category_id},
            )
            self._check_budgets(saved, category)
            return saved

    def delete(self, expense_id: int, actor: Actor) -> None:
        with LogContext.bind(actor_id=actor.id, expense_id=expense_id):
            expense = self._store.find_expense_by_id(expense_id, for_update=True)
            self._require_editable(expense, actor, "delete")
            self._store.delete_expense(expense)

    # =========================================================================
    # Workflow transitions
    # =========================================================================

    def approve(self, expense_id: int, actor: Actor) -> Expense:
        return self._transition(expense_id, actor, ExpenseAction.APPROVE)

    def reject(self, expense_id: int, actor: Actor) -> Expense:
        return self._transition(expense_id, actor, ExpenseAction.REJECT)

    def available_actions(self, expense_id: int, actor: Actor) -> tuple[ExpenseAction, ...]:
        """Actions ``actor`` could perform right now.  Never mutates."""
        expense = self._load(expense_id)
        return self._machine.available_actions(expense, actor)

    def _transition(self, expense_id: int, actor: Actor, action: ExpenseAction) -> Expense:
        with LogContext.bind(actor_id=actor.id, expense_id=expense_id):
            expense = self._store.find_expense_by_id(expense_id, for_update=True)
            context = TransitionContext(expense=expense, actor=actor, writer=self._store)
            if action is ExpenseAction.APPROVE:
                return self._machine.approve(context)
            return self._machine.reject(context)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, expense_id: int, actor: Actor) -> Expense:
        expense = self._load(expense_id)
        if actor.has_role(UserRole.EMPLOYEE) and not expense.is_owned_by(actor):
            logger.warning(
                "expense_access_denied",
                extra={"expense_id": expense_id, "actor_id": actor.id, "owner_id": expense.user_id},
            )
            raise UnauthorizedExpenseAccessError(
                actor.id, expense_id, "You do not have permission to access this expense",
            )
        return expense

    def list_expenses(self, actor: Actor, filters: ExpenseFilter | None = None) -> list[Expense]:
        filters = filters or ExpenseFilter()
        if actor.has_role(UserRole.EMPLOYEE):
            filters = replace(filters, user_id=actor.id)
        return self._expenses.list_expenses(filters)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load(self, expense_id: int) -> Expense:
        expense = self._expenses.get(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def _check_budgets(
        self, expense: Expense, category: ExpenseCategory,
    ) -> list[BudgetExceededEvent]:
        if self._validator is None:
            return []
        return self._validator.validate(expense.user_id, category, expense, expense.amount)

    @staticmethod
    def _require_editable(expense: Expense, actor: Actor, action: str) -> None:
        if not expense.is_owned_by(actor):
            logger.warning(
                "expense_modification_denied",
                extra={"expense_id": expense.id, "actor_id": actor.id, "owner_id": expense.user_id},
            )
            raise UnauthorizedExpenseAccessError(
                actor.id, expense.id, "You do not have permission to modify this expense",
            )
        if expense.status is not ExpenseStatus.PENDING:
            raise InvalidStatusTransitionError(
                expense.status.value,
                action,
                f"Cannot {action} expense with status {expense.status.value}. "
                f"Only pending expenses can be {action}d.",
            )

    def _validate_fields(
        self,
        *,
        amount: Decimal | None,
        description: str | None,
        currency: str | None,
        receipt_url: str | None,
        expense_date: date | None,
    ) -> None:
        """Check whichever fields are present.  ``None`` means unchanged."""
        if amount is not None:
            if not amount.is_finite():
                raise InvalidExpenseError("amount", "must be a finite number")
            if amount <= 0:
                raise InvalidExpenseError("amount", "must be positive")
            if amount >= MAX_AMOUNT:
                raise InvalidExpenseError("amount", f"must be less than {MAX_AMOUNT}")
            if amount != amount.quantize(CENT):
                raise InvalidExpenseError("amount", "must have at most two decimal places")
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidExpenseError(
                "description", f"must not exceed {MAX_DESCRIPTION_LENGTH} characters",
            )
        if currency is not None and (len(currency) != 3 or not currency.isalpha()):
            raise InvalidExpenseError("currency", "must be a three-letter code")
        if receipt_url is not None and len(receipt_url) > MAX_RECEIPT_URL_LENGTH:
            raise InvalidExpenseError(
                "receipt_url", f"must not exceed {MAX_RECEIPT_URL_LENGTH} characters",
            )
        if expense_date is not None and expense_date > self._clock.today():
            raise InvalidExpenseError("expense_date", "cannot be in the future")
