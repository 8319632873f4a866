"""
Expense approval state machine (``expense_kernel.domain.expense_state``).

Responsibility
--------------
Each ``ExpenseStatus`` maps to one ``ExpenseState`` policy object holding
the status, its legal outgoing transitions, the target of ``approve`` and
the authorization predicate shared by ``approve`` and ``reject``.  The
``ExpenseStateMachine`` owns the read-only status -> state table.

Architecture position
---------------------
**Kernel domain layer**.  No database access: persistence reaches the
state objects only through the ``ExpenseWriter`` protocol carried by the
``TransitionContext``.

Invariants enforced
-------------------
* ``EXPENSE_TRANSITIONS`` defines the only valid status transitions.
  ``approved_by_finance`` and ``rejected`` have no outgoing edges.
* A transition applies only when the target is in the current state's
  valid set AND the actor passes the state's authorization predicate.
* Terminal states check transition legality first: any action on them
  raises ``InvalidStatusTransitionError``, never an authorization error.
* State objects are frozen and stateless; one table is shared by every
  request.

Failure modes
-------------
* ``UnauthorizedExpenseAccessError`` -- wrong role, or a manager outside
  the owner's department.
* ``InvalidStatusTransitionError`` -- terminal status or illegal target.
* ``UnknownExpenseStateError`` -- status missing from the table.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol

from expense_kernel.domain.expense import (
    Actor,
    Expense,
    ExpenseAction,
    ExpenseStatus,
    UserRole,
)
from expense_kernel.exceptions import (
    InvalidStatusTransitionError,
    UnauthorizedExpenseAccessError,
    UnknownExpenseStateError,
)
from expense_kernel.logging_config import get_logger

logger = get_logger("domain.expense_state")


# =========================================================================
# Transition table
# =========================================================================


EXPENSE_TRANSITIONS: Mapping[ExpenseStatus, frozenset[ExpenseStatus]] = MappingProxyType({
    ExpenseStatus.PENDING: frozenset({
        ExpenseStatus.APPROVED_BY_MANAGER,
        ExpenseStatus.REJECTED,
    }),
    ExpenseStatus.APPROVED_BY_MANAGER: frozenset({
        ExpenseStatus.APPROVED_BY_FINANCE,
        ExpenseStatus.REJECTED,
    }),
    ExpenseStatus.APPROVED_BY_FINANCE: frozenset(),
    ExpenseStatus.REJECTED: frozenset(),
})

TERMINAL_EXPENSE_STATUSES: frozenset[ExpenseStatus] = frozenset(
    status for status, targets in EXPENSE_TRANSITIONS.items() if not targets
)


# =========================================================================
# Transition context
# =========================================================================


class ExpenseWriter(Protocol):
    """Persistence handle a transition uses to store the new status."""

    def save_expense(self, expense: Expense) -> Expense:
        ...


@dataclass
class TransitionContext:
    """Binds the expense, the acting user and the persistence handle.

    Carries no lifecycle of its own; it exists for the duration of one
    ``approve``/``reject`` call.
    """

    expense: Expense
    actor: Actor
    writer: ExpenseWriter

    def set_status(self, new_status: ExpenseStatus) -> None:
        logger.info(
            "expense_status_transition",
            extra={
                "expense_id": self.expense.id,
                "from_status": self.expense.status.value,
                "to_status": new_status.value,
                "actor_id": self.actor.id,
            },
        )
        self.expense = self.expense.with_status(new_status)

    def save(self) -> Expense:
        self.expense = self.writer.save_expense(self.expense)
        return self.expense


# =========================================================================
# Authorization predicates
# =========================================================================

# A predicate returns None when the actor is allowed, otherwise the reason.
Authorizer = Callable[[Actor, Expense, ExpenseAction], "str | None"]


def authorize_department_manager(
    actor: Actor, expense: Expense, action: ExpenseAction,
) -> str | None:
    """Managers may act only on expenses of employees in their department."""
    if not actor.has_role(UserRole.MANAGER):
        return f"Only managers can {action.value} pending expenses"
    if actor.department_id is None or actor.department_id != expense.department_id:
        return "You can only process expenses for employees in your department"
    return None


def authorize_finance(
    actor: Actor, expense: Expense, action: ExpenseAction,
) -> str | None:
    """Finance users may act on any manager-approved expense."""
    if not actor.has_role(UserRole.FINANCE):
        return f"Only finance users can {action.value} expenses at this stage"
    return None


def deny_all(actor: Actor, expense: Expense, action: ExpenseAction) -> str | None:
    return "The approval workflow for this expense is closed"


# =========================================================================
# State policy
# =========================================================================


@dataclass(frozen=True)
class ExpenseState:
    """Policy for one status: valid targets plus the authorization rule.

    ``reject`` always targets ``rejected``; ``approve`` targets
    ``approve_target``.  A state without targets is terminal.
    """

    status: ExpenseStatus
    valid_transitions: frozenset[ExpenseStatus]
    authorize: Authorizer
    approve_target: ExpenseStatus | None = None

    @property
    def is_terminal(self) -> bool:
        return not self.valid_transitions

    def can_transition_to(self, status: ExpenseStatus) -> bool:
        return status in self.valid_transitions

    def target_for(self, action: ExpenseAction) -> ExpenseStatus | None:
        if action is ExpenseAction.APPROVE:
            return self.approve_target
        return ExpenseStatus.REJECTED

    def validate_transition(self, target: ExpenseStatus | None) -> None:
        if target is None or not self.can_transition_to(target):
            raise InvalidStatusTransitionError.illegal_target(
                self.status.value, target.value if target else "none",
            )

    def permits(self, action: ExpenseAction, actor: Actor, expense: Expense) -> bool:
        """Pure check: would ``action`` by ``actor`` succeed right now?"""
        target = self.target_for(action)
        if self.is_terminal or target is None or not self.can_transition_to(target):
            return False
        return self.authorize(actor, expense, action) is None

    def approve(self, context: TransitionContext) -> Expense:
        return self._apply(context, ExpenseAction.APPROVE)

    def reject(self, context: TransitionContext) -> Expense:
        return self._apply(context, ExpenseAction.REJECT)

    def _apply(self, context: TransitionContext, action: ExpenseAction) -> Expense:
        expense = context.expense
        logger.debug(
            "expense_transition_requested",
            extra={
                "expense_id": expense.id,
                "status": self.status.value,
                "action": action.value,
                "actor_id": context.actor.id,
                "actor_role": context.actor.role.value,
            },
        )

        if self.is_terminal:
            raise InvalidStatusTransitionError.terminal(self.status.value, action.value)

        reason = self.authorize(context.actor, expense, action)
        if reason is not None:
            logger.warning(
                "expense_transition_unauthorized",
                extra={
                    "expense_id": expense.id,
                    "status": self.status.value,
                    "action": action.value,
                    "actor_id": context.actor.id,
                    "reason": reason,
                },
            )
            raise UnauthorizedExpenseAccessError(context.actor.id, expense.id, reason)

        target = self.target_for(action)
        self.validate_transition(target)
        context.set_status(target)
        saved = context.save()

        logger.info(
            "expense_transition_applied",
            extra={
                "expense_id": saved.id,
                "from_status": self.status.value,
                "to_status": saved.status.value,
                "action": action.value,
                "actor_id": context.actor.id,
            },
        )
        return saved


def build_expense_states() -> dict[ExpenseStatus, ExpenseState]:
    """Build the default status -> state table."""
    return {
        ExpenseStatus.PENDING: ExpenseState(
            status=ExpenseStatus.PENDING,
            valid_transitions=EXPENSE_TRANSITIONS[ExpenseStatus.PENDING],
            authorize=authorize_department_manager,
            approve_target=ExpenseStatus.APPROVED_BY_MANAGER,
        ),
        ExpenseStatus.APPROVED_BY_MANAGER: ExpenseState(
            status=ExpenseStatus.APPROVED_BY_MANAGER,
            valid_transitions=EXPENSE_TRANSITIONS[ExpenseStatus.APPROVED_BY_MANAGER],
            authorize=authorize_finance,
            approve_target=ExpenseStatus.APPROVED_BY_FINANCE,
        ),
        ExpenseStatus.APPROVED_BY_FINANCE: ExpenseState(
            status=ExpenseStatus.APPROVED_BY_FINANCE,
            valid_transitions=EXPENSE_TRANSITIONS[ExpenseStatus.APPROVED_BY_FINANCE],
            authorize=deny_all,
        ),
        ExpenseStatus.REJECTED: ExpenseState(
            status=ExpenseStatus.REJECTED,
            valid_transitions=EXPENSE_TRANSITIONS[ExpenseStatus.REJECTED],
            authorize=deny_all,
        ),
    }


# =========================================================================
# State machine
# =========================================================================


class ExpenseStateMachine:
    """Read-only lookup from status to state policy.

    Build once at startup and inject wherever transitions are executed.
    """

    def __init__(self, states: Mapping[ExpenseStatus, ExpenseState] | None = None):
        table = dict(states) if states is not None else build_expense_states()
        for status, state in table.items():
            if state.status is not status:
                raise ValueError(
                    f"State registered under {status.value} reports {state.status.value}"
                )
        self._states: Mapping[ExpenseStatus, ExpenseState] = MappingProxyType(table)

    def state_for(self, status: ExpenseStatus) -> ExpenseState:
        state = self._states.get(status)
        if state is None:
            raise UnknownExpenseStateError(getattr(status, "value", str(status)))
        return state

    def available_actions(self, expense: Expense, actor: Actor) -> tuple[ExpenseAction, ...]:
        state = self.state_for(expense.status)
        return tuple(
            action for action in ExpenseAction if state.permits(action, actor, expense)
        )

    def approve(self, context: TransitionContext) -> Expense:
        return self.state_for(context.expense.status).approve(context)

    def reject(self, context: TransitionContext) -> Expense:
        return self.state_for(context.expense.status).reject(context)
