"""
Composition root (``expense_kernel.bootstrap``).

Builds the expense workflow around a caller-owned session: the shared
state table, the spend selector, the event publisher with the alert
service subscribed, the budget validator and the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from expense_kernel.config import WorkflowSettings
from expense_kernel.domain.clock import Clock
from expense_kernel.domain.expense_state import ExpenseStateMachine
from expense_kernel.logging_config import get_logger
from expense_kernel.selectors.reference_selector import ReferenceSelector
from expense_kernel.selectors.spend_selector import SpendSelector
from expense_kernel.services.alert_service import AlertService
from expense_kernel.services.budget_validator import BudgetValidator
from expense_kernel.services.event_publisher import EventPublisher
from expense_kernel.services.expense_workflow import ExpenseWorkflowService

logger = get_logger("bootstrap")

# The state table is read-only; one instance serves every session.
_DEFAULT_STATE_MACHINE = ExpenseStateMachine()


@dataclass(frozen=True)
class ExpenseWorkflow:
    """Wired components for one session."""

    service: ExpenseWorkflowService
    alerts: AlertService
    publisher: EventPublisher
    validator: BudgetValidator | None
    state_machine: ExpenseStateMachine


def build_expense_workflow(
    session: Session,
    settings: WorkflowSettings | None = None,
    *,
    clock: Clock | None = None,
    state_machine: ExpenseStateMachine | None = None,
) -> ExpenseWorkflow:
    settings = settings or WorkflowSettings()
    machine = state_machine or _DEFAULT_STATE_MACHINE

    publisher = EventPublisher()
    alerts = AlertService(session)
    publisher.subscribe(alerts.handle_budget_exceeded)

    validator = None
    if settings.budget_checks_enabled:
        validator = BudgetValidator.default(
            SpendSelector(session), ReferenceSelector(session), publisher,
        )

    service = ExpenseWorkflowService(session, machine, validator, clock=clock)
    logger.debug(
        "expense_workflow_built",
        extra={"budget_checks_enabled": settings.budget_checks_enabled},
    )
    return ExpenseWorkflow(
        service=service,
        alerts=alerts,
        publisher=publisher,
        validator=validator,
        state_machine=machine,
    )
