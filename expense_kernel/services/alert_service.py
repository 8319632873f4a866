"""
AlertService -- persists budget alerts and lets finance resolve them.

Responsibility:
    Subscribed to the event publisher, it turns each ``BudgetExceededEvent``
    into an alert row.  One expense has at most one alert: later events for
    the same expense append their message and widen the type to ``all``
    when a second scope fires.  Finance users list and resolve alerts.

Invariants enforced:
    - One alert per expense (uq_alert_expense).
    - Merged messages are joined with "; " in arrival order.
    - A resolved alert receiving a new event is reopened with that event's
      message and type.
    - Only finance users may list or resolve alerts.

Failure modes:
    - UnauthorizedExpenseAccessError for non-finance actors.
    - AlertNotFoundError for an unknown alert id.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_kernel.domain.budget import (
    AlertStatus,
    AlertType,
    BudgetAlert,
    BudgetExceededEvent,
    format_budget_message,
)
from expense_kernel.domain.expense import Actor, UserRole
from expense_kernel.exceptions import AlertNotFoundError, UnauthorizedExpenseAccessError
from expense_kernel.logging_config import get_logger
from expense_kernel.models.alert import AlertModel
from expense_kernel.selectors.expense_selector import AlertSelector
from expense_kernel.services.base import BaseService

logger = get_logger("services.alert")


class AlertService(BaseService[AlertModel]):
    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = AlertSelector(session)

    def handle_budget_exceeded(self, event: BudgetExceededEvent) -> BudgetAlert | None:
        """Create or merge the alert for ``event.expense_id``."""
        if event.expense_id is None:
            logger.warning(
                "budget_alert_skipped_no_expense",
                extra={"budget_type": event.budget_type, "window": event.window},
            )
            return None

        message = format_budget_message(event)
        alert_type = AlertType.for_budget(event.budget_type)

        model = self.session.scalars(
            select(AlertModel).where(AlertModel.expense_id == event.expense_id)
        ).one_or_none()

        if model is None:
            model = AlertModel(
                expense_id=event.expense_id,
                alert_type=alert_type.value,
                message=message,
                status=AlertStatus.NEW.value,
            )
            self.session.add(model)
            logger.info(
                "budget_alert_created",
                extra={"expense_id": event.expense_id, "alert_type": alert_type},
            )
        elif model.status == AlertStatus.RESOLVED.value:
            model.alert_type = alert_type.value
            model.message = message
            model.status = AlertStatus.NEW.value
            logger.info(
                "budget_alert_reopened",
                extra={"alert_id": model.id, "expense_id": event.expense_id},
            )
        else:
            if model.alert_type != alert_type.value:
                model.alert_type = AlertType.ALL.value
            model.message = f"{model.message}; {message}"
            logger.info(
                "budget_alert_merged",
                extra={
                    "alert_id": model.id,
                    "expense_id": event.expense_id,
                    "alert_type": model.alert_type,
                },
            )

        self.session.flush()
        return model.to_dto()

    def list_alerts(self, actor: Actor, status: AlertStatus | None = None) -> list[BudgetAlert]:
        self._require_finance(actor, "view budget alerts")
        return self._selector.list_alerts(status)

    def resolve_alert(self, alert_id: int, actor: Actor) -> BudgetAlert:
        self._require_finance(actor, "resolve budget alerts")
        model = self.session.get(AlertModel, alert_id)
        if model is None:
            raise AlertNotFoundError(alert_id)

        model.status = AlertStatus.RESOLVED.value
        self.session.flush()
        logger.info(
            "budget_alert_resolved",
            extra={"alert_id": alert_id, "expense_id": model.expense_id, "actor_id": actor.id},
        )
        return model.to_dto()

    @staticmethod
    def _require_finance(actor: Actor, what: str) -> None:
        if not actor.has_role(UserRole.FINANCE):
            raise UnauthorizedExpenseAccessError(
                actor.id, None, f"Only finance users can {what}",
            )
