"""
EventPublisher -- in-process fan-out of budget events.

The validator publishes to one sink; the publisher forwards each event to
every subscriber in subscription order.  A subscriber that raises aborts
the remaining deliveries and the error reaches the caller.
"""

from collections.abc import Callable

from expense_kernel.domain.budget import BudgetExceededEvent
from expense_kernel.logging_config import get_logger

logger = get_logger("services.event_publisher")

BudgetEventHandler = Callable[[BudgetExceededEvent], object]


class EventPublisher:
    """Synchronous ``BudgetEventSink`` with explicit subscribers."""

    def __init__(self) -> None:
        self._handlers: list[BudgetEventHandler] = []

    def subscribe(self, handler: BudgetEventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: BudgetExceededEvent) -> None:
        logger.debug(
            "budget_event_published",
            extra={
                "budget_type": event.budget_type,
                "window": event.window,
                "expense_id": event.expense_id,
                "subscriber_count": len(self._handlers),
            },
        )
        for handler in self._handlers:
            handler(event)
