"""
Typed exception hierarchy for the expense kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe) and carries its context as
attributes rather than only inside the message string.  ``http_status`` is
a hint for the outer HTTP layer; the kernel itself never builds responses.

    ExpenseKernelError (base)
    |
    +-- NotFoundError                        404
    |   +-- ExpenseNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- CurrencyNotFoundError
    |   +-- DepartmentNotFoundError
    |   +-- UserNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- AuthorizationError                   403
    |   +-- UnauthorizedExpenseAccessError
    |
    +-- WorkflowError                        400
    |   +-- InvalidStatusTransitionError
    |   +-- UnknownExpenseStateError
    |
    +-- ValidationError                      400
    |   +-- InvalidExpenseError
    |
    +-- ConcurrencyError                     409
    |   +-- OptimisticLockError
    |
    +-- ConfigurationError
        +-- InvalidConfigurationError

Budget overruns have no exception class: exceeding a budget is an expected
outcome reported through ``BudgetExceededEvent``, never raised.

Handling pattern::

    try:
        workflow.approve(expense_id, actor)
    except InvalidStatusTransitionError as e:
        return {"error": e.code, "status": e.current_status, "action": e.action}
    except AuthorizationError as e:
        return {"error": e.code}, e.http_status
"""


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "EXPENSE_KERNEL_ERROR"
    http_status: int = 500


# Not-found exceptions


class NotFoundError(ExpenseKernelError):
    """Base exception for references that do not resolve."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class ExpenseNotFoundError(NotFoundError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: int):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class CategoryNotFoundError(NotFoundError):
    """Expense category with given ID was not found."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: int):
        self.category_id = category_id
        super().__init__(f"Expense category not found: {category_id}")


class CurrencyNotFoundError(NotFoundError):
    """Currency with given code was not found."""

    code: str = "CURRENCY_NOT_FOUND"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Currency not found: {currency}")


class DepartmentNotFoundError(NotFoundError):
    """Department with given ID was not found."""

    code: str = "DEPARTMENT_NOT_FOUND"

    def __init__(self, department_id: int):
        self.department_id = department_id
        super().__init__(f"Department not found: {department_id}")


class UserNotFoundError(NotFoundError):
    """User with given ID was not found."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class AlertNotFoundError(NotFoundError):
    """Budget alert with given ID was not found."""

    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: int):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


# Authorization exceptions


class AuthorizationError(ExpenseKernelError):
    """Base exception for actors lacking permission for an operation.

    Distinct from authentication, which happens outside the kernel.
    """

    code: str = "AUTHORIZATION_ERROR"
    http_status: int = 403


class UnauthorizedExpenseAccessError(AuthorizationError):
    """Actor's role or department does not allow the requested operation."""

    code: str = "UNAUTHORIZED_EXPENSE_ACCESS"

    def __init__(self, actor_id: int, expense_id: int | None, reason: str):
        self.actor_id = actor_id
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(reason)


# Workflow exceptions


class WorkflowError(ExpenseKernelError):
    """Base exception for expense lifecycle errors."""

    code: str = "WORKFLOW_ERROR"
    http_status: int = 400


class InvalidStatusTransitionError(WorkflowError):
    """
    Requested action is not legal from the expense's current status.

    Raised for every action attempted on a terminal status, for illegal
    targets, and for edits of expenses that already left ``pending``.
    """

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, current_status: str, action: str, message: str | None = None):
        self.current_status = current_status
        self.action = action
        super().__init__(
            message or f"Cannot {action} expense with status {current_status}"
        )

    @classmethod
    def terminal(cls, current_status: str, action: str) -> "InvalidStatusTransitionError":
        """Build the error reported for any action on a terminal status."""
        return cls(
            current_status,
            action,
            f"Cannot {action} expense with terminal status {current_status}",
        )

    @classmethod
    def illegal_target(
        cls, current_status: str, target_status: str,
    ) -> "InvalidStatusTransitionError":
        """Build the error for a target outside the valid transition set."""
        return cls(
            current_status,
            f"transition to {target_status}",
            f"Cannot transition expense from {current_status} to {target_status}",
        )


class UnknownExpenseStateError(WorkflowError):
    """No state object is registered for the given status."""

    code: str = "UNKNOWN_EXPENSE_STATE"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"No state found for status: {status}")


# Validation exceptions


class ValidationError(ExpenseKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class InvalidExpenseError(ValidationError):
    """Expense fields fail entity validation."""

    code: str = "INVALID_EXPENSE"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid expense {field}: {reason}")


# Concurrency exceptions


class ConcurrencyError(ExpenseKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Configuration exceptions


class ConfigurationError(ExpenseKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidConfigurationError(ConfigurationError):
    """A configuration value is missing or out of range."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for '{key}': {reason}")
