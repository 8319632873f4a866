"""
ExpenseStore -- persistence handle for the expense aggregate.

Responsibility:
    Loads expenses as frozen DTOs and writes DTOs back to their rows.  It is
    the ``ExpenseWriter`` a ``TransitionContext`` saves through.

Invariants enforced:
    - A write whose DTO version differs from the row version, or whose
      UPDATE matches no row, raises ``OptimisticLockError``.
    - ``find_expense_by_id(..., for_update=True)`` issues SELECT ... FOR
      UPDATE OF expenses on backends that support it and refreshes the
      identity map.
    - Deleting an expense deletes its budget alert first.

Failure modes:
    - ExpenseNotFoundError for an unknown id.
    - OptimisticLockError on a stale write.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm.exc import StaleDataError

from expense_kernel.domain.expense import Expense
from expense_kernel.exceptions import ExpenseNotFoundError, OptimisticLockError
from expense_kernel.logging_config import get_logger
from expense_kernel.models.alert import AlertModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.services.base import BaseService

logger = get_logger("services.expense_store")


class ExpenseStore(BaseService[ExpenseModel]):
    """Expense reads and writes within the caller's transaction."""

    def find_expense_by_id(self, expense_id: int, for_update: bool = False) -> Expense:
        return self._load(expense_id, for_update).to_dto()

    def save_expense(self, expense: Expense) -> Expense:
        """Insert a new expense or update an existing one; return the stored DTO."""
        if expense.id is None:
            model = ExpenseModel.from_dto(expense)
            self.session.add(model)
            self.session.flush()
            logger.info(
                "expense_inserted",
                extra={
                    "expense_id": model.id,
                    "user_id": model.user_id,
                    "amount": model.amount,
                    "currency": model.currency,
                },
            )
            return model.to_dto()

        model = self._load(expense.id)
        if model.version != expense.version:
            logger.warning(
                "expense_version_mismatch",
                extra={
                    "expense_id": expense.id,
                    "expected_version": expense.version,
                    "actual_version": model.version,
                },
            )
            raise OptimisticLockError("Expense", expense.id)

        model.apply_dto(expense)
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "expense_stale_write",
                extra={"expense_id": expense.id, "version": expense.version},
            )
            raise OptimisticLockError("Expense", expense.id) from exc

        logger.debug(
            "expense_updated",
            extra={"expense_id": model.id, "status": model.status, "version": model.version},
        )
        return model.to_dto()

    def delete_expense(self, expense: Expense) -> None:
        model = self._load(expense.id)
        if model.version != expense.version:
            raise OptimisticLockError("Expense", expense.id)

        self.session.execute(delete(AlertModel).where(AlertModel.expense_id == model.id))
        self.session.delete(model)
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError("Expense", expense.id) from exc

        logger.info("expense_deleted", extra={"expense_id": expense.id})

    def _load(self, expense_id: int, for_update: bool = False) -> ExpenseModel:
        query = select(ExpenseModel).where(ExpenseModel.id == expense_id)
        if for_update:
            query = query.with_for_update(of=ExpenseModel).execution_options(
                populate_existing=True,
            )
        model = self.session.scalars(query).one_or_none()
        if model is None:
            raise ExpenseNotFoundError(expense_id)
        return model
