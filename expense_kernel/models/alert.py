"""
Module: expense_kernel.models.alert
Responsibility: ORM persistence for budget alerts raised from exceeded
    thresholds.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one alert row per expense (uq_alert_expense).  Further
      violations for the same expense are merged into that row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from expense_kernel.domain.budget import BudgetAlert


class AlertModel(TrackedBase):
    """A persisted budget alert."""

    __tablename__ = "alerts"

    __table_args__ = (
        UniqueConstraint("expense_id", name="uq_alert_expense"),
        Index("idx_alert_status", "status"),
    )

    expense_id: Mapped[int] = mapped_column(ForeignKey("expenses.id"), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Alert {self.id} expense={self.expense_id} {self.alert_type} {self.status}>"

    def to_dto(self) -> BudgetAlert:
        from expense_kernel.domain.budget import AlertStatus, AlertType, BudgetAlert

        return BudgetAlert(
            id=self.id,
            expense_id=self.expense_id,
            alert_type=AlertType(self.alert_type),
            message=self.message,
            status=AlertStatus(self.status),
        )
