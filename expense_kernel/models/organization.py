"""
Module: expense_kernel.models.organization
Responsibility: ORM persistence for departments and the users that belong to
    them.  A user's role and department drive every authorization decision in
    the approval workflow.
Architecture position: Kernel > Models.  May import from db/base.py only
    (domain DTOs are imported lazily inside to_dto()).

Invariants enforced:
    - Department names and usernames are unique.
    - A department's daily budget is optional; its monthly budget is not.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from expense_kernel.domain.expense import Actor, Department


class DepartmentModel(TrackedBase):
    """A department with its spending limits."""

    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("name", name="uq_department_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    daily_budget: Mapped[Decimal | None] = mapped_column(nullable=True)
    monthly_budget: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    members: Mapped[list[UserModel]] = relationship(
        "UserModel",
        back_populates="department",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name}>"

    def to_dto(self) -> Department:
        from expense_kernel.domain.expense import Department

        return Department(
            id=self.id,
            name=self.name,
            monthly_budget=self.monthly_budget,
            currency=self.currency,
            daily_budget=self.daily_budget,
        )


class UserModel(TrackedBase):
    """
    A person who submits or processes expenses.

    Non-goals:
        - No credentials are stored here; authentication happens outside
          the kernel.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("username", name="uq_user_username"),
        Index("idx_user_department", "department_id"),
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    department_id: Mapped[int | None] = mapped_column(
        ForeignKey("departments.id"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    department: Mapped[DepartmentModel | None] = relationship(
        "DepartmentModel",
        back_populates="members",
    )

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"

    def to_actor(self) -> Actor:
        from expense_kernel.domain.expense import Actor, UserRole

        return Actor(
            id=self.id,
            username=self.username,
            role=UserRole(self.role),
            department_id=self.department_id,
            is_active=self.is_active,
        )
