#!/usr/bin/env python3
"""
End-to-end expense workflow demo.

Creates the schema, seeds one department with an employee, a manager and
a finance user, submits an expense that busts the category daily budget,
walks it through both approvals, shows that a third approval is refused,
then lists and resolves the resulting budget alert.

Usage:
    python3 scripts/demo_workflow.py
    python3 scripts/demo_workflow.py --db-url sqlite:///demo.db --keep-data
    python3 scripts/demo_workflow.py --config config/expense_kernel.yaml --log-level DEBUG
"""

import argparse
import sys
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from expense_kernel.bootstrap import build_expense_workflow  # noqa: E402
from expense_kernel.config import load_settings  # noqa: E402
from expense_kernel.db.engine import (  # noqa: E402
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_settings,
    reset_engine,
    session_scope,
)
from expense_kernel.domain.clock import SystemClock  # noqa: E402
from expense_kernel.domain.expense import NewExpense, UserRole  # noqa: E402
from expense_kernel.exceptions import ExpenseKernelError  # noqa: E402
from expense_kernel.logging_config import configure_logging  # noqa: E402
from expense_kernel.models import (  # noqa: E402
    CurrencyModel,
    DepartmentModel,
    ExpenseCategoryModel,
    UserModel,
)


def seed(session) -> dict:
    """Insert the reference data the scenario needs; return ids by name."""
    it = DepartmentModel(
        name="IT", daily_budget=Decimal("1000.00"),
        monthly_budget=Decimal("5000.00"), currency="EUR",
    )
    session.add(it)
    session.add(CurrencyModel(code="EUR", exchange_rate=Decimal("1")))
    travel = ExpenseCategoryModel(
        name="Travel", daily_budget=Decimal("100.00"),
        monthly_budget=Decimal("1000.00"), currency="EUR",
    )
    session.add(travel)
    session.flush()

    users = {
        "carol": UserModel(username="carol", role=UserRole.EMPLOYEE.value, department_id=it.id),
        "alice": UserModel(username="alice", role=UserRole.MANAGER.value, department_id=it.id),
        "bob": UserModel(username="bob", role=UserRole.FINANCE.value),
    }
    session.add_all(users.values())
    session.flush()

    return {
        "category": travel.id,
        **{name: user.to_actor() for name, user in users.items()},
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Expense approval workflow demo")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--db-url", help="Database URL (overrides config)")
    parser.add_argument("--log-level", help="Log level (overrides config)")
    parser.add_argument(
        "--keep-data", action="store_true",
        help="Leave the demo tables in place (useful with a file database)",
    )
    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
        if args.db_url:
            settings = replace(settings, database_url=args.db_url)
        if args.log_level:
            settings = replace(settings, log_level=args.log_level)
    except ExpenseKernelError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    configure_logging(level=settings.log_level_number)
    init_engine_from_settings(settings)
    create_tables()

    print()
    print("  [1/5] Seeding department IT, users carol/alice/bob, category Travel...")
    with session_scope() as session:
        refs = seed(session)

    clock = SystemClock()
    carol, alice, bob = refs["carol"], refs["alice"], refs["bob"]

    print("  [2/5] carol submits 250.00 EUR of travel (daily budget 100.00)...")
    with session_scope() as session:
        workflow = build_expense_workflow(session, settings, clock=clock)
        expense = workflow.service.create(
            carol,
            NewExpense(
                category_id=refs["category"],
                currency="EUR",
                amount=Decimal("250.00"),
                expense_date=clock.today(),
                description="Train tickets",
            ),
        )
    print(f"         expense {expense.id}: {expense.status.value}")

    print("  [3/5] alice (manager, IT) then bob (finance) approve...")
    for actor in (alice, bob):
        with session_scope() as session:
            expense = build_expense_workflow(session, settings, clock=clock).service.approve(
                expense.id, actor,
            )
        print(f"         {actor.username}: {expense.status.value}")

    print("  [4/5] bob approves again...")
    session = get_session()
    try:
        build_expense_workflow(session, settings, clock=clock).service.approve(expense.id, bob)
    except ExpenseKernelError as exc:
        session.rollback()
        print(f"         refused [{exc.code}]: {exc}")
    finally:
        session.close()

    print("  [5/5] Budget alerts (finance view)...")
    with session_scope() as session:
        alerts = build_expense_workflow(session, settings, clock=clock).alerts
        for alert in alerts.list_alerts(bob):
            print(f"         #{alert.id} {alert.alert_type.value} {alert.status.value}: {alert.message}")
            resolved = alerts.resolve_alert(alert.id, bob)
            print(f"         #{resolved.id} -> {resolved.status.value}")

    if not args.keep_data:
        drop_tables()
    reset_engine()
    print("  Done.")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
