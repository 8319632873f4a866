"""Database layer - engine, base classes and session scope."""

from expense_kernel.db.base import Base, TrackedBase
from expense_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_settings,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_settings",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
