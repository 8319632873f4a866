"""
Runtime settings (``expense_kernel.config``).

Responsibility
--------------
Loads ``WorkflowSettings`` from an optional YAML file plus environment
overrides and validates them once, at startup.

Invariants enforced
-------------------
* Settings are frozen after load.
* Unknown YAML keys are rejected rather than ignored.
* ``EXPENSE_DATABASE_URL`` and ``EXPENSE_LOG_LEVEL`` win over the file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad value or unknown key  -> ``InvalidConfigurationError``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from expense_kernel.exceptions import InvalidConfigurationError

ENV_DATABASE_URL = "EXPENSE_DATABASE_URL"
ENV_LOG_LEVEL = "EXPENSE_LOG_LEVEL"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class WorkflowSettings:
    """Everything the composition root needs to build the kernel."""

    database_url: str = "sqlite:///:memory:"
    echo_sql: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    log_level: str = "INFO"
    budget_checks_enabled: bool = True

    def __post_init__(self):
        if not isinstance(self.database_url, str) or not self.database_url.strip():
            raise InvalidConfigurationError("database_url", "must be a non-empty string")
        for name in ("echo_sql", "budget_checks_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfigurationError(name, "must be true or false")
        if not isinstance(self.pool_size, int) or isinstance(self.pool_size, bool) or self.pool_size < 1:
            raise InvalidConfigurationError("pool_size", "must be an integer >= 1")
        if (
            not isinstance(self.max_overflow, int)
            or isinstance(self.max_overflow, bool)
            or self.max_overflow < 0
        ):
            raise InvalidConfigurationError("max_overflow", "must be an integer >= 0")
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise InvalidConfigurationError(
                "log_level", f"must be one of {', '.join(sorted(_LOG_LEVELS))}",
            )
        object.__setattr__(self, "log_level", str(self.log_level).upper())

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; an empty file yields ``{}``."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError(str(path), "top level must be a mapping")
    return data


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> WorkflowSettings:
    """
    Build settings from ``path`` (optional) and the environment.

    Args:
        path: YAML file with any subset of the ``WorkflowSettings`` keys.
        environ: Environment mapping; defaults to ``os.environ``.
    """
    data = load_yaml_file(Path(path)) if path is not None else {}

    known = {f.name for f in fields(WorkflowSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidConfigurationError(unknown[0], "unknown setting")

    env = os.environ if environ is None else environ
    if env.get(ENV_DATABASE_URL):
        data["database_url"] = env[ENV_DATABASE_URL]
    if env.get(ENV_LOG_LEVEL):
        data["log_level"] = env[ENV_LOG_LEVEL]

    return WorkflowSettings(**data)
