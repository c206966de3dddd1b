"""
Configuration loader (``workflow_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the frozen dataclasses of
``workflow_config.schema``.  The single public entry point is
``workflow_config.get_engine_config()``; nothing in the kernel calls this
module directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Escalation thresholds are positive and ``urgent_after_days`` is
  strictly less than ``final_after_days``.
* Subject templates are keyed by a known escalation level.
* The log level is one of the stdlib level names.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or unknown values  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from workflow_config.schema import (
    DatabaseConfig,
    EngineConfig,
    EscalationThresholds,
    LoggingConfig,
    ReminderDefaults,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_ESCALATION_LEVELS = frozenset({"standard", "urgent", "final"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=str(data.get("url", "sqlite://")),
        echo=bool(data.get("echo", False)),
        pool_size=_positive_int(data.get("pool_size", 10), "database.pool_size"),
        max_overflow=int(data.get("max_overflow", 5)),
        pool_timeout=_positive_int(data.get("pool_timeout", 30), "database.pool_timeout"),
    )


def parse_escalation(data: dict[str, Any]) -> EscalationThresholds:
    """
    Parse fallback escalation thresholds.

    Raises:
        ValueError: non-positive values, or urgent not below final.
    """
    urgent = _positive_int(data.get("urgent_after_days", 30), "escalation.urgent_after_days")
    final = _positive_int(data.get("final_after_days", 60), "escalation.final_after_days")
    if urgent >= final:
        raise ValueError(
            f"escalation.urgent_after_days ({urgent}) must be less than "
            f"escalation.final_after_days ({final})"
        )
    return EscalationThresholds(urgent_after_days=urgent, final_after_days=final)


def parse_reminders(data: dict[str, Any]) -> ReminderDefaults:
    subjects = data.get("subject_templates") or {}
    if not isinstance(subjects, dict):
        raise ValueError("reminders.subject_templates must be a mapping")
    unknown = set(subjects) - _ESCALATION_LEVELS
    if unknown:
        raise ValueError(
            f"reminders.subject_templates has unknown levels: {sorted(unknown)}"
        )
    body = data.get("body_template")
    return ReminderDefaults(
        subject_templates={str(k): str(v) for k, v in subjects.items()},
        body_template=str(body) if body else None,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_engine_config(data: dict[str, Any], source: str | None = None) -> EngineConfig:
    """Parse a full configuration document."""
    return EngineConfig(
        database=parse_database(data.get("database") or {}),
        escalation=parse_escalation(data.get("escalation") or {}),
        reminders=parse_reminders(data.get("reminders") or {}),
        logging=parse_logging(data.get("logging") or {}),
        source=source,
    )
