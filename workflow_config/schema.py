"""
Engine configuration schema.

Frozen dataclasses the loader parses ``defaults.yaml`` into.  These are
configuration artifacts only; ``workflow_config.bridges`` turns them into
the kernel's own domain types.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EscalationThresholds:
    """Days overdue past which a fallback reminder escalates."""

    urgent_after_days: int = 30
    final_after_days: int = 60


@dataclass(frozen=True)
class ReminderDefaults:
    """Fallback subject per escalation level and the shared body."""

    subject_templates: dict[str, str] = field(default_factory=dict)
    body_template: str | None = None


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class EngineConfig:
    """Everything ``get_engine_config()`` hands to callers."""

    database: DatabaseConfig
    escalation: EscalationThresholds
    reminders: ReminderDefaults
    logging: LoggingConfig
    source: str | None = None
