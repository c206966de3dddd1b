"""
Config -> kernel bridges.

The kernel never imports ``workflow_config``; these functions convert
configuration artifacts into the kernel's own types.

Usage:
    from workflow_config import get_engine_config
    from workflow_config.bridges import build_reminder_policy, init_engine

    config = get_engine_config()
    init_engine(config)
    engine = ApprovalEngine(session, reminder_policy=build_reminder_policy(config))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from workflow_config.schema import EngineConfig
from workflow_kernel.db.engine import init_engine_from_url
from workflow_kernel.domain.reminders import (
    DEFAULT_BODY_TEMPLATE,
    DEFAULT_SUBJECT_TEMPLATES,
    EscalationLevel,
    ReminderPolicy,
)
from workflow_kernel.logging_config import configure_logging


def build_reminder_policy(config: EngineConfig) -> ReminderPolicy:
    """Fallback thresholds and templates, configured values over defaults."""
    subjects = dict(DEFAULT_SUBJECT_TEMPLATES)
    for level, template in config.reminders.subject_templates.items():
        subjects[EscalationLevel(level)] = template

    return ReminderPolicy(
        urgent_after_days=config.escalation.urgent_after_days,
        final_after_days=config.escalation.final_after_days,
        subject_templates=subjects,
        body_template=config.reminders.body_template or DEFAULT_BODY_TEMPLATE,
    )


def init_engine(config: EngineConfig) -> Engine:
    """Configure logging and initialise the kernel engine from ``config``."""
    configure_logging(level=config.logging.level)
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
    )
