"""
workflow_config -- single entrypoint for engine configuration.

Responsibility:
    ``get_engine_config()`` loads ``defaults.yaml`` (or a caller-supplied
    file), validates it and returns a frozen ``EngineConfig``.  The
    ``WORKFLOW_DATABASE_URL`` environment variable overrides the
    configured database URL.

Architecture position:
    Sits above ``workflow_kernel``.  The kernel never imports from this
    package; ``workflow_config.bridges`` translates configuration into
    kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- out-of-range or unknown values.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from workflow_config.loader import load_yaml_file, parse_engine_config
from workflow_config.schema import (
    DatabaseConfig,
    EngineConfig,
    EscalationThresholds,
    LoggingConfig,
    ReminderDefaults,
)

_logger = logging.getLogger("workflow_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

DATABASE_URL_ENV = "WORKFLOW_DATABASE_URL"


def get_engine_config(path: Path | str | None = None) -> EngineConfig:
    """Load, validate and return the engine configuration."""
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(source), source=str(source))

    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=override),
        )

    _logger.info(
        "engine_config_loaded",
        extra={
            "source": str(source),
            "dialect": config.database.url.split(":", 1)[0],
            "database_url_overridden": bool(override),
            "urgent_after_days": config.escalation.urgent_after_days,
            "final_after_days": config.escalation.final_after_days,
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "EngineConfig",
    "EscalationThresholds",
    "LoggingConfig",
    "ReminderDefaults",
    "get_engine_config",
]
