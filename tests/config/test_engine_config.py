"""
Engine configuration: defaults, overrides, validation and the kernel bridge.
"""

from pathlib import Path

import pytest
import yaml

from workflow_config import DATABASE_URL_ENV, get_engine_config
from workflow_config.bridges import build_reminder_policy
from workflow_config.loader import parse_engine_config
from workflow_kernel.domain.reminders import DEFAULT_BODY_TEMPLATE, EscalationLevel


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "engine.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    """The packaged defaults.yaml loads and validates."""

    def test_defaults_load(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)

        config = get_engine_config()

        assert config.database.url == "sqlite://"
        assert config.escalation.urgent_after_days == 30
        assert config.escalation.final_after_days == 60
        assert set(config.reminders.subject_templates) == {"standard", "urgent", "final"}
        assert config.logging.level == "INFO"
        assert config.source.endswith("defaults.yaml")

    def test_env_overrides_database_url(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql+psycopg://wf:wf@db/workflow")

        config = get_engine_config()

        assert config.database.url == "postgresql+psycopg://wf:wf@db/workflow"

    def test_load_is_logged(self, monkeypatch, captured_logs):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)

        get_engine_config()

        loaded = next(r for r in captured_logs() if r["message"] == "engine_config_loaded")
        assert loaded["dialect"] == "sqlite"
        assert loaded["database_url_overridden"] is False

    def test_empty_file_means_all_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = get_engine_config(path)

        assert config.escalation.urgent_after_days == 30
        assert config.reminders.subject_templates == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_engine_config(tmp_path / "nope.yaml")


class TestValidation:
    """Bad values fail at load time."""

    @pytest.mark.parametrize(
        "escalation",
        [
            {"urgent_after_days": 0},
            {"urgent_after_days": -5},
            {"final_after_days": 0},
            {"urgent_after_days": 60, "final_after_days": 60},
            {"urgent_after_days": 90, "final_after_days": 60},
            {"urgent_after_days": "thirty"},
        ],
    )
    def test_bad_thresholds(self, escalation):
        with pytest.raises(ValueError):
            parse_engine_config({"escalation": escalation})

    def test_unknown_log_level(self):
        with pytest.raises(ValueError, match="logging.level"):
            parse_engine_config({"logging": {"level": "CHATTY"}})

    def test_log_level_is_case_insensitive(self):
        assert parse_engine_config({"logging": {"level": "debug"}}).logging.level == "DEBUG"

    def test_unknown_escalation_level_template(self):
        with pytest.raises(ValueError, match="unknown levels"):
            parse_engine_config({"reminders": {"subject_templates": {"polite": "Hi"}}})

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            get_engine_config(path)


class TestReminderPolicyBridge:
    def test_configured_values_reach_the_policy(self, tmp_path):
        path = _write(tmp_path, {
            "escalation": {"urgent_after_days": 10, "final_after_days": 20},
            "reminders": {"subject_templates": {"final": "Last call: {{invoice_number}}"}},
        })

        policy = build_reminder_policy(get_engine_config(path))

        assert policy.urgent_after_days == 10
        assert policy.final_after_days == 20
        assert policy.subject_templates[EscalationLevel.FINAL] == "Last call: {{invoice_number}}"
        assert policy.subject_templates[EscalationLevel.STANDARD] == "Payment reminder: Invoice {{invoice_number}}"
        assert policy.body_template == DEFAULT_BODY_TEMPLATE

    def test_defaults_yaml_matches_builtin_templates(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)

        policy = build_reminder_policy(get_engine_config())

        assert policy.body_template == DEFAULT_BODY_TEMPLATE
