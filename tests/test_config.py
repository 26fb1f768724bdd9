"""
Unit tests for recovery configuration loading.
"""

import pytest
import yaml

from doc_recovery.config import RecoveryConfig, load_recovery_config


class TestRecoveryConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = RecoveryConfig()
        assert config.session_max_age_hours == 24.0
        assert config.checkpoint_retention_days == 7.0
        assert config.active_window_minutes == 60.0
        assert config.recovery_notice_ms == 8000

    @pytest.mark.parametrize(
        "overrides",
        [
            {"session_max_age_hours": 0},
            {"subscriber_queue_size": -1},
            {"max_recovery_attempts": -1},
            {"checkpoint_db_path": ""},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValueError):
            RecoveryConfig(**overrides)

    def test_from_dict_ignores_unknown_keys(self):
        config = RecoveryConfig.from_dict({"sweep_interval_seconds": 10, "colour": "blue"})
        assert config.sweep_interval_seconds == 10
        assert "colour" not in config.to_dict()


class TestLoadRecoveryConfig:
    """Test YAML and environment loading."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_recovery_config(tmp_path / "absent.yaml")
        assert config == RecoveryConfig()

    def test_recovery_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump({"recovery": {"session_max_age_hours": 12, "max_recovery_attempts": 5}})
        )

        config = load_recovery_config(path)

        assert config.session_max_age_hours == 12
        assert config.max_recovery_attempts == 5

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"sweep_interval_seconds": 60}))
        monkeypatch.setenv("DOC_RECOVERY_SWEEP_INTERVAL", "5")
        monkeypatch.setenv("DOC_RECOVERY_QUEUE_SIZE", "8")
        monkeypatch.setenv("DOC_RECOVERY_CHECKPOINT_DB", str(tmp_path / "cp.db"))

        config = load_recovery_config(path)

        assert config.sweep_interval_seconds == 5.0
        assert config.subscriber_queue_size == 8
        assert config.checkpoint_db_path == str(tmp_path / "cp.db")

    def test_invalid_file_values_raise(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"recovery": {"checkpoint_retention_days": -2}}))

        with pytest.raises(ValueError):
            load_recovery_config(path)
