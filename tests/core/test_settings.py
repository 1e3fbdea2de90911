"""Tests for cadence.core.settings."""

from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from cadence.core.settings import CadenceSettings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for var in [
            "CADENCE_LOG_LEVEL",
            "CADENCE_SETTLE_DELAY_SECONDS",
            "CADENCE_MAX_LOG_ENTRIES",
            "CADENCE_COMPLETED_DISPLAY_SECONDS",
            "CADENCE_TIMEZONE",
            "CADENCE_DATA_DIR",
        ]:
            monkeypatch.delenv(var, raising=False)
        settings = CadenceSettings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.json_logs is None
        assert settings.settle_delay_seconds == 1.0
        assert settings.max_log_entries == 100
        assert settings.completed_display_seconds == 3.0
        assert settings.duration_min_ms == 500.0
        assert settings.duration_max_ms == 1500.0
        assert settings.data_dir == Path.home() / ".cadence"
        assert settings.zone() is None


class TestEnvironment:
    def test_reads_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CADENCE_SETTLE_DELAY_SECONDS", "2.5")
        monkeypatch.setenv("CADENCE_MAX_LOG_ENTRIES", "10")
        monkeypatch.setenv("CADENCE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("CADENCE_LOG_LEVEL", "debug")

        settings = CadenceSettings(_env_file=None)

        assert settings.settle_delay_seconds == 2.5
        assert settings.max_log_entries == 10
        assert settings.data_dir == tmp_path
        assert settings.log_level == "DEBUG"

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CADENCE_TIMEZONE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("CADENCE_TIMEZONE=Europe/Berlin\n")
        settings = CadenceSettings(_env_file=env_file)
        assert settings.zone() == ZoneInfo("Europe/Berlin")


class TestValidation:
    def test_settle_delay_must_be_positive(self):
        with pytest.raises(ValidationError):
            CadenceSettings(_env_file=None, settle_delay_seconds=0)

    def test_log_bound_at_least_one(self):
        with pytest.raises(ValidationError):
            CadenceSettings(_env_file=None, max_log_entries=0)

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError, match="unknown log level"):
            CadenceSettings(_env_file=None, log_level="chatty")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError, match="unknown timezone"):
            CadenceSettings(_env_file=None, timezone="Mars/Olympus")

    def test_duration_range_ordered(self):
        with pytest.raises(ValidationError, match="duration_min_ms"):
            CadenceSettings(_env_file=None, duration_min_ms=2000, duration_max_ms=1000)

    def test_fixture_settings_are_isolated(self, settings, tmp_path):
        assert settings.data_dir == tmp_path / "state"
