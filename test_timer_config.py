"""Tests for TimerSettings environment parsing."""

from pathlib import Path

import pytest

from timer_config import DEFAULT_HOME, TimerSettings


class TestTimerSettings:
    def test_defaults(self):
        settings = TimerSettings.from_env({})
        assert settings.db_path == DEFAULT_HOME / "timers.db"
        assert settings.port == 7788
        assert settings.agent_id == "local-agent"
        assert settings.max_age_hours == 24
        assert settings.tick_seconds == 1

    def test_overrides(self, tmp_path):
        settings = TimerSettings.from_env({
            "TASK_TIMERS_DB": str(tmp_path / "t.db"),
            "TASK_TIMERS_PORT": "9001",
            "TASK_TIMERS_AGENT_ID": "agent-42",
            "TASK_TIMERS_MAX_AGE_HOURS": "12",
            "TASK_TIMERS_TICK_SECONDS": "2",
            "TASK_TIMERS_CRASH_LOG": str(tmp_path / "crash.log"),
        })
        assert settings.db_path == tmp_path / "t.db"
        assert settings.port == 9001
        assert settings.agent_id == "agent-42"
        assert settings.max_age_hours == 12
        assert settings.tick_seconds == 2
        assert settings.crash_log_path == tmp_path / "crash.log"

    def test_expands_home(self):
        settings = TimerSettings.from_env({"TASK_TIMERS_DB": "~/timers.db"})
        assert settings.db_path == Path.home() / "timers.db"

    def test_blank_uses_default(self):
        assert TimerSettings.from_env({"TASK_TIMERS_PORT": "  "}).port == 7788

    def test_max_age_ms(self):
        assert TimerSettings(max_age_hours=24).max_age_ms == 24 * 60 * 60 * 1000

    @pytest.mark.parametrize("value", ["abc", "1.5", "0", "-3"])
    def test_invalid_integer(self, value):
        with pytest.raises(ValueError, match="TASK_TIMERS_PORT"):
            TimerSettings.from_env({"TASK_TIMERS_PORT": value})
