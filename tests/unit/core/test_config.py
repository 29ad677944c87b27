"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from charsheet.core.config import (
    HistorySettings,
    RulesSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from charsheet.core.exceptions import ConfigurationError


class TestRulesSettings:
    """Tests for RulesSettings configuration."""

    def test_default_values(self) -> None:
        """Test default rule constants."""
        settings = RulesSettings()

        assert settings.stat_roll_min == 6
        assert settings.stat_roll_max == 20
        assert settings.default_stat_max_experience == 7
        assert settings.level_max_experience == 100
        assert settings.default_base_health == 100
        assert settings.racial_power_scale == 100

    def test_roll_range_validation(self) -> None:
        """Test that stat_roll_min must be less than stat_roll_max."""
        with pytest.raises(ConfigurationError) as exc_info:
            RulesSettings(stat_roll_min=20, stat_roll_max=6)

        assert "stat_roll_min" in str(exc_info.value)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test rule constants read from the environment."""
        monkeypatch.setenv("CHARSHEET_RULES_STAT_ROLL_MAX", "18")

        settings = RulesSettings()

        assert settings.stat_roll_max == 18


class TestHistorySettings:
    """Tests for HistorySettings configuration."""

    def test_default_capacity(self) -> None:
        """Test the default undo capacity."""
        assert HistorySettings().capacity == 10

    def test_capacity_lower_bound(self) -> None:
        """Test that a zero capacity is rejected."""
        with pytest.raises(PydanticValidationError):
            HistorySettings(capacity=0)


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "charsheet"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.history.capacity == 10

    def test_env_vars(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test settings read from environment variables."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.history.capacity == 5
        assert settings.rules.stat_roll_max == 18


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_settings_instance(self) -> None:
        """Test that get_settings returns a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_caching(self) -> None:
        """Test that settings are cached."""
        assert get_settings() is get_settings()

    def test_cache_clear(self) -> None:
        """Test that cache can be cleared."""
        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_invalid_env_raises_configuration_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that invalid settings surface as ConfigurationError."""
        monkeypatch.setenv("CHARSHEET_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError):
            get_settings()
