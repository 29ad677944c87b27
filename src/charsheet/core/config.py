"""Configuration management for the character sheet engine.

Settings are loaded with pydantic-settings from environment variables and an
optional ``.env`` file. Rule constants (roll range, experience thresholds,
base pools) live here so a ruleset variant can override them without code
changes.

Example:
    >>> from charsheet.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.history.capacity
    10

Environment Variables:
    CHARSHEET_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    CHARSHEET_LOG_JSON: Emit JSON logs instead of console output
    CHARSHEET_RULES_STAT_ROLL_MIN: Lowest rollable stat value
    CHARSHEET_RULES_STAT_ROLL_MAX: Highest rollable stat value
    CHARSHEET_HISTORY_CAPACITY: Number of undo snapshots kept
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from charsheet.core.exceptions import ConfigurationError


class RulesSettings(BaseSettings):
    """Numeric rule constants used by the stat engine.

    Attributes:
        stat_roll_min: Lowest value a roll stat can be rolled at.
        stat_roll_max: Highest value a roll stat can be rolled at.
        default_stat_max_experience: Experience needed for one stat point.
        level_max_experience: Experience needed for one character level.
        default_base_health: Starting ``BaseHealth`` pool per level.
        default_base_mana: Starting ``BaseMana`` pool per level.
        default_base_racial_power: Starting ``BaseRacialPower`` pool per level.
        racial_power_scale: Scale constant the Spatial Reserve literal replaces.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARSHEET_RULES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    stat_roll_min: int = Field(default=6, ge=1, description="Lowest rolled stat")
    stat_roll_max: int = Field(default=20, ge=1, description="Highest rolled stat")
    default_stat_max_experience: int = Field(
        default=7,
        ge=1,
        description="Experience per stat point",
    )
    level_max_experience: int = Field(
        default=100,
        ge=1,
        description="Experience per character level",
    )
    default_base_health: float = Field(default=100.0, ge=0)
    default_base_mana: float = Field(default=100.0, ge=0)
    default_base_racial_power: float = Field(default=100.0, ge=0)
    racial_power_scale: float = Field(
        default=100.0,
        ge=0,
        description="Scale constant replaced by the Spatial Reserve literal",
    )

    @model_validator(mode="after")
    def validate_roll_range(self) -> "RulesSettings":
        """Ensure the roll range is not empty.

        Raises:
            ConfigurationError: If stat_roll_min >= stat_roll_max.
        """
        if self.stat_roll_min >= self.stat_roll_max:
            raise ConfigurationError(
                f"stat_roll_min ({self.stat_roll_min}) must be less than "
                f"stat_roll_max ({self.stat_roll_max})",
                config_key="stat_roll_min",
            )
        return self


class HistorySettings(BaseSettings):
    """Undo/redo history configuration.

    Attributes:
        capacity: Maximum number of snapshots kept before FIFO eviction.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARSHEET_HISTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    capacity: int = Field(default=10, ge=1, le=1000, description="Snapshots kept")


class Settings(BaseSettings):
    """Main settings aggregating all configuration domains.

    Attributes:
        app_name: Application name used as the log tag.
        debug: Enable debug mode.
        log_level: Logging level.
        log_json: Render logs as JSON.
        rules: Rule constants.
        history: Undo/redo settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARSHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="charsheet", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Emit JSON logs")

    rules: RulesSettings = Field(default_factory=RulesSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "RulesSettings",
    "HistorySettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
