"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        CharsheetError: Base exception for all engine errors.
        RulesetLookupError: Unknown race/class/stat name.
        ChoiceConflictError: A passive choice double-claims a stat.
        EffectResolutionError: An effect cannot be resolved to a number.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
"""

from __future__ import annotations

from charsheet.core.config import (
    HistorySettings,
    RulesSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from charsheet.core.exceptions import (
    CharsheetError,
    ChoiceConflictError,
    ConfigurationError,
    EffectResolutionError,
    EngineError,
    PersistenceError,
    RulesetError,
    RulesetLookupError,
    SnapshotError,
    ValidationError,
)
from charsheet.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Exceptions
    "CharsheetError",
    "ConfigurationError",
    "ValidationError",
    "RulesetError",
    "RulesetLookupError",
    "EngineError",
    "EffectResolutionError",
    "ChoiceConflictError",
    "PersistenceError",
    "SnapshotError",
    # Configuration
    "Settings",
    "RulesSettings",
    "HistorySettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
