"""charsheet - derived-stat engine for a role-playing character sheet.

The engine turns a character's rolled stats, racial modifiers and active
effects into final values, manages passive ability choices with exact
revert, and keeps a bounded undo/redo history of the roster.

Example:
    >>> from charsheet import RosterStore, load_ruleset
    >>> store = RosterStore(load_ruleset(data))
    >>> character = store.active_character()
    >>> character.roll_stats["Strength"].total
    15

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for characters and rule data.
    engine: Effect pipeline, passive choices, progression and turns.
    storage: Persisted form, history and roster.
"""

from __future__ import annotations

from charsheet.core import (
    CharsheetError,
    ChoiceConflictError,
    Settings,
    configure_logging,
    get_logger,
    get_settings,
)
from charsheet.models import Character, Choice, Effect, Ruleset, load_ruleset
from charsheet.storage import RosterStore


__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CharsheetError",
    "ChoiceConflictError",
    "Settings",
    "configure_logging",
    "get_logger",
    "get_settings",
    "Character",
    "Choice",
    "Effect",
    "Ruleset",
    "load_ruleset",
    "RosterStore",
]
