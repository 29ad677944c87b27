"""Pytest configuration and shared fixtures.

This module provides a small in-memory ruleset (Human, Elf and Mutant races
plus a Warrior class), a deterministic stat roller, and characters built from
them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from charsheet.engine.dice import StatRoller
from charsheet.engine.progression import create_character, default_character
from charsheet.models.character import Character
from charsheet.models.ruleset import Ruleset, load_ruleset


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from charsheet.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "CHARSHEET_DEBUG": "true",
        "CHARSHEET_LOG_LEVEL": "DEBUG",
        "CHARSHEET_HISTORY_CAPACITY": "5",
        "CHARSHEET_RULES_STAT_ROLL_MAX": "18",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Ruleset Fixtures
# =============================================================================


@pytest.fixture
def ruleset_data() -> dict[str, Any]:
    """Provide raw rule data as the spreadsheet export would.

    Returns:
        Dictionary accepted by ``load_ruleset``.
    """
    return {
        "roll_stats": ["Strength", "Agility", "Intelligence"],
        "races": {
            "Human": {
                "stats": {"Roll": {"Strength": 1.0, "Agility": 1.0}},
                "starting_items": {"money": 50, "items": ["Rope", "Torch"]},
                "foot_notes": {"1": "Humans adapt to any calling."},
                "manual_passives": {
                    "Versatile": {
                        "unique": "versatile",
                        "slots": 2,
                        "options": [
                            {
                                "type": "stat_increase",
                                "calc": "add",
                                "value": 0.25,
                                "label": "+{0} racial change",
                                "applicable_stats": ["Roll"],
                            },
                        ],
                    },
                },
            },
            "Elf": {
                "stats": {"Roll": {"Agility": 1.2}, "Other": {"Mana": 1.5}},
                "starting_items": {"money": 30},
                "regular_passives": {
                    "Keen Senses": {
                        "level": 1,
                        "description": "+{0} Intelligence",
                        "formulas": [
                            {"stats_affected": ["Intelligence"], "values": [2], "type": "+"},
                        ],
                    },
                },
            },
            "Mutant": {
                "stats": {"Roll": {"Strength": 1.1}},
                "manual_passives": {
                    "Mutation": {
                        "options": [
                            {
                                "type": "stat_multiplier",
                                "calc": "mult",
                                "label": "x{0}",
                                "applicable_stats": ["Stats"],
                                "options": {"values": [1.5, 0.5], "counts": [1, 2]},
                            },
                            {"type": "permanent_regen", "calc": "count", "label": "Regenerate"},
                        ],
                    },
                },
                "regular_passives": {
                    "Spatial Reserve": {"level": 1, "values": [150]},
                    "Regrowth": {
                        "level": 3,
                        "racial_power_regen": 5,
                        "upgrades": {"Greater Regrowth": {"level": 5, "values": [2]}},
                    },
                },
            },
        },
        "classes": {
            "Warrior": {
                "manual_passives": {
                    "Training": {
                        "options": [
                            {
                                "type": "drill",
                                "calc": "add",
                                "value": 0.1,
                                "level": 2,
                                "applicable_stats": ["Roll"],
                            },
                        ],
                    },
                },
                "regular_passives": {
                    "Toughness": {
                        "level": 1,
                        "formulas": [
                            {
                                "stats_affected": ["Health"],
                                "values": [10],
                                "type": "+",
                                "is_percent": True,
                            },
                        ],
                        "upgrades": {
                            "Greater Toughness": {"level": 3, "formulas": [{"values": [20]}]},
                        },
                    },
                },
                "specializations": {
                    "Berserker": {
                        "regular_passives": {
                            "Rage": {
                                "level": 2,
                                "formulas": [
                                    {
                                        "stats_affected": ["Strength"],
                                        "operands": ["Agility"],
                                        "operators": ["*"],
                                        "values": [0.5],
                                        "type": "+",
                                    },
                                ],
                            },
                        },
                    },
                },
            },
        },
    }


@pytest.fixture
def ruleset(ruleset_data: dict[str, Any]) -> Ruleset:
    """Provide the validated test ruleset."""
    return load_ruleset(ruleset_data)


# =============================================================================
# Engine Fixtures
# =============================================================================


class FixedRoller(StatRoller):
    """Stat roller that always rolls the same value."""

    def __init__(self, value: int = 15) -> None:
        super().__init__()
        self.value = value

    def roll_stat(self, minimum: int, maximum: int) -> int:
        return self.value


@pytest.fixture
def make_roller() -> type[FixedRoller]:
    """Provide the fixed roller class for tests that need another value."""
    return FixedRoller


@pytest.fixture
def fixed_roller() -> FixedRoller:
    """Provide a roller that rolls 15 for every stat."""
    return FixedRoller(15)


@pytest.fixture
def human(ruleset: Ruleset, fixed_roller: FixedRoller) -> Character:
    """Provide a level-1 Human with every roll stat at 15."""
    return create_character(ruleset, race="Human", roller=fixed_roller)


@pytest.fixture
def elf(ruleset: Ruleset, fixed_roller: FixedRoller) -> Character:
    """Provide a level-1 Elf with every roll stat at 15."""
    return create_character(ruleset, race="Elf", roller=fixed_roller)


@pytest.fixture
def mutant(ruleset: Ruleset, fixed_roller: FixedRoller) -> Character:
    """Provide a level-1 Mutant with every roll stat at 15."""
    return create_character(ruleset, race="Mutant", roller=fixed_roller)


@pytest.fixture
def blank_character(ruleset: Ruleset) -> Character:
    """Provide an unrolled Human with no passives applied."""
    return default_character(ruleset, race="Human")
