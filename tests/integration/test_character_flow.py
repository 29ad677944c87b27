"""Integration tests for the character sheet lifecycle.

Tests the complete flow: create, choose passives, level up, end turns, undo,
redo, save and load.
"""

from __future__ import annotations

import pytest

from charsheet.engine.dice import StatRoller
from charsheet.engine.passives import choose_option, set_choice, sync_full_auto_passives
from charsheet.engine.progression import add_level_experience
from charsheet.engine.stats import add_manual_effect, set_resource_value
from charsheet.engine.turns import end_turn
from charsheet.models.effects import Effect
from charsheet.models.ruleset import Ruleset
from charsheet.storage.roster import RosterStore


@pytest.fixture
def store(ruleset: Ruleset, fixed_roller: StatRoller) -> RosterStore:
    """Provide a roster store holding one new Human."""
    return RosterStore(ruleset, roller=fixed_roller)


class TestChoiceHistory:
    """Test manual choices through the history."""

    def test_choice_undo_redo(self, store: RosterStore, ruleset: Ruleset) -> None:
        """Choosing a racial bonus, undoing and redoing it."""
        character = store.active_character()
        assert character.roll_stats["Strength"].total == 15

        choose_option(character, ruleset, "Human", "Versatile", "slot-1", "stat_increase", stat_name="Strength")
        store.commit()
        assert character.roll_stats["Strength"].total == 19

        assert store.undo()
        restored = store.active_character()
        assert restored.roll_stats["Strength"].total == 15
        assert restored.roll_stats["Strength"].racial_change == 1.0
        assert restored.stat_choices == {}

        assert store.redo()
        restored = store.active_character()
        assert restored.roll_stats["Strength"].total == 19
        assert restored.stats_affected["Human"]["versatile"]["Strength"] == {"slot-1"}

    def test_restored_choice_reverts_exactly(self, store: RosterStore, ruleset: Ruleset) -> None:
        """A choice restored from history still reverts to the original value."""
        choose_option(
            store.active_character(), ruleset, "Human", "Versatile", "slot-1", "stat_increase", stat_name="Agility"
        )
        store.commit()
        store.active_character().name = "Ayla"
        store.commit()
        store.undo()

        character = store.active_character()
        set_choice(character, "Human", "versatile", "slot-1", None)

        assert character.roll_stats["Agility"].racial_change == 1.0
        assert character.roll_stats["Agility"].total == 15


class TestProgressionFlow:
    """Test leveling, passives and turns together."""

    def test_warrior_progression(self, store: RosterStore, ruleset: Ruleset) -> None:
        """A Human Warrior levels up, specializes and takes a beating."""
        character = store.active_character()
        character.classes = ["Warrior"]
        character.specializations = {"Warrior": ["Berserker"]}
        sync_full_auto_passives(character, ruleset)
        assert character.max_health == 110
        store.commit()

        add_level_experience(character, 200, ruleset)
        store.commit()

        assert character.level == 3
        assert character.unique_identifiers["Toughness"].name == "Greater Toughness"
        assert character.max_health == 360
        assert character.roll_stats["Strength"].total == 23

        character.other_stats["naturalHealthRegen"].value = 0.1
        set_resource_value(character, "Health", 100)
        character.states.update({"Bleeding": True, "In Fight": True})
        end_turn(character)
        assert character.other_stats["Health"].value == 100

        character.states["In Fight"] = False
        end_turn(character)
        assert character.other_stats["Health"].value == pytest.approx(136)
        store.commit()

        assert store.undo()
        assert store.active_character().other_stats["Health"].value == 360

    def test_timed_effect_expires(self, store: RosterStore) -> None:
        """A timed buff runs out after its duration."""
        character = store.active_character()
        add_manual_effect(character, "Agility", Effect(values=[110], duration=1, is_percent=True, type="*"))
        assert character.roll_stats["Agility"].total == 17

        end_turn(character)

        assert character.roll_stats["Agility"].total == 15
        assert "manual" not in character.roll_stats["Agility"].temporary_effects


class TestPersistenceFlow:
    """Test saving and loading a roster."""

    def test_save_and_load(self, store: RosterStore, ruleset: Ruleset, fixed_roller: StatRoller) -> None:
        """A roster with choices and passives survives a save/load cycle."""
        character = store.active_character()
        character.name = "Ayla"
        choose_option(character, ruleset, "Human", "Versatile", "slot-1", "stat_increase", stat_name="Strength")
        elf = store.add_character("Elf")
        elf.name = "Lir"
        set_resource_value(elf, "Mana", 75)
        store.commit()

        loaded = RosterStore(ruleset, roller=fixed_roller)
        loaded.load(store.dump())

        ayla, lir = loaded.characters
        assert ayla.roll_stats["Strength"].total == 19
        assert lir.roll_stats["Intelligence"].total == 17
        assert lir.max_mana == 150
        assert lir.other_stats["Mana"].value == 75
