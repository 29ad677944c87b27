"""Tests for update propagation and stat inputs."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from charsheet.core.exceptions import EffectResolutionError, ValidationError
from charsheet.engine.dice import StatRoller
from charsheet.engine.stats import (
    add_manual_effect,
    add_stat_experience,
    adjust_value,
    quick_roll_stats,
    recalc_derived,
    remove_manual_effect,
    set_resource_value,
    set_stat_max_experience,
    update_roll_stat,
)
from charsheet.models.character import ArmorPiece, Character
from charsheet.models.effects import Effect
from charsheet.models.enums import Operator


class TestAdjustValue:
    """Tests for carrying current values across a max change."""

    @pytest.mark.parametrize(
        ("old_max", "current", "new_max", "expected"),
        [
            (100, 100, 120, 120),
            (100, 80, 120, 80),
            (100, 100, 80, 80),
            (100, 90, 80, 80),
        ],
    )
    def test_adjust_value(self, old_max: float, current: float, new_max: float, expected: float) -> None:
        """Test values at the ceiling ride it and others are only clamped."""
        assert adjust_value(old_max, current, new_max) == expected


class TestRecalcDerived:
    """Tests for recalc_derived."""

    def test_new_character_is_full(self, human: Character) -> None:
        """Test a new character starts at full resources."""
        assert human.max_health == 100
        assert human.other_stats["Health"].value == 100
        assert human.max_mana == 100
        assert human.max_racial_power == 100
        assert human.level_max_experience == 100

    def test_ceiling_ride(self, human: Character) -> None:
        """Test Health at its max follows the max up."""
        human.other_stats["BaseHealth"].value = 120
        recalc_derived(human)

        assert human.max_health == 120
        assert human.other_stats["Health"].value == 120

    def test_below_ceiling_not_boosted(self, human: Character) -> None:
        """Test Health below its max is not raised."""
        human.other_stats["Health"].value = 80
        human.other_stats["BaseHealth"].value = 120
        recalc_derived(human)

        assert human.other_stats["Health"].value == 80

    def test_clamp_only(self, human: Character) -> None:
        """Test clamp-only keeps values that sat at the old ceiling."""
        human.max_health = 0
        human.other_stats["Health"].value = 0
        recalc_derived(human, clamp_only=True)

        assert human.max_health == 100
        assert human.other_stats["Health"].value == 0

    def test_roll_totals_refreshed(self, human: Character) -> None:
        """Test roll stat totals are recomputed."""
        human.roll_stats["Strength"].racial_change = 1.25
        recalc_derived(human)

        assert human.roll_stats["Strength"].total == 19

    def test_totals_read_fresh_defense(self, human: Character) -> None:
        """Test a roll total read while computing Health sees the new defense."""
        human.roll_stats["Strength"].temporary_effects["manual"] = [
            Effect(operands=["totalDefense"], operators=[Operator.MULTIPLY], values=[1])
        ]
        human.other_stats["Health"].temporary_effects["manual"] = [
            Effect(operands=["Strength"], operators=[Operator.MULTIPLY], values=[0])
        ]
        human.armor_inventory = [ArmorPiece(name="Mail", defense=5, equipped=True)]
        recalc_derived(human)

        assert human.other_stats["totalDefense"].value == 5
        assert human.roll_stats["Strength"].total == 20
        assert human.max_health == 100


class TestStatInputs:
    """Tests for roll stat input handlers."""

    def test_update_roll_stat(self, human: Character) -> None:
        """Test setting base value and equipment."""
        stat = update_roll_stat(human, "Strength", base_value=12, equipment=2)

        assert stat.total == 14

    def test_unknown_stat(self, human: Character) -> None:
        """Test unknown roll stats are rejected."""
        with pytest.raises(ValidationError):
            update_roll_stat(human, "Wisdom", base_value=1)

    def test_experience_rolls_over(self, human: Character) -> None:
        """Test full experience bars become bonus points."""
        stat = add_stat_experience(human, "Strength", 15)

        assert stat.experience_bonus == 2
        assert stat.experience == 1
        assert stat.total == 17

    def test_negative_experience_rejected(self, human: Character) -> None:
        """Test experience cannot go below zero."""
        with pytest.raises(ValidationError):
            add_stat_experience(human, "Strength", -1)

        assert human.roll_stats["Strength"].experience == 0

    def test_max_experience_floor(self, human: Character) -> None:
        """Test max experience never drops below one."""
        add_stat_experience(human, "Agility", 3)
        stat = set_stat_max_experience(human, "Agility", 0)

        assert stat.max_experience == 1
        assert stat.experience == 0
        assert stat.experience_bonus == 3

    def test_quick_roll(self, human: Character, make_roller: Callable[[int], StatRoller]) -> None:
        """Test re-rolling every stat."""
        rolled = quick_roll_stats(human, make_roller(12))

        assert rolled == {"Strength": 12, "Agility": 12, "Intelligence": 12}
        assert human.roll_stats["Intelligence"].total == 12


class TestResourceInput:
    """Tests for set_resource_value."""

    @pytest.mark.parametrize(("value", "expected"), [(500, 100), (-5, 0), (40, 40)])
    def test_clamped(self, human: Character, value: float, expected: float) -> None:
        """Test current values are clamped to [0, max]."""
        assert set_resource_value(human, "Health", value) == expected
        assert human.other_stats["Health"].value == expected

    def test_not_a_resource(self, human: Character) -> None:
        """Test only max-valued resources are accepted."""
        with pytest.raises(ValidationError):
            set_resource_value(human, "Strength", 10)


class TestManualEffects:
    """Tests for ad-hoc effects."""

    def test_add_and_remove(self, human: Character) -> None:
        """Test a manual effect changes the total until removed."""
        add_manual_effect(human, "Strength", Effect(values=[3], duration=2))
        assert human.roll_stats["Strength"].total == 18

        removed = remove_manual_effect(human, "Strength", 0)

        assert removed.values == [3]
        assert human.roll_stats["Strength"].total == 15
        assert "manual" not in human.roll_stats["Strength"].temporary_effects

    def test_effect_on_several_stats(self, human: Character) -> None:
        """Test an effect is stored on every stat it names."""
        targets = add_manual_effect(human, "Strength", Effect(values=[2], stats_affected=["Agility"]))

        assert targets == ["Strength", "Agility"]
        assert human.roll_stats["Agility"].total == 17

    def test_resource_effect_rides_max(self, human: Character) -> None:
        """Test an effect on Health raises max and a full Health with it."""
        add_manual_effect(human, "Health", Effect(values=[20]))

        assert human.max_health == 120
        assert human.other_stats["Health"].value == 120

    def test_remove_missing(self, human: Character) -> None:
        """Test removing a missing effect is rejected."""
        with pytest.raises(ValidationError):
            remove_manual_effect(human, "Strength", 0)

    def test_unknown_operand_rejected(self, human: Character) -> None:
        """Test an effect referencing a missing stat is never stored."""
        with pytest.raises(ValidationError):
            add_manual_effect(human, "Strength", Effect(operands=["Nope"], operators=[Operator.ADD], values=[1]))

        assert "manual" not in human.roll_stats["Strength"].temporary_effects
        assert update_roll_stat(human, "Strength", base_value=16).total == 16

    def test_self_reference_rejected(self, human: Character) -> None:
        """Test an effect that makes a stat depend on itself leaves it untouched."""
        with pytest.raises(EffectResolutionError):
            add_manual_effect(
                human, "Strength", Effect(operands=["Strength"], operators=[Operator.ADD], values=[1])
            )

        assert human.roll_stats["Strength"].temporary_effects == {}
        assert human.roll_stats["Strength"].total == 15
        assert update_roll_stat(human, "Strength", base_value=16).total == 16

    def test_rejected_target_list_stores_nothing(self, human: Character) -> None:
        """Test a failing effect is dropped from every target stat."""
        effect = Effect(
            operands=["Agility"],
            operators=[Operator.MULTIPLY],
            values=[1],
            stats_affected=["Agility"],
        )
        with pytest.raises(EffectResolutionError):
            add_manual_effect(human, "Strength", effect)

        assert human.roll_stats["Strength"].temporary_effects == {}
        assert human.roll_stats["Agility"].temporary_effects == {}
