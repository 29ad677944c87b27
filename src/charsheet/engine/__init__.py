"""Stat engine: effect pipeline, passive choices, progression and turns.

Submodules:
    dice: Stat rolling (d20 library)
    pipeline: Three-stage effect pipeline and stat totals
    stats: Derived value propagation and stat inputs
    passives: Manual choices, full-auto passives and race change
    progression: Character creation and level changes
    turns: Regeneration and effect aging

Example:
    >>> from charsheet.engine import create_character, set_choice, end_turn
    >>> character = create_character(ruleset, race="Human")
    >>> end_turn(character)
"""

from __future__ import annotations

from charsheet.engine.dice import StatRoller
from charsheet.engine.passives import (
    apply_full_auto_passive,
    change_race,
    choose_option,
    has_conflict,
    remove_full_auto_passive,
    revert_choices,
    revert_choices_below_level,
    set_choice,
    sync_full_auto_passives,
)
from charsheet.engine.pipeline import (
    StatResolver,
    compute_leveled_total,
    compute_stage_value,
    sum_or_formula,
)
from charsheet.engine.progression import (
    add_level_experience,
    create_character,
    default_character,
    set_level,
)
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
from charsheet.engine.turns import TurnReport, end_turn


__all__ = [
    # Dice
    "StatRoller",
    # Pipeline
    "StatResolver",
    "compute_stage_value",
    "compute_leveled_total",
    "sum_or_formula",
    # Stats
    "adjust_value",
    "recalc_derived",
    "update_roll_stat",
    "add_stat_experience",
    "set_stat_max_experience",
    "set_resource_value",
    "quick_roll_stats",
    "add_manual_effect",
    "remove_manual_effect",
    # Passives
    "has_conflict",
    "set_choice",
    "choose_option",
    "revert_choices",
    "revert_choices_below_level",
    "apply_full_auto_passive",
    "remove_full_auto_passive",
    "sync_full_auto_passives",
    "change_race",
    # Progression
    "default_character",
    "create_character",
    "set_level",
    "add_level_experience",
    # Turns
    "TurnReport",
    "end_turn",
]
