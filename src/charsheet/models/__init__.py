"""Pydantic V2 schemas for characters, effects and static rule data.

Submodules:
    enums: Stat kinds, effect types and pipeline stages.
    effects: Effect and formula records.
    character: The Character aggregate and its components.
    ruleset: Static data provider for races, classes and passives.
"""

from __future__ import annotations

from charsheet.models.character import (
    COMPUTED_FIELDS,
    AbilityRecord,
    ArmorPiece,
    Character,
    Choice,
    DerivedStat,
    RollStat,
)
from charsheet.models.effects import Effect, Formula
from charsheet.models.enums import (
    AppliesTo,
    CharacterState,
    ChoiceCalc,
    EffectType,
    Operator,
    StatKind,
)
from charsheet.models.ruleset import (
    ClassDefinition,
    FullAutoPassive,
    ManualPassive,
    PassiveOption,
    RaceDefinition,
    ResolvedAbility,
    Ruleset,
    StarterItems,
    load_ruleset,
)


__all__ = [
    # Enums
    "StatKind",
    "EffectType",
    "AppliesTo",
    "Operator",
    "ChoiceCalc",
    "CharacterState",
    # Effects
    "Effect",
    "Formula",
    # Character
    "Character",
    "RollStat",
    "DerivedStat",
    "Choice",
    "AbilityRecord",
    "ArmorPiece",
    "COMPUTED_FIELDS",
    # Ruleset
    "Ruleset",
    "RaceDefinition",
    "ClassDefinition",
    "ManualPassive",
    "PassiveOption",
    "FullAutoPassive",
    "ResolvedAbility",
    "StarterItems",
    "load_ruleset",
]
