"""Pydantic V2 schemas for the character aggregate.

The Character is pure data: every behaviour (totals, choices, turns,
history) lives in ``charsheet.engine`` and ``charsheet.storage``. Models are
mutable because the engine edits them in place; snapshots for undo/redo are
taken from their serialized form, never by aliasing.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from charsheet.core.constants import HEALTH, MANA, RACIAL_POWER
from charsheet.models.effects import Effect
from charsheet.models.enums import CharacterState, ChoiceCalc


# category -> list of effects stored under it
EffectMap = dict[str, list[Effect]]


class Component(BaseModel):
    """Base class for the mutable pieces of a character."""

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        extra="ignore",
    )


# =============================================================================
# Stats
# =============================================================================


class RollStat(Component):
    """A player-rolled attribute such as Strength.

    Attributes:
        base_value: The rolled value.
        experience_bonus: Points gained from stat experience; never negative.
        racial_change: Multiplier seeded by race and adjusted by choices.
        equipment: Flat bonus from equipment.
        experience: Experience towards the next point.
        max_experience: Experience needed for one point.
        temporary_effects: Effects keyed by category.
        total: Last computed total. Recomputed, never persisted.
    """

    base_value: int = 0
    experience_bonus: int = Field(default=0, ge=0)
    racial_change: float = 1.0
    equipment: float = 0.0
    experience: int = Field(default=0, ge=0)
    max_experience: int = Field(default=7, ge=1)
    temporary_effects: EffectMap = Field(default_factory=dict)
    total: float = 0.0


class DerivedStat(Component):
    """A non-rolled stat: a resource, its base pool, a regen rate or defense.

    Attributes:
        value: Current value (for resources, kept within ``[0, max]``).
        racial_change: Multiplier seeded by race and adjusted by choices.
        temporary_effects: Effects keyed by category.
    """

    value: float = 0.0
    racial_change: float = 1.0
    temporary_effects: EffectMap = Field(default_factory=dict)


# =============================================================================
# Choices and Abilities
# =============================================================================


class Choice(Component):
    """A player selection in a manual passive slot.

    Attributes:
        type: Option key the selection came from.
        calc: How the value changes the named stat.
        value: Amount added/multiplied/counted; ``None`` for flag options.
        stat_name: Stat the choice claims, if any.
        label: Display label.
        level: Minimum character level to keep the choice.
        unique: Conflict group id declared by the option.
    """

    type: str = Field(min_length=1)
    calc: ChoiceCalc = ChoiceCalc.ADD
    value: float | None = None
    stat_name: str | None = None
    label: str = ""
    level: int | None = Field(default=None, ge=1)
    unique: str | None = None

    @model_validator(mode="after")
    def validate_value(self) -> "Choice":
        """Reject choices whose revert could not be exact."""
        if self.stat_name and self.calc != ChoiceCalc.COUNT and self.value is None:
            msg = f"choice on stat '{self.stat_name}' needs a value for calc '{self.calc}'"
            raise ValueError(msg)
        if self.calc == ChoiceCalc.MULT and self.value == 0:
            msg = "multiplicative choice value must be non-zero"
            raise ValueError(msg)
        return self


class AbilityRecord(Component):
    """An active full-auto passive, keyed by its identifier.

    Attributes:
        identifier: Globally unique ability identifier.
        name: Display name (the upgrade name when an upgrade applies).
        category: Race or class the ability comes from.
        level: Level of the applied upgrade.
        stats: Union of stats its effects were pushed into.
        values: Literal values carried by the ability.
        racial_power_max: Fixed RacialPower max while active.
        racial_power_bonus: Flat RacialPower max bonus while active.
        racial_power_regen: RacialPower restored each turn while active.
    """

    identifier: str = Field(min_length=1)
    name: str = ""
    category: str = ""
    level: int = 1
    stats: list[str] = Field(default_factory=list)
    values: list[float] = Field(default_factory=list)
    racial_power_max: float | None = None
    racial_power_bonus: float | None = None
    racial_power_regen: float | None = None


# =============================================================================
# Inventory (opaque pass-through apart from armor defense)
# =============================================================================


class ArmorPiece(BaseModel):
    """An armor inventory row. Only ``defense`` and ``equipped`` are read."""

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    name: str = ""
    defense: float = 0.0
    equipped: bool = False


# =============================================================================
# Character
# =============================================================================


# category -> conflict group -> slot id -> choice
StatChoices = dict[str, dict[str, dict[str, Choice]]]
# category -> conflict group -> stat name -> slot ids
StatsAffected = dict[str, dict[str, dict[str, set[str]]]]


class Character(BaseModel):
    """The root aggregate: one per roster slot.

    Attributes:
        name: Character name.
        race: Current race name.
        classes: Class names.
        specializations: Chosen specializations per class.
        level: Character level.
        level_experience: Experience towards the next level.
        level_max_experience: Experience needed for the next level.
        purse: Money.
        roll_stats: Rollable attributes by name.
        other_stats: Resources, pools, regen rates and defense by name.
        max_health: Computed Health ceiling.
        max_mana: Computed Mana ceiling.
        max_racial_power: Computed RacialPower ceiling.
        states: Combat/rest flags.
        counters: Counter stats driven by ``count`` choices.
        unique_identifiers: Active full-auto passives.
        stat_choices: Player passive selections.
        stats_affected: Reverse index of slots claiming each stat.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
    )

    name: str = ""
    race: str = Field(min_length=1)
    classes: list[str] = Field(default_factory=list)
    specializations: dict[str, list[str]] = Field(default_factory=dict)
    level: int = Field(default=1, ge=1)
    level_experience: int = Field(default=0, ge=0)
    level_max_experience: int = Field(default=100, ge=1)
    purse: float = 0.0

    roll_stats: dict[str, RollStat] = Field(default_factory=dict)
    other_stats: dict[str, DerivedStat] = Field(default_factory=dict)

    max_health: float = 0.0
    max_mana: float = 0.0
    max_racial_power: float = 0.0

    states: dict[str, bool] = Field(default_factory=dict)
    counters: dict[str, int] = Field(default_factory=dict)

    unique_identifiers: dict[str, AbilityRecord] = Field(default_factory=dict)
    stat_choices: StatChoices = Field(default_factory=dict)
    stats_affected: StatsAffected = Field(default_factory=dict)

    weapon_inventory: list[dict[str, Any]] = Field(default_factory=list)
    armor_inventory: list[ArmorPiece] = Field(default_factory=list)
    general_inventory: list[dict[str, Any]] = Field(default_factory=list)
    section_visibility: dict[str, bool] = Field(default_factory=dict)
    personal_notes: str = ""

    def has_state(self, state: CharacterState) -> bool:
        """Check whether a combat/rest flag is set."""
        return self.states.get(state.value, False)

    def get_max(self, resource: str) -> float:
        """Get the computed ceiling of a resource stat."""
        return getattr(self, _MAX_FIELDS[resource])

    def set_max(self, resource: str, value: float) -> None:
        """Store the computed ceiling of a resource stat."""
        setattr(self, _MAX_FIELDS[resource], value)


_MAX_FIELDS: dict[str, str] = {
    HEALTH: "max_health",
    MANA: "max_mana",
    RACIAL_POWER: "max_racial_power",
}

COMPUTED_FIELDS: frozenset[str] = frozenset(_MAX_FIELDS.values())
"""Character fields recomputed from inputs and left out of persisted data."""


__all__ = [
    "EffectMap",
    "Component",
    "RollStat",
    "DerivedStat",
    "Choice",
    "AbilityRecord",
    "ArmorPiece",
    "StatChoices",
    "StatsAffected",
    "Character",
    "COMPUTED_FIELDS",
]
