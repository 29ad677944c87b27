"""Stat names and rule constants shared across the engine.

Stat names here are the keys the ruleset's ``other_stats`` list must carry;
roll stat names (Strength, Agility, ...) come from the ruleset itself.
"""

from __future__ import annotations

# =============================================================================
# Resource and Derived Stat Names
# =============================================================================

HEALTH = "Health"
MANA = "Mana"
RACIAL_POWER = "RacialPower"
TOTAL_DEFENSE = "totalDefense"

BASE_HEALTH = "BaseHealth"
BASE_MANA = "BaseMana"
BASE_RACIAL_POWER = "BaseRacialPower"

NATURAL_HEALTH_REGEN = "naturalHealthRegen"
NATURAL_MANA_REGEN = "naturalManaRegen"
NATURAL_RACIAL_POWER_REGEN = "naturalRacialPowerRegen"

RESOURCE_BASES: dict[str, str] = {
    HEALTH: BASE_HEALTH,
    MANA: BASE_MANA,
    RACIAL_POWER: BASE_RACIAL_POWER,
}
"""Each max-valued resource and the static pool it is derived from."""

RESOURCE_REGENS: dict[str, str] = {
    HEALTH: NATURAL_HEALTH_REGEN,
    MANA: NATURAL_MANA_REGEN,
    RACIAL_POWER: NATURAL_RACIAL_POWER_REGEN,
}

DEFAULT_OTHER_STATS: tuple[str, ...] = (
    HEALTH,
    BASE_HEALTH,
    MANA,
    BASE_MANA,
    RACIAL_POWER,
    BASE_RACIAL_POWER,
    NATURAL_HEALTH_REGEN,
    NATURAL_MANA_REGEN,
    NATURAL_RACIAL_POWER_REGEN,
    TOTAL_DEFENSE,
)

# =============================================================================
# Ruleset Group Names
# =============================================================================

GROUP_ROLL = "Roll"
GROUP_OTHER = "Other"
GROUP_STATS = "Stats"

# =============================================================================
# Effects and Abilities
# =============================================================================

MANUAL_CATEGORY = "manual"
"""Category under which ad-hoc effects added from the sheet are stored."""

SPATIAL_RESERVE = "Spatial Reserve"
"""Ability that replaces the RacialPower scale constant with its own literal."""

PERMANENT_REGEN_COUNTER = "permanentRegen"
"""Counter that keeps Health regenerating through Bleeding/Taking Damage."""


__all__ = [
    "HEALTH",
    "MANA",
    "RACIAL_POWER",
    "TOTAL_DEFENSE",
    "BASE_HEALTH",
    "BASE_MANA",
    "BASE_RACIAL_POWER",
    "NATURAL_HEALTH_REGEN",
    "NATURAL_MANA_REGEN",
    "NATURAL_RACIAL_POWER_REGEN",
    "RESOURCE_BASES",
    "RESOURCE_REGENS",
    "DEFAULT_OTHER_STATS",
    "GROUP_ROLL",
    "GROUP_OTHER",
    "GROUP_STATS",
    "MANUAL_CATEGORY",
    "SPATIAL_RESERVE",
    "PERMANENT_REGEN_COUNTER",
]
