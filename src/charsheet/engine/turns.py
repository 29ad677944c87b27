"""Regeneration and effect aging at the end of a turn."""

from __future__ import annotations

from dataclasses import dataclass, field

from charsheet.core.config import Settings
from charsheet.core.constants import (
    HEALTH,
    MANA,
    PERMANENT_REGEN_COUNTER,
    RACIAL_POWER,
    RESOURCE_REGENS,
)
from charsheet.core.logging import get_logger
from charsheet.engine.stats import recalc_derived
from charsheet.models.character import Character, EffectMap
from charsheet.models.enums import CharacterState


logger = get_logger(__name__)


@dataclass
class TurnReport:
    """What one call to ``end_turn`` changed.

    Attributes:
        regenerated: Amount actually restored per resource, after clamping.
        expired_effects: Number of effects dropped per stat.
    """

    regenerated: dict[str, float] = field(default_factory=dict)
    expired_effects: dict[str, int] = field(default_factory=dict)


def natural_regen(character: Character, resource: str) -> float:
    """Per-turn natural regeneration of a resource before gating."""
    regen = character.other_stats[RESOURCE_REGENS[resource]]
    return regen.value * regen.racial_change * character.get_max(resource)


def health_regen_blocked(character: Character) -> bool:
    """Bleeding or taking damage in a fight stops Health regeneration.

    An active permanent-regen counter overrides the block.
    """
    if character.counters.get(PERMANENT_REGEN_COUNTER, 0) > 0:
        return False
    wounded = character.has_state(CharacterState.BLEEDING) or character.has_state(CharacterState.TAKING_DAMAGE)
    return wounded and character.has_state(CharacterState.IN_FIGHT)


def _regenerate(character: Character, resource: str, amount: float) -> float:
    stat = character.other_stats[resource]
    before = stat.value
    stat.value = min(max(0.0, before + amount), character.get_max(resource))
    return stat.value - before


def age_effects(temporary_effects: EffectMap) -> int:
    """Decrement finite durations and drop effects that ran out.

    Infinite effects are never touched. Emptied categories are removed.

    Returns:
        Number of effects dropped.
    """
    dropped = 0
    for category in list(temporary_effects):
        kept = []
        for effect in temporary_effects[category]:
            if effect.duration is not None:
                effect.duration = max(0, effect.duration - 1)
                if effect.duration == 0:
                    dropped += 1
                    continue
            kept.append(effect)
        if kept:
            temporary_effects[category] = kept
        else:
            del temporary_effects[category]
    return dropped


def end_turn(character: Character, *, settings: Settings | None = None) -> TurnReport:
    """Apply one turn of regeneration and age every timed effect.

    Args:
        character: Character to update.
        settings: Settings passed through to the recalculation.

    Returns:
        A report of restored amounts and expired effects.
    """
    report = TurnReport()
    multiplier = 2.0 if character.has_state(CharacterState.SLEEPING) else 1.0

    health = 0.0 if health_regen_blocked(character) else natural_regen(character, HEALTH) * multiplier
    report.regenerated[HEALTH] = _regenerate(character, HEALTH, health)

    mana = natural_regen(character, MANA) * multiplier
    report.regenerated[MANA] = _regenerate(character, MANA, mana)

    racial_power = natural_regen(character, RACIAL_POWER) * multiplier
    racial_power += sum(
        record.racial_power_regen
        for record in character.unique_identifiers.values()
        if record.racial_power_regen is not None
    )
    report.regenerated[RACIAL_POWER] = _regenerate(character, RACIAL_POWER, racial_power)

    for stats in (character.roll_stats, character.other_stats):
        for stat_name, stat in stats.items():
            if not stat.temporary_effects:
                continue
            dropped = age_effects(stat.temporary_effects)
            if dropped:
                report.expired_effects[stat_name] = dropped

    recalc_derived(character, settings=settings)
    logger.info(
        "Turn ended",
        regenerated=report.regenerated,
        expired=sum(report.expired_effects.values()),
    )
    return report


__all__ = [
    "TurnReport",
    "natural_regen",
    "health_regen_blocked",
    "age_effects",
    "end_turn",
]
