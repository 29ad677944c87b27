"""Update propagation and stat input handling.

``recalc_derived`` is the single place computed values are refreshed: the
three resource maxes, total defense, the level experience threshold and the
cached roll stat totals. Every mutating entry point ends by calling it.
"""

from __future__ import annotations

from charsheet.core.config import Settings, get_settings
from charsheet.core.constants import (
    HEALTH,
    MANA,
    MANUAL_CATEGORY,
    RACIAL_POWER,
    TOTAL_DEFENSE,
)
from charsheet.core.exceptions import ValidationError
from charsheet.core.logging import get_logger
from charsheet.engine.dice import StatRoller
from charsheet.engine.pipeline import (
    StatResolver,
    compute_resource_max,
    compute_total_defense,
)
from charsheet.models.character import Character, DerivedStat, RollStat
from charsheet.models.effects import Effect


logger = get_logger(__name__)

RESOURCES: tuple[str, ...] = (HEALTH, MANA, RACIAL_POWER)
"""Max-valued resources, in recalculation order."""


def adjust_value(old_max: float, current: float, new_max: float) -> float:
    """Carry a current value across a max change.

    A value sitting exactly at its old ceiling rides the ceiling up or down;
    a value below the ceiling is only ever clamped down.

    Example:
        >>> adjust_value(100, 100, 120)
        120
        >>> adjust_value(100, 80, 120)
        80
    """
    if current == old_max:
        return new_max
    return min(current, new_max)


def calculate_level_max_experience(level: int, settings: Settings | None = None) -> int:
    """Experience needed to advance from ``level``."""
    settings = settings or get_settings()
    return settings.rules.level_max_experience


def recalc_derived(
    character: Character,
    *,
    settings: Settings | None = None,
    clamp_only: bool = False,
) -> None:
    """Recompute every derived value of a character in place.

    Order: max Health, max Mana, max RacialPower, total defense, level
    experience threshold, then the roll stat totals. Later steps read the
    results of earlier ones.

    Args:
        character: Character to update.
        settings: Settings to read rule constants from.
        clamp_only: Only clamp current values into their new maxes instead
            of letting values at the old ceiling ride it. Used when priming a
            freshly loaded character, whose old maxes are unknown.

    Raises:
        EffectResolutionError: If an effect cannot be resolved.
    """
    resolver = StatResolver(character)

    for resource in RESOURCES:
        stat = character.other_stats[resource]
        old_max = character.get_max(resource)
        new_max = compute_resource_max(resolver, resource)
        if clamp_only:
            current = min(stat.value, new_max)
        else:
            current = adjust_value(old_max, stat.value, new_max)
        character.set_max(resource, new_max)
        stat.value = max(0.0, current)
        resolver.invalidate()

    character.other_stats[TOTAL_DEFENSE].value = compute_total_defense(resolver)
    resolver.invalidate()

    character.level_max_experience = calculate_level_max_experience(character.level, settings)

    for stat_name, roll_stat in character.roll_stats.items():
        roll_stat.total = resolver.total(stat_name)


# =============================================================================
# Stat Inputs
# =============================================================================


def _roll_stat(character: Character, stat_name: str) -> RollStat:
    stat = character.roll_stats.get(stat_name)
    if stat is None:
        raise ValidationError(
            f"Unknown roll stat '{stat_name}'",
            field_name="stat_name",
            invalid_value=stat_name,
        )
    return stat


def _any_stat(character: Character, stat_name: str) -> RollStat | DerivedStat:
    if stat_name in character.roll_stats:
        return character.roll_stats[stat_name]
    if stat_name in character.other_stats:
        return character.other_stats[stat_name]
    raise ValidationError(
        f"Unknown stat '{stat_name}'",
        field_name="stat_name",
        invalid_value=stat_name,
    )


def _roll_over_experience(stat: RollStat) -> None:
    while stat.experience >= stat.max_experience > 0:
        stat.experience -= stat.max_experience
        stat.experience_bonus += 1


def update_roll_stat(
    character: Character,
    stat_name: str,
    *,
    base_value: int | None = None,
    equipment: float | None = None,
) -> RollStat:
    """Set a roll stat's rolled value or equipment bonus."""
    stat = _roll_stat(character, stat_name)
    if base_value is not None:
        stat.base_value = base_value
    if equipment is not None:
        stat.equipment = equipment
    recalc_derived(character)
    logger.info(
        "Roll stat updated",
        stat=stat_name,
        base_value=stat.base_value,
        equipment=stat.equipment,
        total=stat.total,
    )
    return stat


def add_stat_experience(character: Character, stat_name: str, amount: int) -> RollStat:
    """Add experience to a roll stat, converting full bars into bonus points.

    Raises:
        ValidationError: If the stat is unknown or the result is negative.
    """
    stat = _roll_stat(character, stat_name)
    if stat.experience + amount < 0:
        raise ValidationError(
            "Stat experience cannot become negative",
            field_name="experience",
            invalid_value=stat.experience + amount,
        )
    stat.experience += amount
    _roll_over_experience(stat)
    recalc_derived(character)
    logger.info(
        "Stat experience added",
        stat=stat_name,
        amount=amount,
        experience=stat.experience,
        experience_bonus=stat.experience_bonus,
    )
    return stat


def set_stat_max_experience(character: Character, stat_name: str, max_experience: int) -> RollStat:
    """Change the experience needed for one point; never below 1."""
    stat = _roll_stat(character, stat_name)
    stat.max_experience = max(1, max_experience)
    _roll_over_experience(stat)
    recalc_derived(character)
    logger.info("Stat max experience set", stat=stat_name, max_experience=stat.max_experience)
    return stat


def set_resource_value(character: Character, resource: str, value: float) -> float:
    """Set the current value of Health, Mana or RacialPower, clamped to ``[0, max]``.

    Raises:
        ValidationError: If ``resource`` is not a max-valued resource.
    """
    if resource not in RESOURCES:
        raise ValidationError(
            f"'{resource}' is not a resource",
            field_name="resource",
            invalid_value=resource,
        )
    stat = character.other_stats[resource]
    stat.value = min(max(0.0, value), character.get_max(resource))
    logger.info("Resource set", resource=resource, value=stat.value)
    return stat.value


def quick_roll_stats(
    character: Character,
    roller: StatRoller | None = None,
    *,
    settings: Settings | None = None,
) -> dict[str, int]:
    """Re-roll every roll stat's base value and recompute."""
    settings = settings or get_settings()
    roller = roller or StatRoller()
    rolled = roller.roll_stats(
        list(character.roll_stats),
        settings.rules.stat_roll_min,
        settings.rules.stat_roll_max,
    )
    for stat_name, value in rolled.items():
        character.roll_stats[stat_name].base_value = value
    recalc_derived(character, settings=settings)
    logger.info("Stats rolled", rolled=rolled)
    return rolled


# =============================================================================
# Manual Effects
# =============================================================================


def add_manual_effect(character: Character, stat_name: str, effect: Effect) -> list[str]:
    """Add an ad-hoc effect under the ``manual`` category.

    The effect is stored on ``stat_name`` and on every stat it names in
    ``stats_affected``. It is first resolved on a copy of the character, so
    an effect that cannot be resolved leaves the character untouched.

    Returns:
        The stats the effect was added to.

    Raises:
        ValidationError: If any target stat or operand is unknown.
        EffectResolutionError: If the effect makes a stat reference itself.
    """
    targets = list(dict.fromkeys([stat_name, *(effect.stats_affected or [])]))
    for target in targets:
        _any_stat(character, target)
    for operand in effect.operands or []:
        _any_stat(character, operand)

    trial = character.model_copy(deep=True)
    _store_manual_effect(trial, targets, effect)
    recalc_derived(trial)

    _store_manual_effect(character, targets, effect)
    recalc_derived(character)
    logger.info("Manual effect added", stats=targets, type=effect.type, duration=effect.duration)
    return targets


def _store_manual_effect(character: Character, targets: list[str], effect: Effect) -> None:
    for target in targets:
        stored = effect.model_copy(deep=True, update={"category": MANUAL_CATEGORY})
        _any_stat(character, target).temporary_effects.setdefault(MANUAL_CATEGORY, []).append(stored)


def remove_manual_effect(character: Character, stat_name: str, index: int) -> Effect:
    """Remove one manual effect from a stat by its position.

    Raises:
        ValidationError: If the stat is unknown or has no effect at ``index``.
    """
    stat = _any_stat(character, stat_name)
    effects = stat.temporary_effects.get(MANUAL_CATEGORY, [])
    if not 0 <= index < len(effects):
        raise ValidationError(
            f"No manual effect at index {index} on '{stat_name}'",
            field_name="index",
            invalid_value=index,
        )
    removed = effects.pop(index)
    if not effects:
        del stat.temporary_effects[MANUAL_CATEGORY]
    recalc_derived(character)
    logger.info("Manual effect removed", stat=stat_name, index=index)
    return removed


__all__ = [
    "RESOURCES",
    "adjust_value",
    "calculate_level_max_experience",
    "recalc_derived",
    "update_roll_stat",
    "add_stat_experience",
    "set_stat_max_experience",
    "set_resource_value",
    "quick_roll_stats",
    "add_manual_effect",
    "remove_manual_effect",
]
