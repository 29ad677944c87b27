"""Effect pipeline: folds a stat's active effects into its final value.

Every total runs the same three-stage contract:

1. ``initial-value`` effects, additive before multiplicative;
2. ``base-value`` effects, additive before multiplicative;
3. ``total`` effects, multiplicative before additive.

Each fold starts from the running value. Percent additive effects scale the
*original* base value handed to the stage, not the running value.

Effects may reference other stats through ``operands``. Those references are
resolved through a ``StatResolver``, which caches totals per recalculation
and fails fast on unknown stats and cyclic references.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from charsheet.core.constants import RACIAL_POWER, RESOURCE_BASES, TOTAL_DEFENSE
from charsheet.core.exceptions import EffectResolutionError
from charsheet.core.logging import get_logger
from charsheet.models.character import Character, EffectMap
from charsheet.models.effects import Effect
from charsheet.models.enums import AppliesTo, EffectType, StatKind
from charsheet.models.ruleset import build_stat_kinds


logger = get_logger(__name__)

_STAGES = (AppliesTo.INITIAL_VALUE, AppliesTo.BASE_VALUE)


class StatResolver:
    """Resolves stat totals for one character during one recalculation.

    Roll stats resolve to their computed total; every other stat resolves to
    its stored value. Totals are cached until ``invalidate`` is called.

    Example:
        >>> resolver = StatResolver(character)
        >>> resolver.total("Strength")
        15
    """

    def __init__(self, character: Character) -> None:
        self.character = character
        self._kinds = build_stat_kinds(character.roll_stats, character.other_stats)
        self._cache: dict[str, float] = {}
        self._in_progress: list[str] = []

    def kind(self, stat_name: str) -> StatKind:
        """Get the kind of a stat the character carries.

        Raises:
            EffectResolutionError: If the character has no such stat.
        """
        kind = self._kinds.get(stat_name)
        if kind is None:
            raise EffectResolutionError(
                f"Effect references unknown stat '{stat_name}'",
                stat_name=stat_name,
                chain=list(self._in_progress),
            )
        return kind

    def total(self, stat_name: str) -> float:
        """Get a stat's current total.

        Raises:
            EffectResolutionError: If the stat is unknown or its total is
                already being computed further up the chain.
        """
        if stat_name in self._cache:
            return self._cache[stat_name]
        if stat_name in self._in_progress:
            raise EffectResolutionError(
                f"Cyclic stat reference through '{stat_name}'",
                stat_name=stat_name,
                chain=[*self._in_progress, stat_name],
            )

        if self.kind(stat_name) is not StatKind.ROLL:
            value = self.character.other_stats[stat_name].value
            self._cache[stat_name] = value
            return value

        self._in_progress.append(stat_name)
        try:
            value = compute_roll_total(self, stat_name)
        finally:
            self._in_progress.pop()
        self._cache[stat_name] = value
        return value

    def invalidate(self, stat_name: str | None = None) -> None:
        """Drop cached totals, all of them when no name is given."""
        if stat_name is None:
            self._cache.clear()
        else:
            self._cache.pop(stat_name, None)


def active_effects(temporary_effects: EffectMap) -> list[Effect]:
    """Flatten a stat's effect map, categories in insertion order."""
    return [effect for effects in temporary_effects.values() for effect in effects]


def sum_or_formula(resolver: StatResolver, effect: Effect) -> float:
    """Resolve an effect's numeric amount.

    With operands, each ``(operand, operator, value)`` triple applies the
    operator between the operand's current total and the literal, and the
    results are summed. Without operands the literal values are summed.

    Raises:
        EffectResolutionError: If an operand cannot be resolved or the
            formula divides by zero.
    """
    if not effect.operands:
        return float(sum(effect.values))

    operators = effect.operators or []
    amount = 0.0
    for operand, op, value in zip(effect.operands, operators, effect.values, strict=True):
        try:
            amount += op.function(resolver.total(operand), value)
        except ZeroDivisionError as exc:
            raise EffectResolutionError(
                f"Effect divides '{operand}' by zero",
                stat_name=operand,
            ) from exc
    return amount


def _fold(
    resolver: StatResolver,
    running: float,
    base_value: float,
    effects: list[Effect],
    order: tuple[EffectType, EffectType],
) -> float:
    for effect_type in order:
        for effect in effects:
            if effect.type is not effect_type:
                continue
            if effect_type is EffectType.ADD:
                if effect.is_percent:
                    running += base_value * (sum_or_formula(resolver, effect) / 100)
                elif effect.operands:
                    running += sum_or_formula(resolver, effect)
                elif effect.values:
                    running += effect.values[0]
            else:
                factor = sum_or_formula(resolver, effect)
                running *= factor / 100 if effect.is_percent else factor
    return running


def compute_stage_value(
    resolver: StatResolver,
    base_value: float,
    effects: Iterable[Effect],
) -> float:
    """Fold effects into ``base_value`` through all three stages.

    Args:
        resolver: Resolves stats referenced by effect operands.
        base_value: Value before any effect.
        effects: Effects to fold; callers pre-filter by stage where needed.

    Returns:
        The running value after every stage.

    Example:
        >>> compute_stage_value(resolver, 5, [plus_ten_total, times_two_total])
        20.0
    """
    effects = list(effects)
    running = float(base_value)
    for stage in _STAGES:
        bucket = [effect for effect in effects if effect.applies_to is stage]
        running = _fold(resolver, running, base_value, bucket, (EffectType.ADD, EffectType.MULTIPLY))
    totals = [effect for effect in effects if effect.applies_to is AppliesTo.TOTAL]
    return _fold(resolver, running, base_value, totals, (EffectType.MULTIPLY, EffectType.ADD))


def compute_leveled_total(
    resolver: StatResolver,
    effects: Iterable[Effect],
    level: int,
    initial_value: float,
    flat_bonus: float,
) -> float:
    """Scale a base-value-adjusted initial value by level, then apply totals."""
    effects = list(effects)
    adjusted_base = compute_stage_value(
        resolver,
        initial_value,
        [effect for effect in effects if effect.applies_to is AppliesTo.BASE_VALUE],
    )
    running = adjusted_base * level + flat_bonus
    return compute_stage_value(
        resolver,
        running,
        [effect for effect in effects if effect.applies_to is AppliesTo.TOTAL],
    )


def _initial_effects(effects: list[Effect]) -> list[Effect]:
    return [effect for effect in effects if effect.applies_to is AppliesTo.INITIAL_VALUE]


def compute_roll_total(resolver: StatResolver, stat_name: str) -> int:
    """Compute a roll stat's total.

    ``(base_value + experience_bonus) * racial_change`` runs through the
    initial-value effects and is rounded up, then through the leveled total
    at level 1 with the equipment bonus, rounded up again.
    """
    stat = resolver.character.roll_stats[stat_name]
    effects = active_effects(stat.temporary_effects)
    combined = stat.base_value + stat.experience_bonus
    adjusted_initial = math.ceil(
        compute_stage_value(resolver, combined * stat.racial_change, _initial_effects(effects))
    )
    return math.ceil(
        compute_leveled_total(resolver, effects, 1, adjusted_initial, stat.equipment)
    )


def racial_power_override(character: Character) -> tuple[float | None, float]:
    """Get the fixed RacialPower max and flat bonus granted by active abilities."""
    fixed: float | None = None
    bonus = 0.0
    for record in character.unique_identifiers.values():
        if record.racial_power_max is not None and fixed is None:
            fixed = record.racial_power_max
        if record.racial_power_bonus is not None:
            bonus += record.racial_power_bonus
    return fixed, bonus


def compute_resource_max(resolver: StatResolver, resource: str) -> float:
    """Compute the max of Health, Mana or RacialPower.

    The base is ``base_pool.value * base_pool.racial_change * racial_change``,
    run through the initial-value effects and floored, then leveled by the
    character level. An ability fixing the RacialPower max bypasses the
    pipeline entirely.
    """
    character = resolver.character
    flat_bonus = 0.0
    if resource == RACIAL_POWER:
        fixed, flat_bonus = racial_power_override(character)
        if fixed is not None:
            return fixed

    stat = character.other_stats[resource]
    base_pool = character.other_stats[RESOURCE_BASES[resource]]
    effects = active_effects(stat.temporary_effects)
    base = base_pool.value * base_pool.racial_change * stat.racial_change
    initial = math.floor(compute_stage_value(resolver, base, _initial_effects(effects)))
    total = compute_leveled_total(resolver, effects, character.level, initial, flat_bonus)
    return float(math.floor(total))


def compute_total_defense(resolver: StatResolver) -> float:
    """Sum equipped armor defense and run it through the pipeline at level 1."""
    character = resolver.character
    armor = sum(piece.defense for piece in character.armor_inventory if piece.equipped)
    effects = active_effects(character.other_stats[TOTAL_DEFENSE].temporary_effects)
    initial = compute_stage_value(resolver, armor, _initial_effects(effects))
    return compute_leveled_total(resolver, effects, 1, initial, 0.0)


__all__ = [
    "StatResolver",
    "active_effects",
    "sum_or_formula",
    "compute_stage_value",
    "compute_leveled_total",
    "compute_roll_total",
    "racial_power_override",
    "compute_resource_max",
    "compute_total_defense",
]
