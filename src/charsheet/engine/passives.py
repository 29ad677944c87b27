"""Passive choice manager.

Manual passives are chosen by the player slot by slot. Each slot's choice is
stored in ``character.stat_choices`` and indexed by the stat it claims in
``character.stats_affected``; within one conflict group a stat can be claimed
by at most one slot. Applying a choice changes the claimed stat's
``racial_change`` (``add``/``mult``) or a counter (``count``); reverting it
applies the exact inverse.

Full-auto passives are granted by race, class and level. Their formulas
become infinite-duration effects tagged with the ability identifier, and the
ability itself is recorded in ``character.unique_identifiers`` so it can be
removed without leftovers.

Every validation runs before the first write: a rejected operation leaves the
character untouched.
"""

from __future__ import annotations

from collections.abc import Iterable

from charsheet.core.config import Settings, get_settings
from charsheet.core.constants import BASE_RACIAL_POWER, SPATIAL_RESERVE
from charsheet.core.exceptions import ChoiceConflictError, RulesetLookupError, ValidationError
from charsheet.core.logging import get_logger
from charsheet.engine.stats import recalc_derived
from charsheet.models.character import AbilityRecord, Character, Choice, DerivedStat, RollStat
from charsheet.models.enums import ChoiceCalc
from charsheet.models.ruleset import PassiveOption, ResolvedAbility, Ruleset


logger = get_logger(__name__)


# =============================================================================
# Manual Choices
# =============================================================================


def _stat(character: Character, stat_name: str) -> RollStat | DerivedStat | None:
    if stat_name in character.roll_stats:
        return character.roll_stats[stat_name]
    return character.other_stats.get(stat_name)


def has_conflict(
    character: Character,
    category: str,
    conflict_group: str,
    stat_name: str,
    slot_id: str,
) -> bool:
    """Check whether another slot of the group already claims ``stat_name``."""
    slots = character.stats_affected.get(category, {}).get(conflict_group, {}).get(stat_name, set())
    return any(other != slot_id for other in slots)


def _apply_numeric(character: Character, choice: Choice, *, revert: bool) -> None:
    if choice.stat_name is None:
        return
    if choice.calc is ChoiceCalc.COUNT:
        count = character.counters.get(choice.stat_name, 0) + (-1 if revert else 1)
        if count:
            character.counters[choice.stat_name] = count
        else:
            character.counters.pop(choice.stat_name, None)
        return

    stat = _stat(character, choice.stat_name)
    if stat is None:
        return
    value = choice.value
    if choice.calc is ChoiceCalc.MULT:
        stat.racial_change = stat.racial_change / value if revert else stat.racial_change * value
    else:
        stat.racial_change = stat.racial_change - value if revert else stat.racial_change + value


def _revert_slot(character: Character, category: str, conflict_group: str, slot_id: str) -> Choice | None:
    """Undo one slot's choice and drop it from both indexes."""
    group_choices = character.stat_choices.get(category, {}).get(conflict_group, {})
    choice = group_choices.pop(slot_id, None)
    if choice is None:
        return None

    _apply_numeric(character, choice, revert=True)

    if choice.stat_name is not None:
        group_affected = character.stats_affected.get(category, {}).get(conflict_group, {})
        slots = group_affected.get(choice.stat_name)
        if slots is not None:
            slots.discard(slot_id)
            if not slots:
                del group_affected[choice.stat_name]
        _prune(character.stats_affected, category, conflict_group)

    _prune(character.stat_choices, category, conflict_group)
    return choice


def _prune(index: dict, category: str, conflict_group: str) -> None:
    groups = index.get(category)
    if groups is None:
        return
    if conflict_group in groups and not groups[conflict_group]:
        del groups[conflict_group]
    if not groups:
        del index[category]


def set_choice(
    character: Character,
    category: str,
    conflict_group: str,
    slot_id: str,
    new_choice: Choice | None,
    *,
    settings: Settings | None = None,
) -> Choice | None:
    """Replace, clear or set the choice in one slot.

    Args:
        character: Character to update.
        category: Race or class the passive belongs to.
        conflict_group: Group within which a stat may be claimed once.
        slot_id: UI slot the choice comes from.
        new_choice: The new selection, or None to clear the slot.
        settings: Settings passed through to the recalculation.

    Returns:
        The slot's previous choice, if any.

    Raises:
        ChoiceConflictError: If another slot of the group claims the stat.
        ValidationError: If the choice names a stat the character lacks.
    """
    previous = character.stat_choices.get(category, {}).get(conflict_group, {}).get(slot_id)

    if new_choice is not None and new_choice.stat_name is not None:
        if has_conflict(character, category, conflict_group, new_choice.stat_name, slot_id):
            logger.info(
                "Choice rejected",
                category=category,
                conflict_group=conflict_group,
                slot_id=slot_id,
                stat=new_choice.stat_name,
            )
            raise ChoiceConflictError(
                f"'{new_choice.stat_name}' is already chosen in '{conflict_group}'",
                category=category,
                conflict_group=conflict_group,
                stat_name=new_choice.stat_name,
                slot_id=slot_id,
                previous_choice=previous,
            )
        if new_choice.calc is not ChoiceCalc.COUNT and _stat(character, new_choice.stat_name) is None:
            raise ValidationError(
                f"Unknown stat '{new_choice.stat_name}'",
                field_name="stat_name",
                invalid_value=new_choice.stat_name,
            )

    if previous is not None:
        _revert_slot(character, category, conflict_group, slot_id)

    if new_choice is not None:
        stored = new_choice.model_copy(deep=True)
        _apply_numeric(character, stored, revert=False)
        if stored.stat_name is not None:
            (
                character.stats_affected.setdefault(category, {})
                .setdefault(conflict_group, {})
                .setdefault(stored.stat_name, set())
                .add(slot_id)
            )
        character.stat_choices.setdefault(category, {}).setdefault(conflict_group, {})[slot_id] = stored

    recalc_derived(character, settings=settings)
    logger.info(
        "Choice set",
        category=category,
        conflict_group=conflict_group,
        slot_id=slot_id,
        stat=new_choice.stat_name if new_choice else None,
        cleared=new_choice is None,
    )
    return previous


def make_choice(option: PassiveOption, *, stat_name: str | None = None) -> Choice:
    """Build the Choice a ruleset option produces for a chosen stat."""
    return Choice(
        type=option.type,
        calc=option.calc,
        value=option.value,
        stat_name=stat_name,
        label=option.label,
        level=option.level,
        unique=option.unique,
    )


def choose_option(
    character: Character,
    ruleset: Ruleset,
    category: str,
    passive_name: str,
    slot_id: str,
    option_type: str | None,
    *,
    stat_name: str | None = None,
    value: float | None = None,
    settings: Settings | None = None,
) -> Choice | None:
    """Select a ruleset option of a manual passive for a slot.

    The conflict group is the passive's ``unique`` id, else the option's,
    else the passive name. ``value`` disambiguates options expanded from one
    template. Passing ``option_type=None`` clears the slot.

    Raises:
        RulesetLookupError: If the category or passive is unknown.
        ValidationError: If no option matches or the stat is not applicable.
        ChoiceConflictError: If the stat is already claimed in the group.
    """
    passives = ruleset.manual_passives(category)
    passive = passives.get(passive_name)
    if passive is None:
        logger.warning("Unknown manual passive", category=category, passive=passive_name)
        raise RulesetLookupError(
            f"Unknown passive '{passive_name}' for '{category}'",
            kind="passive",
            name=passive_name,
        )

    if option_type is None:
        return set_choice(character, category, passive.unique or passive_name, slot_id, None, settings=settings)

    option = next(
        (
            candidate
            for candidate in passive.options
            if candidate.type == option_type and (value is None or candidate.value == value)
        ),
        None,
    )
    if option is None:
        raise ValidationError(
            f"No option '{option_type}' in '{passive_name}'",
            field_name="option_type",
            invalid_value=option_type,
        )
    if stat_name is not None and option.applicable_stats and stat_name not in option.applicable_stats:
        raise ValidationError(
            f"'{stat_name}' is not applicable to '{option_type}'",
            field_name="stat_name",
            invalid_value=stat_name,
        )

    conflict_group = passive.unique or option.unique or passive_name
    return set_choice(
        character,
        category,
        conflict_group,
        slot_id,
        make_choice(option, stat_name=stat_name),
        settings=settings,
    )


def revert_choices(character: Character, category: str, conflict_group: str | None = None) -> int:
    """Revert every slot of a category, or of one group within it.

    Does not recompute derived values.

    Returns:
        Number of slots reverted.
    """
    groups = [conflict_group] if conflict_group is not None else list(character.stat_choices.get(category, {}))
    reverted = 0
    for group in groups:
        for slot_id in list(character.stat_choices.get(category, {}).get(group, {})):
            if _revert_slot(character, category, group, slot_id) is not None:
                reverted += 1
    if conflict_group is None:
        character.stats_affected.pop(category, None)
        character.stat_choices.pop(category, None)
    else:
        character.stats_affected.get(category, {}).pop(conflict_group, None)
        _prune(character.stats_affected, category, conflict_group)
    return reverted


def revert_choices_below_level(character: Character, *, settings: Settings | None = None) -> list[tuple[str, str, str]]:
    """Revert every choice whose required level exceeds the character level.

    Returns:
        The ``(category, conflict_group, slot_id)`` of each reverted slot.
    """
    doomed = [
        (category, group, slot_id)
        for category, groups in character.stat_choices.items()
        for group, slots in groups.items()
        for slot_id, choice in slots.items()
        if choice.level is not None and choice.level > character.level
    ]
    for category, group, slot_id in doomed:
        _revert_slot(character, category, group, slot_id)
    if doomed:
        recalc_derived(character, settings=settings)
        logger.info("Choices reverted below level", level=character.level, reverted=len(doomed))
    return doomed


# =============================================================================
# Full-Auto Passives
# =============================================================================


def _remove_tagged_effects(
    character: Character,
    category: str,
    identifier: str,
    stat_names: Iterable[str],
) -> int:
    removed = 0
    for stat_name in stat_names:
        stat = _stat(character, stat_name)
        if stat is None or category not in stat.temporary_effects:
            continue
        effects = stat.temporary_effects[category]
        kept = [effect for effect in effects if effect.identifier != identifier]
        removed += len(effects) - len(kept)
        if kept:
            stat.temporary_effects[category] = kept
        else:
            del stat.temporary_effects[category]
    return removed


def _spatial_reserve_delta(record: AbilityRecord, settings: Settings) -> float:
    if record.identifier != SPATIAL_RESERVE or not record.values:
        return 0.0
    return record.values[0] - settings.rules.racial_power_scale


def apply_full_auto_passive(
    character: Character,
    category: str,
    ability: ResolvedAbility,
    *,
    settings: Settings | None = None,
    recalc: bool = True,
) -> AbilityRecord:
    """Grant a full-auto passive, replacing any earlier grant of it.

    Existing effects tagged with the ability's identifier are removed from
    the stats the formulas name (and the stats of the previous grant), then
    one infinite-duration effect per formula is pushed into each named stat.

    Raises:
        ValidationError: If a formula names a stat the character lacks.
    """
    settings = settings or get_settings()
    stats = ability.affected_stats
    missing = [name for name in stats if _stat(character, name) is None]
    if missing:
        raise ValidationError(
            f"Ability '{ability.identifier}' affects unknown stats",
            field_name="stats_affected",
            invalid_value=missing,
        )

    previous = character.unique_identifiers.get(ability.identifier)
    scan = list(dict.fromkeys([*stats, *(previous.stats if previous else [])]))
    _remove_tagged_effects(character, category, ability.identifier, scan)
    if previous is not None and previous.category != category:
        _remove_tagged_effects(character, previous.category, ability.identifier, previous.stats)

    for formula in ability.formulas:
        effect = formula.to_effect(category=category, identifier=ability.identifier)
        for stat_name in formula.stats_affected:
            _stat(character, stat_name).temporary_effects.setdefault(category, []).append(
                effect.model_copy(deep=True)
            )

    record = AbilityRecord(
        identifier=ability.identifier,
        name=ability.name,
        category=category,
        level=ability.level,
        stats=stats,
        values=list(ability.values),
        racial_power_max=ability.racial_power_max,
        racial_power_bonus=ability.racial_power_bonus,
        racial_power_regen=ability.racial_power_regen,
    )
    base_pool = character.other_stats[BASE_RACIAL_POWER]
    delta = _spatial_reserve_delta(record, settings)
    if previous is not None:
        delta -= _spatial_reserve_delta(previous, settings)
    base_pool.value += delta

    character.unique_identifiers[ability.identifier] = record
    if recalc:
        recalc_derived(character, settings=settings)
    logger.info(
        "Full-auto passive applied",
        identifier=ability.identifier,
        name=ability.name,
        category=category,
        stats=stats,
    )
    return record


def remove_full_auto_passive(
    character: Character,
    identifier: str,
    *,
    settings: Settings | None = None,
    recalc: bool = True,
) -> AbilityRecord | None:
    """Remove a full-auto passive and every effect tagged with it."""
    settings = settings or get_settings()
    record = character.unique_identifiers.pop(identifier, None)
    if record is None:
        return None
    removed = _remove_tagged_effects(character, record.category, identifier, record.stats)
    character.other_stats[BASE_RACIAL_POWER].value -= _spatial_reserve_delta(record, settings)
    if recalc:
        recalc_derived(character, settings=settings)
    logger.info("Full-auto passive removed", identifier=identifier, effects_removed=removed)
    return record


def granted_passives(character: Character, ruleset: Ruleset) -> dict[str, tuple[str, ResolvedAbility]]:
    """Full-auto passives the character's race, classes and level grant.

    Unknown classes are skipped; the ruleset logs them.

    Returns:
        ``(category, ability)`` keyed by ability identifier.
    """
    granted: dict[str, tuple[str, ResolvedAbility]] = {}
    for ability in ruleset.regular_passives(character.race, character.level).values():
        granted[ability.identifier] = (character.race, ability)
    for class_name in character.classes:
        try:
            abilities = ruleset.regular_passives(
                class_name,
                character.level,
                character.specializations.get(class_name, ()),
            )
        except RulesetLookupError:
            continue
        for ability in abilities.values():
            granted[ability.identifier] = (class_name, ability)
    return granted


def sync_full_auto_passives(
    character: Character,
    ruleset: Ruleset,
    *,
    settings: Settings | None = None,
) -> None:
    """Bring ``unique_identifiers`` in line with race, classes and level.

    Passives no longer granted are removed, new ones applied, and passives
    whose resolved upgrade changed are re-applied.
    """
    settings = settings or get_settings()
    granted = granted_passives(character, ruleset)

    for identifier in [i for i in character.unique_identifiers if i not in granted]:
        remove_full_auto_passive(character, identifier, settings=settings, recalc=False)

    for identifier, (category, ability) in granted.items():
        record = character.unique_identifiers.get(identifier)
        if (
            record is not None
            and record.category == category
            and record.level == ability.level
            and record.name == ability.name
        ):
            continue
        apply_full_auto_passive(character, category, ability, settings=settings, recalc=False)

    recalc_derived(character, settings=settings)


# =============================================================================
# Race Change
# =============================================================================


def change_race(
    character: Character,
    old_race: str,
    ruleset: Ruleset,
    *,
    settings: Settings | None = None,
) -> None:
    """Move a character from ``old_race`` to the race it now carries.

    ``character.race`` must already hold the new race. The old race's
    choices and passives are reverted, every stat's static racial modifier
    is swapped beneath the surviving choices of other categories, and the
    purse is refilled if it still holds the old race's starting money.

    Raises:
        RulesetLookupError: If the new race is unknown. Nothing is changed.
    """
    settings = settings or get_settings()
    new_race = character.race
    new_definition = ruleset.get_race(new_race)
    old_definition = ruleset.races.get(old_race)
    if old_definition is None:
        logger.warning("Changing from unknown race", old_race=old_race, new_race=new_race)

    reverted = revert_choices(character, old_race)

    for identifier, record in list(character.unique_identifiers.items()):
        if record.category == old_race:
            remove_full_auto_passive(character, identifier, settings=settings, recalc=False)

    # Surviving choices come off before the swap and go back on in order,
    # so the swap only ever sees the race's own modifier.
    surviving = [
        choice
        for groups in character.stat_choices.values()
        for slots in groups.values()
        for choice in slots.values()
        if choice.stat_name is not None and choice.calc is not ChoiceCalc.COUNT
    ]
    for choice in reversed(surviving):
        _apply_numeric(character, choice, revert=True)

    for stat_name in ruleset.all_stats:
        stat = _stat(character, stat_name)
        if stat is None:
            continue
        old_static = ruleset.racial_change_or_default(old_race, stat_name) if old_definition else 1.0
        new_static = ruleset.racial_change_or_default(new_race, stat_name)
        stat.racial_change = stat.racial_change - old_static + new_static

    for choice in surviving:
        _apply_numeric(character, choice, revert=False)

    sync_full_auto_passives(character, ruleset, settings=settings)

    if old_definition is not None and character.purse == old_definition.starting_items.money:
        character.purse = new_definition.starting_items.money

    logger.info(
        "Race changed",
        old_race=old_race,
        new_race=new_race,
        choices_reverted=reverted,
        purse=character.purse,
    )


__all__ = [
    "has_conflict",
    "set_choice",
    "make_choice",
    "choose_option",
    "revert_choices",
    "revert_choices_below_level",
    "apply_full_auto_passive",
    "remove_full_auto_passive",
    "granted_passives",
    "sync_full_auto_passives",
    "change_race",
]
