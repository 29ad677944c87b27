"""Character creation and level progression.

New characters start from rolled stats and their race's static modifiers.
Level changes keep manual choices and full-auto passives consistent with the
new level.
"""

from __future__ import annotations

from charsheet.core.config import Settings, get_settings
from charsheet.core.constants import BASE_HEALTH, BASE_MANA, BASE_RACIAL_POWER
from charsheet.core.exceptions import ValidationError
from charsheet.core.logging import get_logger
from charsheet.engine.dice import StatRoller
from charsheet.engine.passives import revert_choices_below_level, sync_full_auto_passives
from charsheet.engine.stats import calculate_level_max_experience, recalc_derived
from charsheet.models.character import Character, DerivedStat, RollStat
from charsheet.models.ruleset import Ruleset


logger = get_logger(__name__)


def default_character(ruleset: Ruleset, *, race: str | None = None, settings: Settings | None = None) -> Character:
    """Build an unrolled character with default values and no passives.

    Roll stats start at a base value of 0; use ``create_character`` for a
    playable character.

    Raises:
        RulesetLookupError: If ``race`` is unknown.
    """
    settings = settings or get_settings()
    rules = settings.rules
    race = race or ruleset.default_race
    ruleset.get_race(race)

    base_pools = {
        BASE_HEALTH: rules.default_base_health,
        BASE_MANA: rules.default_base_mana,
        BASE_RACIAL_POWER: rules.default_base_racial_power,
    }
    return Character(
        race=race,
        level_max_experience=calculate_level_max_experience(1, settings),
        roll_stats={
            name: RollStat(
                racial_change=ruleset.racial_change_or_default(race, name),
                max_experience=rules.default_stat_max_experience,
            )
            for name in ruleset.roll_stats
        },
        other_stats={
            name: DerivedStat(
                value=base_pools.get(name, 0.0),
                racial_change=ruleset.racial_change_or_default(race, name),
            )
            for name in ruleset.other_stats
        },
        purse=ruleset.starter_items(race).money,
    )


def create_character(
    ruleset: Ruleset,
    *,
    race: str | None = None,
    settings: Settings | None = None,
    roller: StatRoller | None = None,
) -> Character:
    """Create a new character with rolled stats at full resources.

    Args:
        ruleset: Static rule data.
        race: Starting race; the ruleset's first race when omitted.
        settings: Rule constants; the global settings when omitted.
        roller: Stat roller; a fresh unseeded one when omitted.

    Returns:
        The new character with level-1 passives applied.

    Raises:
        RulesetLookupError: If ``race`` is unknown.
    """
    settings = settings or get_settings()
    roller = roller or StatRoller()
    character = default_character(ruleset, race=race, settings=settings)
    for stat in character.roll_stats.values():
        stat.base_value = roller.roll_stat(settings.rules.stat_roll_min, settings.rules.stat_roll_max)
    sync_full_auto_passives(character, ruleset, settings=settings)
    logger.info(
        "Character created",
        race=character.race,
        stats={name: stat.total for name, stat in character.roll_stats.items()},
    )
    return character


def set_level(
    character: Character,
    level: int,
    ruleset: Ruleset,
    *,
    settings: Settings | None = None,
) -> None:
    """Set the character level.

    Lowering the level reverts choices that require a higher level. Any
    change re-synchronises the full-auto passives.

    Raises:
        ValidationError: If ``level`` is below 1.
    """
    if level < 1:
        raise ValidationError("Level must be at least 1", field_name="level", invalid_value=level)
    settings = settings or get_settings()
    old_level = character.level
    if level == old_level:
        return

    character.level = level
    if level < old_level:
        revert_choices_below_level(character, settings=settings)
    sync_full_auto_passives(character, ruleset, settings=settings)
    logger.info("Level set", old_level=old_level, level=level)


def add_level_experience(
    character: Character,
    amount: int,
    ruleset: Ruleset,
    *,
    settings: Settings | None = None,
) -> int:
    """Add level experience, converting full bars into levels.

    Returns:
        Number of levels gained.

    Raises:
        ValidationError: If the experience would become negative.
    """
    settings = settings or get_settings()
    experience = character.level_experience + amount
    if experience < 0:
        raise ValidationError(
            "Level experience cannot become negative",
            field_name="level_experience",
            invalid_value=experience,
        )

    gained = 0
    threshold = character.level_max_experience
    while experience >= threshold:
        experience -= threshold
        gained += 1
        threshold = calculate_level_max_experience(character.level + gained, settings)
    character.level_experience = experience

    if gained:
        set_level(character, character.level + gained, ruleset, settings=settings)
    else:
        recalc_derived(character, settings=settings)
    logger.info("Level experience added", amount=amount, levels_gained=gained, level=character.level)
    return gained


__all__ = [
    "default_character",
    "create_character",
    "set_level",
    "add_level_experience",
]
