"""Persisted form of characters and rosters.

The persisted form is plain JSON-compatible data. It leaves out every value
``recalc_derived`` can recompute (resource maxes, total defense, roll stat
totals, a default ``max_experience``) and stores the ``stats_affected`` slot
sets as sorted lists.

Loading merges persisted data into a freshly built default character: only
recognised, well-typed fields are taken over, anything else keeps its default
and is logged. A roll stat persisted under the legacy ``value`` key is
migrated to ``base_value``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from charsheet.core.config import Settings, get_settings
from charsheet.core.constants import TOTAL_DEFENSE
from charsheet.core.exceptions import SnapshotError
from charsheet.core.logging import get_logger
from charsheet.engine.progression import default_character
from charsheet.engine.stats import recalc_derived
from charsheet.models.character import (
    COMPUTED_FIELDS,
    Character,
    DerivedStat,
    RollStat,
    StatChoices,
    StatsAffected,
)
from charsheet.models.ruleset import Ruleset


logger = get_logger(__name__)

LEGACY_BASE_VALUE_KEY = "value"

_MERGED_FIELDS: tuple[str, ...] = (
    "name",
    "classes",
    "specializations",
    "level",
    "level_experience",
    "purse",
    "states",
    "counters",
    "unique_identifiers",
    "stat_choices",
    "weapon_inventory",
    "armor_inventory",
    "general_inventory",
    "section_visibility",
    "personal_notes",
)


# =============================================================================
# Slot Set Conversion
# =============================================================================


def stats_affected_to_lists(stats_affected: StatsAffected) -> dict[str, dict[str, dict[str, list[str]]]]:
    """Convert the slot sets to sorted lists."""
    return {
        category: {
            group: {stat_name: sorted(slots) for stat_name, slots in stats.items()}
            for group, stats in groups.items()
        }
        for category, groups in stats_affected.items()
    }


def stats_affected_from_lists(data: Mapping[str, Any]) -> StatsAffected:
    """Convert persisted slot lists back to sets, dropping empty entries."""
    result: StatsAffected = {}
    for category, groups in data.items():
        for group, stats in groups.items():
            for stat_name, slots in stats.items():
                if slots:
                    result.setdefault(category, {}).setdefault(group, {})[stat_name] = set(slots)
    return result


def rebuild_stats_affected(stat_choices: StatChoices) -> StatsAffected:
    """Derive the slot index from the stored choices."""
    result: StatsAffected = {}
    for category, groups in stat_choices.items():
        for group, slots in groups.items():
            for slot_id, choice in slots.items():
                if choice.stat_name is not None:
                    (
                        result.setdefault(category, {})
                        .setdefault(group, {})
                        .setdefault(choice.stat_name, set())
                        .add(slot_id)
                    )
    return result


# =============================================================================
# Character
# =============================================================================


def to_persisted(character: Character, *, settings: Settings | None = None) -> dict[str, Any]:
    """Serialize a character to its persisted form."""
    settings = settings or get_settings()
    data = character.model_dump(mode="json", exclude=set(COMPUTED_FIELDS))
    data["stats_affected"] = stats_affected_to_lists(character.stats_affected)

    for stat in data["roll_stats"].values():
        stat.pop("total", None)
        if stat.get("max_experience") == settings.rules.default_stat_max_experience:
            del stat["max_experience"]

    defense = data["other_stats"].get(TOTAL_DEFENSE)
    if defense is not None:
        defense.pop("value", None)
    return data


def _merge_fields(target: Any, data: Mapping[str, Any], fields: tuple[str, ...] | list[str], where: str) -> None:
    for field_name in fields:
        if field_name not in data:
            continue
        try:
            setattr(target, field_name, data[field_name])
        except PydanticValidationError as exc:
            logger.warning(
                "Ignoring invalid persisted field",
                where=where,
                field=field_name,
                error=exc.errors(include_url=False)[0]["msg"],
            )


def _merge_stat(stat: RollStat | DerivedStat, data: Any, where: str, *, legacy: bool) -> None:
    if not isinstance(data, Mapping):
        logger.warning("Ignoring invalid persisted stat", where=where)
        return
    data = dict(data)
    if legacy and LEGACY_BASE_VALUE_KEY in data and "base_value" not in data:
        data["base_value"] = data.pop(LEGACY_BASE_VALUE_KEY)
        logger.info("Migrated legacy stat field", where=where)
    fields = [name for name in type(stat).model_fields if name != "total"]
    _merge_fields(stat, data, fields, where)


def from_persisted(
    data: Any,
    ruleset: Ruleset,
    *,
    settings: Settings | None = None,
) -> Character:
    """Rebuild a character from its persisted form.

    Args:
        data: Persisted character mapping.
        ruleset: Static rule data the defaults are built from.
        settings: Rule constants.

    Returns:
        The merged character with derived values recomputed. Current
        resource values are kept, only clamped into their maxes.

    Raises:
        SnapshotError: If ``data`` is not a mapping.
    """
    if not isinstance(data, Mapping):
        raise SnapshotError(
            "Persisted character must be a mapping",
            details={"type": type(data).__name__},
        )
    settings = settings or get_settings()

    race = data.get("race")
    if not isinstance(race, str) or race not in ruleset.races:
        logger.warning("Unknown persisted race, using default", race=race)
        race = ruleset.default_race
    character = default_character(ruleset, race=race, settings=settings)

    _merge_fields(character, data, _MERGED_FIELDS, "character")

    for group_name, legacy in (("roll_stats", True), ("other_stats", False)):
        persisted = data.get(group_name)
        if not isinstance(persisted, Mapping):
            continue
        stats = getattr(character, group_name)
        for stat_name, stat_data in persisted.items():
            if stat_name not in stats:
                logger.warning("Dropping unknown persisted stat", stat=stat_name)
                continue
            _merge_stat(stats[stat_name], stat_data, stat_name, legacy=legacy)

    persisted_affected = data.get("stats_affected")
    if isinstance(persisted_affected, Mapping):
        try:
            character.stats_affected = stats_affected_from_lists(persisted_affected)
        except (AttributeError, TypeError, PydanticValidationError):
            logger.warning("Rebuilding invalid persisted stats_affected")
            character.stats_affected = rebuild_stats_affected(character.stat_choices)
    else:
        character.stats_affected = rebuild_stats_affected(character.stat_choices)

    recalc_derived(character, settings=settings, clamp_only=True)
    return character


# =============================================================================
# Roster
# =============================================================================


def dump_roster(characters: list[Character], *, settings: Settings | None = None) -> str:
    """Serialize a roster to a JSON document."""
    return json.dumps([to_persisted(c, settings=settings) for c in characters], indent=2, sort_keys=True)


def load_roster(text: str, ruleset: Ruleset, *, settings: Settings | None = None) -> list[Character]:
    """Load a roster from a JSON document.

    A document holding a single character mapping is read as a roster of one.

    Raises:
        SnapshotError: If the document is not valid JSON or not a roster.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(
            f"Roster is not valid JSON: {exc.msg}",
            details={"line": exc.lineno, "column": exc.colno},
        ) from exc

    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, list):
        raise SnapshotError(
            "Roster must be a list of characters",
            details={"type": type(payload).__name__},
        )
    characters = [from_persisted(item, ruleset, settings=settings) for item in payload]
    logger.info("Roster loaded", characters=len(characters))
    return characters


__all__ = [
    "LEGACY_BASE_VALUE_KEY",
    "stats_affected_to_lists",
    "stats_affected_from_lists",
    "rebuild_stats_affected",
    "to_persisted",
    "from_persisted",
    "dump_roster",
    "load_roster",
]
