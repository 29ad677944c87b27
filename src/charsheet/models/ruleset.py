"""Static rule data: races, classes, and the passives they grant.

The ruleset is the engine's static data provider. It is validated once at
startup from a plain mapping (the spreadsheet export); a ruleset that cannot
be built is the one fatal condition, raised as ``RulesetError``.

Lookups against unknown races, classes or stats raise ``RulesetLookupError``
and log a warning. Values that are *legitimately absent*, such as a known
race without a modifier for some stat, are reported as ``None``.

Example:
    >>> ruleset = Ruleset.model_validate({
    ...     "roll_stats": ["Strength"],
    ...     "races": {"Human": {"stats": {"Roll": {"Strength": 1.0}}}},
    ... })
    >>> ruleset.racial_change("Human", "Strength")
    1.0
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from charsheet.core.constants import (
    BASE_HEALTH,
    BASE_MANA,
    BASE_RACIAL_POWER,
    DEFAULT_OTHER_STATS,
    GROUP_OTHER,
    GROUP_ROLL,
    GROUP_STATS,
    HEALTH,
    MANA,
    NATURAL_HEALTH_REGEN,
    NATURAL_MANA_REGEN,
    NATURAL_RACIAL_POWER_REGEN,
    RACIAL_POWER,
    TOTAL_DEFENSE,
)
from charsheet.core.exceptions import RulesetError, RulesetLookupError
from charsheet.core.logging import get_logger
from charsheet.models.effects import Formula
from charsheet.models.enums import ChoiceCalc, StatKind


logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"{(\d+)}(%?)")

FIXED_STAT_KINDS: dict[str, StatKind] = {
    HEALTH: StatKind.RESOURCE,
    MANA: StatKind.RESOURCE,
    RACIAL_POWER: StatKind.RESOURCE,
    BASE_HEALTH: StatKind.BASE,
    BASE_MANA: StatKind.BASE,
    BASE_RACIAL_POWER: StatKind.BASE,
    NATURAL_HEALTH_REGEN: StatKind.REGEN,
    NATURAL_MANA_REGEN: StatKind.REGEN,
    NATURAL_RACIAL_POWER_REGEN: StatKind.REGEN,
    TOTAL_DEFENSE: StatKind.DEFENSE,
}


def build_stat_kinds(roll_stats: Iterable[str], other_stats: Iterable[str]) -> dict[str, StatKind]:
    """Map every stat name to its kind; unlisted other stats are ``OTHER``."""
    kinds: dict[str, StatKind] = {name: StatKind.ROLL for name in roll_stats}
    for name in other_stats:
        kinds[name] = FIXED_STAT_KINDS.get(name, StatKind.OTHER)
    return kinds


def format_label(label: str, *values: float) -> str:
    """Replace ``{0}``/``{0}%`` placeholders with the given values.

    A trailing ``%`` renders the value as a percentage of 1.

    Example:
        >>> format_label("+{0}% Strength", 0.25)
        '+25.0% Strength'
    """

    def replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(values):
            return "null"
        value = values[index]
        if match.group(2) == "%":
            return f"{value * 100}%"
        return f"{value:g}"

    return _PLACEHOLDER.sub(replace, label)


# =============================================================================
# Passive Definitions
# =============================================================================


class OptionTemplate(BaseModel):
    """Values an option template expands into, one option per value."""

    model_config = ConfigDict(extra="ignore")

    values: list[float] = Field(min_length=1)
    counts: list[int] = Field(default_factory=list)


class PassiveOption(BaseModel):
    """One selectable option of a manual passive.

    Attributes:
        type: Option key, copied into the resulting Choice.
        calc: How the value changes the chosen stat.
        value: Amount; ``None`` for flag options.
        label: Display label, may contain ``{0}`` placeholders.
        level: Minimum character level for the option.
        unique: Conflict group id the option claims stats in.
        applicable_stats: Stats the player may pick (group names expanded).
        count: How many times the option may be picked.
        options: Template expanded into concrete options.
    """

    model_config = ConfigDict(extra="ignore")

    type: str
    calc: ChoiceCalc = ChoiceCalc.ADD
    value: float | None = None
    label: str = ""
    level: int | None = None
    unique: str | None = None
    applicable_stats: list[str] = Field(default_factory=list)
    count: int | None = None
    options: OptionTemplate | None = None


class ManualPassive(BaseModel):
    """A passive whose effect the player chooses slot by slot."""

    model_config = ConfigDict(extra="ignore")

    description: str = ""
    unique: str | None = None
    slots: int = Field(default=1, ge=1)
    options: list[PassiveOption] = Field(default_factory=list)

    def expanded(self) -> "ManualPassive":
        """Return a copy with option templates expanded into concrete options."""
        expanded_options: list[PassiveOption] = []
        for option in self.options:
            if option.options is None:
                value = abs(option.value) if option.value is not None else 0.0
                expanded_options.append(
                    option.model_copy(update={"label": format_label(option.label, value)})
                )
                continue
            template = option.options
            for index, value in enumerate(template.values):
                count = template.counts[index] if index < len(template.counts) else None
                expanded_options.append(
                    option.model_copy(
                        update={
                            "value": value,
                            "label": format_label(option.label, abs(value)),
                            "count": count,
                            "options": None,
                        }
                    )
                )
        return self.model_copy(update={"options": expanded_options})


class UpgradeFormula(BaseModel):
    """Replacement values for the formula at the same index."""

    model_config = ConfigDict(extra="ignore")

    values: list[float] = Field(default_factory=list)


class Upgrade(BaseModel):
    """A level-gated upgrade of a full-auto passive."""

    model_config = ConfigDict(extra="ignore")

    level: int = Field(ge=1)
    description: str | None = None
    formulas: list[UpgradeFormula] | None = None
    values: list[float] | None = None


class FullAutoPassive(BaseModel):
    """A passive applied automatically once the character reaches its level.

    Attributes:
        level: Level the passive unlocks at.
        description: Display text.
        identifier: Unique identifier; defaults to the passive's name.
        formulas: Effects granted to stats.
        values: Literal values for flag-style passives.
        upgrades: Named upgrades replacing values at higher levels.
        racial_power_max: Fixed RacialPower max while active.
        racial_power_bonus: Flat RacialPower max bonus while active.
        racial_power_regen: RacialPower restored each turn while active.
    """

    model_config = ConfigDict(extra="ignore")

    level: int = Field(default=1, ge=1)
    description: str = ""
    identifier: str | None = None
    formulas: list[Formula] | None = None
    values: list[float] = Field(default_factory=list)
    upgrades: dict[str, Upgrade] = Field(default_factory=dict)
    racial_power_max: float | None = None
    racial_power_bonus: float | None = None
    racial_power_regen: float | None = None


class ResolvedAbility(BaseModel):
    """A full-auto passive with its upgrades resolved for a character level."""

    identifier: str
    name: str
    category: str
    level: int
    description: str = ""
    formulas: list[Formula] = Field(default_factory=list)
    values: list[float] = Field(default_factory=list)
    racial_power_max: float | None = None
    racial_power_bonus: float | None = None
    racial_power_regen: float | None = None

    @property
    def affected_stats(self) -> list[str]:
        """Union of stats named by the formulas, in first-seen order."""
        seen: dict[str, None] = {}
        for formula in self.formulas:
            for stat_name in formula.stats_affected:
                seen.setdefault(stat_name, None)
        return list(seen)


# =============================================================================
# Races and Classes
# =============================================================================


class StarterItems(BaseModel):
    """Starting purse and items for a race."""

    model_config = ConfigDict(extra="ignore")

    money: float = 0.0
    items: list[str] = Field(default_factory=list)


class CategoryDefinition(BaseModel):
    """Passives shared by races and classes."""

    model_config = ConfigDict(extra="ignore")

    manual_passives: dict[str, ManualPassive] = Field(default_factory=dict)
    regular_passives: dict[str, FullAutoPassive] = Field(default_factory=dict)


class RaceDefinition(CategoryDefinition):
    """Static data for one race.

    Attributes:
        stats: Static modifiers keyed by stat group (``Roll``/``Other``).
        starting_items: Starter purse and items.
        foot_notes: Footnote text by reference number.
    """

    stats: dict[str, dict[str, float]] = Field(default_factory=dict)
    starting_items: StarterItems = Field(default_factory=StarterItems)
    foot_notes: dict[str, str] = Field(default_factory=dict)


class ClassDefinition(CategoryDefinition):
    """Static data for one class and its specializations."""

    specializations: dict[str, CategoryDefinition] = Field(default_factory=dict)


# =============================================================================
# Ruleset
# =============================================================================


class Ruleset(BaseModel):
    """The complete static data set the engine computes against.

    Attributes:
        roll_stats: Names of rollable stats.
        other_stats: Names of non-rolled stats.
        races: Race definitions, the first being the default race.
        classes: Class definitions.
    """

    model_config = ConfigDict(extra="ignore")

    roll_stats: list[str] = Field(min_length=1)
    other_stats: list[str] = Field(default_factory=lambda: list(DEFAULT_OTHER_STATS))
    races: dict[str, RaceDefinition] = Field(min_length=1)
    classes: dict[str, ClassDefinition] = Field(default_factory=dict)

    _kinds: dict[str, StatKind] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def build_stat_index(self) -> "Ruleset":
        """Resolve every stat name to its kind and expand group names.

        Raises:
            RulesetError: If required stats are missing, names collide, or a
                passive references a stat the ruleset does not define.
        """
        missing = [name for name in DEFAULT_OTHER_STATS if name not in self.other_stats]
        if missing:
            raise RulesetError(
                "Ruleset is missing required stats",
                details={"missing": missing},
            )
        overlap = sorted(set(self.roll_stats) & set(self.other_stats))
        if overlap:
            raise RulesetError(
                "Stat names are both roll and other stats",
                details={"overlap": overlap},
            )

        self._kinds = build_stat_kinds(self.roll_stats, self.other_stats)

        for category, definition in self._iter_definitions():
            for passive in definition.manual_passives.values():
                for option in passive.options:
                    option.applicable_stats = self._expand_known(
                        option.applicable_stats, category
                    )
            for passive in definition.regular_passives.values():
                for formula in passive.formulas or []:
                    formula.stats_affected = self._expand_known(
                        formula.stats_affected, category
                    )
                    if formula.operands is not None:
                        formula.operands = self._expand_known(formula.operands, category)
        return self

    def _iter_definitions(self) -> Iterable[tuple[str, CategoryDefinition]]:
        yield from self.races.items()
        for class_name, class_definition in self.classes.items():
            yield class_name, class_definition
            yield from class_definition.specializations.items()

    def _expand_known(self, names: list[str], category: str) -> list[str]:
        expanded = self.expand_stat_groups(names)
        unknown = [name for name in expanded if name not in self._kinds]
        if unknown:
            raise RulesetError(
                "Passive references unknown stats",
                details={"category": category, "unknown": unknown},
            )
        return expanded

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    @property
    def all_stats(self) -> list[str]:
        """All stat names, roll stats first."""
        return [*self.roll_stats, *self.other_stats]

    def expand_stat_groups(self, names: Iterable[str]) -> list[str]:
        """Expand ``Roll``/``Other``/``Stats`` group names into stat names."""
        groups = {
            GROUP_ROLL: self.roll_stats,
            GROUP_OTHER: self.other_stats,
            GROUP_STATS: self.all_stats,
        }
        expanded: list[str] = []
        for name in names:
            expanded.extend(groups.get(name, [name]))
        return expanded

    def stat_kind(self, stat_name: str) -> StatKind:
        """Get the kind of a stat.

        Raises:
            RulesetLookupError: If the stat is unknown.
        """
        kind = self._kinds.get(stat_name)
        if kind is None:
            logger.warning("Unknown stat", stat=stat_name)
            raise RulesetLookupError(f"Unknown stat '{stat_name}'", kind="stat", name=stat_name)
        return kind

    def has_stat(self, stat_name: str) -> bool:
        return stat_name in self._kinds

    # -------------------------------------------------------------------------
    # Races and Classes
    # -------------------------------------------------------------------------

    @property
    def default_race(self) -> str:
        """The race new characters start with."""
        return next(iter(self.races))

    def get_race(self, race: str) -> RaceDefinition:
        """Get a race definition.

        Raises:
            RulesetLookupError: If the race is unknown.
        """
        definition = self.races.get(race)
        if definition is None:
            logger.warning("Unknown race", race=race)
            raise RulesetLookupError(f"Unknown race '{race}'", kind="race", name=race)
        return definition

    def get_class(self, class_name: str) -> ClassDefinition:
        """Get a class definition.

        Raises:
            RulesetLookupError: If the class is unknown.
        """
        definition = self.classes.get(class_name)
        if definition is None:
            logger.warning("Unknown class", class_name=class_name)
            raise RulesetLookupError(
                f"Unknown class '{class_name}'", kind="class", name=class_name
            )
        return definition

    def get_category(self, category: str) -> CategoryDefinition:
        """Get the race or class a passive category names.

        Raises:
            RulesetLookupError: If neither a race nor a class has that name.
        """
        if category in self.races:
            return self.races[category]
        if category in self.classes:
            return self.classes[category]
        logger.warning("Unknown passive category", category=category)
        raise RulesetLookupError(
            f"Unknown race or class '{category}'", kind="category", name=category
        )

    def racial_change(self, race: str, stat_name: str) -> float | None:
        """Get a race's static modifier for a stat.

        Returns:
            The modifier, or None if the race defines none for the stat.

        Raises:
            RulesetLookupError: If the race or the stat is unknown.
        """
        definition = self.get_race(race)
        self.stat_kind(stat_name)
        for group in definition.stats.values():
            if stat_name in group:
                return group[stat_name]
        return None

    def racial_change_or_default(self, race: str, stat_name: str) -> float:
        """Get a race's static modifier, defaulting to 1.0 when absent."""
        value = self.racial_change(race, stat_name)
        return 1.0 if value is None else value

    def starter_items(self, race: str) -> StarterItems:
        return self.get_race(race).starting_items

    def foot_notes(self, race: str) -> dict[str, str]:
        return self.get_race(race).foot_notes

    # -------------------------------------------------------------------------
    # Passives
    # -------------------------------------------------------------------------

    def manual_passives(self, category: str) -> dict[str, ManualPassive]:
        """Get a race's or class's manual passives with options expanded."""
        definition = self.get_category(category)
        return {name: passive.expanded() for name, passive in definition.manual_passives.items()}

    def regular_passives(
        self,
        category: str,
        level: int,
        specializations: Iterable[str] = (),
    ) -> dict[str, ResolvedAbility]:
        """Get the full-auto passives unlocked at a level.

        Class specializations add their passives on top of the class's own,
        replacing same-named ones.

        Args:
            category: Race or class name.
            level: Character level.
            specializations: Chosen specializations when category is a class.

        Returns:
            Resolved abilities keyed by passive name.
        """
        definition = self.get_category(category)
        passives = dict(definition.regular_passives)
        if isinstance(definition, ClassDefinition):
            for spec in specializations:
                spec_definition = definition.specializations.get(spec)
                if spec_definition is None:
                    logger.warning("Unknown specialization", class_name=category, spec=spec)
                    continue
                passives.update(spec_definition.regular_passives)

        return {
            name: _resolve_upgrades(name, category, passive, level)
            for name, passive in passives.items()
            if passive.level <= level
        }


def _resolve_upgrades(
    name: str,
    category: str,
    passive: FullAutoPassive,
    level: int,
) -> ResolvedAbility:
    """Apply the highest upgrade whose level does not exceed ``level``."""
    formulas = [formula.model_copy(deep=True) for formula in passive.formulas or []]
    values = list(passive.values)
    resolved_name = name
    resolved_level = passive.level
    description = passive.description

    best: tuple[str, Upgrade] | None = None
    for upgrade_name, upgrade in passive.upgrades.items():
        if not resolved_level < upgrade.level <= level:
            continue
        if best is None or upgrade.level > best[1].level:
            best = (upgrade_name, upgrade)

    if best is not None:
        resolved_name, upgrade = best
        resolved_level = upgrade.level
        if upgrade.description:
            description = upgrade.description
        for index, upgrade_formula in enumerate(upgrade.formulas or []):
            if index < len(formulas) and upgrade_formula.values:
                formulas[index].values = list(upgrade_formula.values)
        if upgrade.values is not None:
            values = list(upgrade.values)

    display_values = [abs(v) for formula in formulas for v in formula.values]
    display_values = display_values or [abs(v) for v in values]
    return ResolvedAbility(
        identifier=passive.identifier or name,
        name=resolved_name,
        category=category,
        level=resolved_level,
        description=format_label(description, *display_values),
        formulas=formulas,
        values=values,
        racial_power_max=passive.racial_power_max,
        racial_power_bonus=passive.racial_power_bonus,
        racial_power_regen=passive.racial_power_regen,
    )


def load_ruleset(data: dict[str, Any]) -> Ruleset:
    """Validate raw rule data into a Ruleset.

    Raises:
        RulesetError: If the data does not describe a usable ruleset.
    """
    try:
        ruleset = Ruleset.model_validate(data)
    except RulesetError:
        raise
    except Exception as exc:
        raise RulesetError(
            f"Failed to load ruleset: {exc}",
            details={"original_error": str(exc)},
        ) from exc
    logger.info(
        "Ruleset loaded",
        races=len(ruleset.races),
        classes=len(ruleset.classes),
        roll_stats=len(ruleset.roll_stats),
    )
    return ruleset


__all__ = [
    "FIXED_STAT_KINDS",
    "build_stat_kinds",
    "format_label",
    "OptionTemplate",
    "PassiveOption",
    "ManualPassive",
    "UpgradeFormula",
    "Upgrade",
    "FullAutoPassive",
    "ResolvedAbility",
    "StarterItems",
    "CategoryDefinition",
    "RaceDefinition",
    "ClassDefinition",
    "Ruleset",
    "load_ruleset",
]
