"""Enumeration types for the character sheet engine."""

from __future__ import annotations

import operator
from collections.abc import Callable
from enum import StrEnum


class StatKind(StrEnum):
    """How a stat name is stored and totalled.

    Resolved once per stat name from the ruleset's stat lists, so engine
    code dispatches on the kind instead of comparing stat name strings.
    """

    ROLL = "roll"
    """Player-rolled attribute with experience and equipment components."""

    RESOURCE = "resource"
    """Health/Mana/RacialPower: a current value under a computed max."""

    BASE = "base"
    """Static pool a resource max is derived from (BaseHealth, ...)."""

    REGEN = "regen"
    """Per-turn regeneration rate for a resource."""

    DEFENSE = "defense"
    """Aggregate defense computed from equipped armor."""

    OTHER = "other"
    """Any further ruleset stat carried as a plain value."""


class EffectType(StrEnum):
    """Operator an effect folds into the running value with."""

    ADD = "+"
    MULTIPLY = "*"


class AppliesTo(StrEnum):
    """Pipeline stage an effect belongs to."""

    INITIAL_VALUE = "initial-value"
    BASE_VALUE = "base-value"
    TOTAL = "total"


class Operator(StrEnum):
    """Binary operator between a referenced stat total and a literal."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    @property
    def function(self) -> Callable[[float, float], float]:
        """Get the arithmetic function for this operator."""
        functions: dict[Operator, Callable[[float, float], float]] = {
            Operator.ADD: operator.add,
            Operator.SUBTRACT: operator.sub,
            Operator.MULTIPLY: operator.mul,
            Operator.DIVIDE: operator.truediv,
        }
        return functions[self]


class ChoiceCalc(StrEnum):
    """How a passive choice changes the stat it names."""

    MULT = "mult"
    ADD = "add"
    COUNT = "count"


class CharacterState(StrEnum):
    """Combat/rest states that gate regeneration."""

    BLEEDING = "Bleeding"
    TAKING_DAMAGE = "Taking Damage"
    IN_FIGHT = "In Fight"
    SLEEPING = "Sleeping"


__all__ = [
    "StatKind",
    "EffectType",
    "AppliesTo",
    "Operator",
    "ChoiceCalc",
    "CharacterState",
]
