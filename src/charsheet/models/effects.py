"""Effect and formula records.

An ``Effect`` is one timed or permanent modifier stored in a stat's
``temporary_effects`` map under a category key. A ``Formula`` is the static
ruleset description a full-auto passive turns into effects.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from charsheet.models.enums import AppliesTo, EffectType, Operator


class Effect(BaseModel):
    """A modifier folded into a stat by the effect pipeline.

    Attributes:
        stats_affected: Stats the effect was pushed into; ``None`` means only
            the owning stat.
        operands: Stats whose current totals feed the effect's value. When
            set, each operand is paired with ``operators[i]`` and
            ``values[i]`` and the results are summed.
        operators: Binary operators paired with ``operands``.
        values: Literal values.
        type: ``'+'`` or ``'*'``.
        applies_to: Pipeline stage.
        is_percent: Interpret the value as a percentage.
        duration: Remaining turns; ``None`` is infinite.
        identifier: Ability identifier the effect belongs to, if any.
        category: Storage key (``'manual'`` or a race/class name).
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    stats_affected: list[str] | None = None
    operands: list[str] | None = None
    operators: list[Operator] | None = None
    values: list[float] = Field(default_factory=list)
    type: EffectType = EffectType.ADD
    applies_to: AppliesTo = AppliesTo.TOTAL
    is_percent: bool = False
    duration: int | None = Field(default=None, ge=0)
    identifier: str | None = None
    category: str = "manual"

    @model_validator(mode="after")
    def validate_operands(self) -> "Effect":
        """Ensure operands, operators and values pair up."""
        if self.operands is not None:
            operators = self.operators or []
            if not (len(self.operands) == len(operators) == len(self.values)):
                msg = (
                    "operands, operators and values must have equal lengths, got "
                    f"{len(self.operands)}, {len(operators)}, {len(self.values)}"
                )
                raise ValueError(msg)
        return self

    @property
    def is_infinite(self) -> bool:
        return self.duration is None


class Formula(BaseModel):
    """Static description of one effect granted by a full-auto passive."""

    model_config = ConfigDict(extra="ignore")

    stats_affected: list[str] = Field(min_length=1)
    operands: list[str] | None = None
    operators: list[Operator] | None = None
    values: list[float] = Field(default_factory=list)
    type: EffectType = EffectType.ADD
    applies_to: AppliesTo = AppliesTo.TOTAL
    is_percent: bool = False

    def to_effect(self, *, category: str, identifier: str) -> Effect:
        """Build the infinite-duration effect this formula grants."""
        return Effect(
            stats_affected=list(self.stats_affected),
            operands=list(self.operands) if self.operands is not None else None,
            operators=list(self.operators) if self.operators is not None else None,
            values=list(self.values),
            type=self.type,
            applies_to=self.applies_to,
            is_percent=self.is_percent,
            duration=None,
            identifier=identifier,
            category=category,
        )


__all__ = [
    "Effect",
    "Formula",
]
