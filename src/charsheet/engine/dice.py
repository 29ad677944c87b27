"""Stat rolling using the d20 library.

A roll stat's ``base_value`` is drawn uniformly from the configured roll
range. The range is expressed as a single die plus an offset, so a range of
6..20 is rolled as ``1d15+5``.
"""

from __future__ import annotations

import random

import d20

from charsheet.core.exceptions import ValidationError
from charsheet.core.logging import get_logger


logger = get_logger(__name__)


class StatRoller:
    """Rolls stat values within an inclusive range.

    Example:
        >>> roller = StatRoller(seed=42)
        >>> 6 <= roller.roll_stat(6, 20) <= 20
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("StatRoller initialized", seed=seed)

    @staticmethod
    def expression_for(minimum: int, maximum: int) -> str:
        """Build the dice expression covering ``[minimum, maximum]``.

        Raises:
            ValidationError: If the range is empty.
        """
        if minimum > maximum:
            raise ValidationError(
                f"Empty roll range {minimum}..{maximum}",
                field_name="roll_range",
                invalid_value=(minimum, maximum),
            )
        sides = maximum - minimum + 1
        offset = minimum - 1
        if offset == 0:
            return f"1d{sides}"
        if offset < 0:
            return f"1d{sides}{offset}"
        return f"1d{sides}+{offset}"

    def roll_stat(self, minimum: int, maximum: int) -> int:
        """Roll one stat value in ``[minimum, maximum]``."""
        expression = self.expression_for(minimum, maximum)
        result = d20.roll(expression)
        logger.debug("Stat rolled", expression=expression, total=result.total)
        return int(result.total)

    def roll_stats(self, names: list[str], minimum: int, maximum: int) -> dict[str, int]:
        """Roll one value per stat name."""
        return {name: self.roll_stat(minimum, maximum) for name in names}


__all__ = [
    "StatRoller",
]
