"""Custom exception hierarchy for the character sheet engine.

All exceptions inherit from CharsheetError, enabling unified error handling
at the UI/persistence boundary while preserving domain-specific context in
the ``details`` mapping.

Example:
    >>> from charsheet.core.exceptions import ChoiceConflictError
    >>> raise ChoiceConflictError("Stat already claimed", stat_name="Strength")
"""

from __future__ import annotations

from typing import Any


class CharsheetError(Exception):
    """Base exception for all character sheet engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(CharsheetError):
    """Raised when engine configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(CharsheetError):
    """Raised when caller-supplied data fails validation."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Static Data Provider Exceptions
# =============================================================================


class RulesetError(CharsheetError):
    """Base exception for static rule data problems.

    Raised when the ruleset cannot be built at startup. This is the one
    fatal condition: the engine must not run without its static data.
    """


class RulesetLookupError(RulesetError):
    """Raised when a race, class or stat name is unknown to the ruleset.

    This is distinct from a *legitimately absent* value (a known race that
    simply has no modifier for a stat), which lookups report as ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize lookup error with the missing key.

        Args:
            message: Human-readable error description.
            kind: What was looked up ('race', 'class', 'stat').
            name: The name that was not found.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if kind:
            combined_details["kind"] = kind
        if name is not None:
            combined_details["name"] = name
        super().__init__(message, details=combined_details)


# =============================================================================
# Engine Exceptions
# =============================================================================


class EngineError(CharsheetError):
    """Base exception for stat computation and choice management errors."""


class EffectResolutionError(EngineError):
    """Raised when an effect cannot be resolved to a number.

    Covers effects that reference an unknown stat and stats whose totals
    depend on themselves.
    """

    def __init__(
        self,
        message: str,
        *,
        stat_name: str | None = None,
        chain: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize resolution error with the offending stat.

        Args:
            message: Human-readable error description.
            stat_name: The stat that could not be resolved.
            chain: The in-progress resolution chain, outermost first.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if stat_name:
            combined_details["stat_name"] = stat_name
        if chain:
            combined_details["chain"] = chain
        super().__init__(message, details=combined_details)


class ChoiceConflictError(EngineError):
    """Raised when a passive choice would double-claim a stat in a conflict group.

    No state is mutated when this is raised. ``previous_choice`` holds the
    slot's current selection so that a caller can restore it.
    """

    def __init__(
        self,
        message: str,
        *,
        category: str | None = None,
        conflict_group: str | None = None,
        stat_name: str | None = None,
        slot_id: str | None = None,
        previous_choice: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize conflict error with the contested slot.

        Args:
            message: Human-readable error description.
            category: Race or class category of the choice.
            conflict_group: The conflict group the stat is already claimed in.
            stat_name: The contested stat.
            slot_id: The slot that attempted the claim.
            previous_choice: The slot's choice before the attempt, if any.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if category:
            combined_details["category"] = category
        if conflict_group:
            combined_details["conflict_group"] = conflict_group
        if stat_name:
            combined_details["stat_name"] = stat_name
        if slot_id:
            combined_details["slot_id"] = slot_id
        self.previous_choice = previous_choice
        super().__init__(message, details=combined_details)


# =============================================================================
# Persistence Exceptions
# =============================================================================


class PersistenceError(CharsheetError):
    """Base exception for serialization and history errors."""


class SnapshotError(PersistenceError):
    """Raised when persisted data cannot be repaired by merging with defaults."""


__all__ = [
    "CharsheetError",
    "ConfigurationError",
    "ValidationError",
    "RulesetError",
    "RulesetLookupError",
    "EngineError",
    "EffectResolutionError",
    "ChoiceConflictError",
    "PersistenceError",
    "SnapshotError",
]
