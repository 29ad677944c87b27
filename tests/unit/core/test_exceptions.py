"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from charsheet.core.exceptions import (
    CharsheetError,
    ChoiceConflictError,
    ConfigurationError,
    EffectResolutionError,
    EngineError,
    PersistenceError,
    RulesetError,
    RulesetLookupError,
    SnapshotError,
    ValidationError,
)


class TestCharsheetError:
    """Tests for the base CharsheetError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = CharsheetError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = CharsheetError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(CharsheetError("Test", details={"x": 1}))
        assert "CharsheetError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestRulesetExceptions:
    """Tests for static data provider exceptions."""

    def test_lookup_error_details(self) -> None:
        """Test RulesetLookupError with the missing key."""
        exc = RulesetLookupError("Unknown race", kind="race", name="Dwarf")
        assert exc.details == {"kind": "race", "name": "Dwarf"}

    def test_inheritance(self) -> None:
        """Test exception inheritance chain."""
        exc = RulesetLookupError("Error")
        assert isinstance(exc, RulesetError)
        assert isinstance(exc, CharsheetError)


class TestEngineExceptions:
    """Tests for engine exceptions."""

    def test_effect_resolution_chain(self) -> None:
        """Test EffectResolutionError records the resolution chain."""
        exc = EffectResolutionError("Cycle", stat_name="Strength", chain=["Strength", "Agility", "Strength"])
        assert exc.details["stat_name"] == "Strength"
        assert exc.details["chain"] == ["Strength", "Agility", "Strength"]
        assert isinstance(exc, EngineError)

    def test_choice_conflict_keeps_previous_choice(self) -> None:
        """Test ChoiceConflictError carries the slot's previous choice."""
        previous = object()
        exc = ChoiceConflictError(
            "Taken",
            category="Human",
            conflict_group="versatile",
            stat_name="Strength",
            slot_id="slot-2",
            previous_choice=previous,
        )
        assert exc.previous_choice is previous
        assert exc.details["conflict_group"] == "versatile"
        assert exc.details["slot_id"] == "slot-2"


@pytest.mark.parametrize(
    ("exc", "parent"),
    [
        (ConfigurationError("x", config_key="k"), CharsheetError),
        (ValidationError("x", field_name="f"), CharsheetError),
        (SnapshotError("x"), PersistenceError),
        (ChoiceConflictError("x"), EngineError),
    ],
)
def test_exception_hierarchy(exc: CharsheetError, parent: type[CharsheetError]) -> None:
    """Test every exception derives from its domain base."""
    assert isinstance(exc, parent)


def test_validation_error_details() -> None:
    """Test ValidationError with field context."""
    exc = ValidationError("Bad level", field_name="level", invalid_value=0)
    assert exc.details == {"field_name": "level", "invalid_value": 0}
