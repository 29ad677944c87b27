"""The in-memory roster of characters and its history.

``RosterStore`` owns the characters, the active index and the undo/redo
history. Callers mutate ``store.active_character()`` through the engine and
then call ``commit()``.
"""

from __future__ import annotations

from charsheet.core.config import Settings, get_settings
from charsheet.core.exceptions import ValidationError
from charsheet.core.logging import bind_context, get_logger
from charsheet.engine.dice import StatRoller
from charsheet.engine.progression import create_character
from charsheet.models.character import Character
from charsheet.models.ruleset import Ruleset
from charsheet.storage.history import HistoryManager
from charsheet.storage.serialization import dump_roster, load_roster


logger = get_logger(__name__)


class RosterStore:
    """Roster of characters, the active index and the history stack.

    The roster is never empty: removing the last character creates a new
    default one.

    Example:
        >>> store = RosterStore(ruleset)
        >>> character = store.active_character()
        >>> character.name = "Ayla"
        >>> store.commit()
        True
        >>> store.undo()
        True
    """

    def __init__(
        self,
        ruleset: Ruleset,
        *,
        characters: list[Character] | None = None,
        settings: Settings | None = None,
        roller: StatRoller | None = None,
    ) -> None:
        """Initialize the store and push the first snapshot.

        Args:
            ruleset: Static rule data.
            characters: Initial roster; one new character when omitted.
            settings: Settings for rule constants and history capacity.
            roller: Stat roller used for new characters.
        """
        self.ruleset = ruleset
        self._settings = settings or get_settings()
        self._roller = roller or StatRoller()
        self.characters: list[Character] = list(characters or [])
        self.active_index = 0
        self.history = HistoryManager(ruleset, settings=self._settings)
        self._ensure_not_empty()
        self.commit()

    def _new_character(self, race: str | None = None) -> Character:
        return create_character(self.ruleset, race=race, settings=self._settings, roller=self._roller)

    def _ensure_not_empty(self) -> None:
        if not self.characters:
            self.characters.append(self._new_character())
        self.active_index = min(max(self.active_index, 0), len(self.characters) - 1)
        bind_context(character_index=self.active_index)

    def active_character(self) -> Character:
        """Get the character currently being edited."""
        return self.characters[self.active_index]

    def switch_to(self, index: int) -> Character:
        """Make another roster slot active.

        Raises:
            ValidationError: If ``index`` is out of range.
        """
        if not 0 <= index < len(self.characters):
            raise ValidationError(
                f"No character at index {index}",
                field_name="index",
                invalid_value=index,
            )
        self.active_index = index
        bind_context(character_index=index)
        logger.info("Switched character", index=index)
        return self.active_character()

    def add_character(self, race: str | None = None) -> Character:
        """Create a new character, make it active and commit."""
        character = self._new_character(race)
        self.characters.append(character)
        self.active_index = len(self.characters) - 1
        bind_context(character_index=self.active_index)
        logger.info("Character added", index=self.active_index, race=character.race)
        self.commit()
        return character

    def delete_active_character(self) -> Character:
        """Remove the active character and commit.

        Returns:
            The removed character.
        """
        removed = self.characters.pop(self.active_index)
        self._ensure_not_empty()
        logger.info("Character deleted", name=removed.name, remaining=len(self.characters))
        self.commit()
        return removed

    def reset_active_character(self) -> Character:
        """Replace the active character with a new one of the same race and commit."""
        character = self._new_character(self.active_character().race)
        self.characters[self.active_index] = character
        logger.info("Character reset", index=self.active_index)
        self.commit()
        return character

    def commit(self) -> bool:
        """Snapshot the roster; a no-op when nothing changed."""
        return self.history.snapshot(self.characters)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def _restore(self, characters: list[Character] | None) -> bool:
        if characters is None:
            return False
        self.characters = characters
        self._ensure_not_empty()
        return True

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False if there is none."""
        return self._restore(self.history.undo())

    def redo(self) -> bool:
        """Restore the next snapshot. Returns False if there is none."""
        return self._restore(self.history.redo())

    def dump(self) -> str:
        """Serialize the roster to JSON."""
        return dump_roster(self.characters, settings=self._settings)

    def load(self, text: str) -> None:
        """Replace the roster with one loaded from JSON and commit.

        Raises:
            SnapshotError: If the document is not a valid roster.
        """
        self.characters = load_roster(text, self.ruleset, settings=self._settings)
        self.active_index = 0
        self._ensure_not_empty()
        logger.info("Roster replaced", characters=len(self.characters))
        self.commit()


__all__ = [
    "RosterStore",
]
