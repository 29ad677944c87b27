"""Bounded undo/redo history of roster snapshots.

Snapshots are stored as immutable JSON strings of the persisted roster, so a
pushed snapshot can never be mutated through a live character, and every
undo/redo hands back freshly built characters.
"""

from __future__ import annotations

import json

from charsheet.core.config import Settings, get_settings
from charsheet.core.exceptions import SnapshotError
from charsheet.core.logging import get_logger
from charsheet.models.character import Character
from charsheet.models.ruleset import Ruleset
from charsheet.storage.serialization import from_persisted, to_persisted


logger = get_logger(__name__)


class HistoryManager:
    """Snapshot stack with a pointer at the current state.

    A new snapshot after an undo discards the redo branch. Beyond
    ``capacity`` the oldest snapshot is evicted.

    Example:
        >>> history = HistoryManager(ruleset, capacity=10)
        >>> history.snapshot([character])
        True
        >>> history.can_undo
        False
    """

    def __init__(
        self,
        ruleset: Ruleset,
        *,
        capacity: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize an empty history.

        Args:
            ruleset: Static rule data snapshots are rebuilt against.
            capacity: Maximum snapshots kept; from settings when omitted.
            settings: Settings to read the capacity and rule constants from.
        """
        self._settings = settings or get_settings()
        self._ruleset = ruleset
        self._capacity = capacity if capacity is not None else self._settings.history.capacity
        if self._capacity < 1:
            raise SnapshotError("History capacity must be at least 1", details={"capacity": self._capacity})
        self._entries: list[str] = []
        self._pointer = -1

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pointer(self) -> int:
        """Index of the current snapshot; -1 while empty."""
        return self._pointer

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def _encode(self, characters: list[Character]) -> str:
        return json.dumps(
            [to_persisted(character, settings=self._settings) for character in characters],
            sort_keys=True,
        )

    def snapshot(self, characters: list[Character]) -> bool:
        """Push the roster's current state.

        Returns:
            False if the state equals the current snapshot and nothing was
            pushed, True otherwise.
        """
        payload = self._encode(characters)
        if self._entries and self._entries[self._pointer] == payload:
            logger.debug("Snapshot unchanged", pointer=self._pointer)
            return False

        pruned = len(self._entries) - self._pointer - 1
        del self._entries[self._pointer + 1 :]
        self._entries.append(payload)
        if len(self._entries) > self._capacity:
            self._entries.pop(0)
        self._pointer = len(self._entries) - 1
        logger.info("Snapshot pushed", pointer=self._pointer, size=len(self._entries), pruned=pruned)
        return True

    def materialize(self) -> list[Character]:
        """Build fresh characters from the snapshot at the pointer.

        Raises:
            SnapshotError: If the history is empty.
        """
        if self._pointer < 0:
            raise SnapshotError("History is empty")
        payload = json.loads(self._entries[self._pointer])
        return [from_persisted(item, self._ruleset, settings=self._settings) for item in payload]

    def undo(self) -> list[Character] | None:
        """Step back one snapshot.

        Returns:
            The roster at the new pointer, or None if already at the oldest.
        """
        if not self.can_undo:
            logger.info("Nothing to undo", pointer=self._pointer)
            return None
        self._pointer -= 1
        logger.info("Undo", pointer=self._pointer)
        return self.materialize()

    def redo(self) -> list[Character] | None:
        """Step forward one snapshot.

        Returns:
            The roster at the new pointer, or None if already at the newest.
        """
        if not self.can_redo:
            logger.info("Nothing to redo", pointer=self._pointer)
            return None
        self._pointer += 1
        logger.info("Redo", pointer=self._pointer)
        return self.materialize()

    def clear(self) -> None:
        """Drop every snapshot."""
        self._entries.clear()
        self._pointer = -1


__all__ = [
    "HistoryManager",
]
