"""Persistence contract, undo/redo history and the roster store."""

from __future__ import annotations

from charsheet.storage.history import HistoryManager
from charsheet.storage.roster import RosterStore
from charsheet.storage.serialization import (
    dump_roster,
    from_persisted,
    load_roster,
    to_persisted,
)


__all__ = [
    "HistoryManager",
    "RosterStore",
    "to_persisted",
    "from_persisted",
    "dump_roster",
    "load_roster",
]
