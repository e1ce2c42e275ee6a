"""State persistence."""

from tcrbot.storage.sqlite import SQLiteStateStore

__all__ = ["SQLiteStateStore"]
