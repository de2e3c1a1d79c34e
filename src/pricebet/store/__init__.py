"""SQLite persistence for engine state."""

from .sqlite_store import Snapshot, StateStore

__all__ = ["Snapshot", "StateStore"]
