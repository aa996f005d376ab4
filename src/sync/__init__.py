"""Synchronization: in-memory record set, debounced persistence, identity lifecycle."""

from src.sync.engine import (
    DEFAULT_DEBOUNCE_SECONDS,
    MigrationSource,
    SyncEngine,
    SyncStateError,
)
from src.sync.session import SyncSession

__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "MigrationSource",
    "SyncEngine",
    "SyncSession",
    "SyncStateError",
]
