"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage:
local JSON files for guest sessions, Google Sheets as the remote document
store, and an in-memory store for tests and offline use.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    CorruptLocalDataError,
    PermissionDeniedError,
    RecordStoreInterface,
    StorageError,
    UnavailableError,
)
from src.services.storage.local_file import LocalFileRecordStore
from src.services.storage.memory import InMemoryRecordStore
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    # Exceptions
    "CorruptLocalDataError",
    "PermissionDeniedError",
    "StorageError",
    "UnavailableError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "LocalFileRecordStore",
]
