"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    CorruptLocalDataError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    LocalFileRecordStore,
    PermissionDeniedError,
    RecordStoreInterface,
    StorageError,
    UnavailableError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "CorruptLocalDataError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "LocalFileRecordStore",
    "PermissionDeniedError",
    "RecordStoreInterface",
    "StorageError",
    "UnavailableError",
]
