"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep guest data on the device and signed-in data in a remote document
2. Use in-memory storage for testing
3. Swap Google Sheets for a real document database later
4. Keep the sync engine decoupled from storage implementation

The interface is intentionally tiny. A record set is always read and
written WHOLE: there is no per-month read or write. A save is a full
overwrite, last writer wins.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.models.audit import AuditEvent
from src.models.finance import FinancialRecordSet
from src.models.status import ErrorKind


class RecordStoreInterface(ABC):
    """
    Abstract interface for record set storage.

    Any storage implementation (local file, Google Sheets, ...)
    must implement these methods. Every method is async, even for
    stores that complete synchronously, so callers treat them the same.
    """

    @abstractmethod
    async def load(self, identity_id: str) -> Optional[FinancialRecordSet]:
        """
        Load the identity's whole record set.

        Args:
            identity_id: Storage key of the owning identity

        Returns:
            The record set, or None if no document exists yet.
            "No document" is a first-login state, not an error.

        Raises:
            CorruptLocalDataError: Stored text could not be parsed
            PermissionDeniedError: Access policy rejected the read
            UnavailableError: Backend could not be reached
        """
        pass

    @abstractmethod
    async def save(self, identity_id: str, records: FinancialRecordSet) -> bool:
        """
        Overwrite the identity's document with the given record set.

        Args:
            identity_id: Storage key of the owning identity
            records: The complete record set

        Returns:
            True if saved successfully

        Raises:
            PermissionDeniedError: Access policy rejected the write
            UnavailableError: Backend could not be reached
        """
        pass

    @abstractmethod
    async def clear(self, identity_id: str) -> bool:
        """
        Delete the identity's document.

        Args:
            identity_id: Storage key of the owning identity

        Returns:
            True if a document was deleted, False if there was none

        Raises:
            PermissionDeniedError: Access policy rejected the delete
            UnavailableError: Backend could not be reached
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class CorruptLocalDataError(StorageError):
    """Local store held text that is not a record set."""
    kind = ErrorKind.CORRUPT_LOCAL_DATA


class PermissionDeniedError(StorageError):
    """Backend refused the operation for this identity."""
    kind = ErrorKind.PERMISSION_DENIED


class UnavailableError(StorageError):
    """Could not reach the storage backend."""
    kind = ErrorKind.UNAVAILABLE
