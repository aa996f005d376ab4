"""
In-Memory Storage

Dictionary-backed record store. Used by tests and by the offline wiring
when no remote store is configured. Documents are stored as copies so a
caller mutating its own record set never changes what is "on disk".

Failures can be injected to exercise error paths without a network.
"""

from typing import Optional

from src.models.finance import FinancialRecordSet, copy_records
from src.services.storage.interface import RecordStoreInterface, StorageError


class InMemoryRecordStore(RecordStoreInterface):
    """Record store that lives and dies with the process."""

    def __init__(self, documents: Optional[dict[str, FinancialRecordSet]] = None):
        self._documents: dict[str, FinancialRecordSet] = {
            identity_id: copy_records(records)
            for identity_id, records in (documents or {}).items()
        }
        self.load_calls = 0
        self.save_calls: list[FinancialRecordSet] = []
        self.clear_calls = 0
        self.fail_load: Optional[StorageError] = None
        self.fail_save: Optional[StorageError] = None

    def contains(self, identity_id: str) -> bool:
        return identity_id in self._documents

    def document(self, identity_id: str) -> Optional[FinancialRecordSet]:
        """Copy of the stored document, for assertions."""
        records = self._documents.get(identity_id)
        return copy_records(records) if records is not None else None

    async def load(self, identity_id: str) -> Optional[FinancialRecordSet]:
        self.load_calls += 1
        if self.fail_load is not None:
            raise self.fail_load
        records = self._documents.get(identity_id)
        return copy_records(records) if records is not None else None

    async def save(self, identity_id: str, records: FinancialRecordSet) -> bool:
        self.save_calls.append(copy_records(records))
        if self.fail_save is not None:
            raise self.fail_save
        self._documents[identity_id] = copy_records(records)
        return True

    async def clear(self, identity_id: str) -> bool:
        self.clear_calls += 1
        return self._documents.pop(identity_id, None) is not None
