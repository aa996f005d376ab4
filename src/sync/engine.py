"""
Synchronization Engine

Owns one identity's in-memory record set and keeps it in step with
durable storage.

STATE MACHINE (SaveStatus):
    loading  --load ok-->  saved
    loading  --load err--> error(LOAD_FAILED)
    saved/unsaved/error --update_month--> unsaved (+ debounce restarted)
    unsaved  --debounce elapsed--> saving
    saving   --save ok--> saved (or unsaved if edits arrived meanwhile)
    saving   --save err--> error(SAVE_FAILED), edits kept in memory
    error    --retry()--> loading or saving
    error(LOAD_FAILED) --retry() ok with offline edits--> unsaved

GUARANTEES:
1. Edits are OPTIMISTIC: visible immediately, persisted later
2. A burst of edits inside the debounce window becomes ONE save
3. At most one save is in flight; a save requested meanwhile is
   coalesced into the next debounce cycle
4. Failures are never retried automatically; retry() is explicit
5. A failed save never rolls back in-memory edits

The engine's lifetime is one identity's session. Identity changes
are handled by SyncSession, which builds a fresh engine.
"""

import asyncio
from datetime import date
from types import MappingProxyType
from typing import Callable, Mapping, NamedTuple, Optional, Union
from uuid import UUID

import structlog

from src.audit import AuditLogger
from src.models.audit import AuditEvent, AuditEventBuilder
from src.models.finance import (
    FinancialRecordSet,
    Identity,
    MonthlyRecord,
    copy_records,
    current_month_key,
    demo_record_set,
    initial_month_record,
    is_month_key,
)
from src.models.status import ErrorKind, SaveStatus
from src.services.storage import (
    CorruptLocalDataError,
    RecordStoreInterface,
    StorageError,
)
from src.sharing import ImportDocumentError, encode_snapshot, export_all, import_all


DEFAULT_DEBOUNCE_SECONDS = 3.0


class SyncStateError(Exception):
    """Operation not allowed in the engine's current state."""
    pass


class MigrationSource(NamedTuple):
    """Where guest data lives before an identity's first remote load."""
    store: RecordStoreInterface
    identity_id: str


Listener = Callable[["SyncEngine"], None]


class SyncEngine:
    """
    Mediates between UI edits and a record store for one identity.

    Usage:
        engine = SyncEngine(identity, store, debounce_seconds=3.0)
        await engine.load()
        engine.update_month("2024-03", record)   # returns immediately
        ...
        await engine.flush()                     # before shutdown
    """

    def __init__(
        self,
        identity: Identity,
        store: RecordStoreInterface,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        seed_missing: bool = True,
        migration_source: Optional[MigrationSource] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ):
        """
        Args:
            identity: Owner of the record set
            store: Where the record set is persisted
            debounce_seconds: Quiet period after the last edit before saving
            seed_missing: Create a starter document when none exists
            migration_source: Local data to move into a missing document
            audit_logger: Optional audit trail
            correlation_id: Ties this session's audit events together
            today: Fixed date for starter data (tests)
        """
        self._identity = identity
        self._store = store
        self._debounce_seconds = debounce_seconds
        self._seed_missing = seed_missing
        self._migration_source = migration_source
        self._audit_logger = audit_logger
        self._correlation_id = correlation_id
        self._today = today
        self._logger = structlog.get_logger(__name__).bind(identity_id=identity.id)

        self._records: FinancialRecordSet = {}
        self._status = SaveStatus.SAVED
        self._error_kind: Optional[ErrorKind] = None
        self._last_error: Optional[StorageError] = None

        # Bumped on every in-memory change; tells a finished save
        # whether it persisted the latest state
        self._generation = 0
        self._debounce_task: Optional[asyncio.Task] = None
        self._save_in_flight = False
        self._resave_requested = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._pending_migration_clear = False
        self._closed = False

        # Months edited while the stored document could not be read;
        # laid over the document once a load succeeds
        self._offline_edits: FinancialRecordSet = {}

        self._listeners: list[Listener] = []
        self._background: set[asyncio.Task] = set()

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """LOAD_FAILED or SAVE_FAILED while in the error state."""
        return self._error_kind

    @property
    def cause_kind(self) -> Optional[ErrorKind]:
        """The storage-level reason behind the current error."""
        return self._last_error.kind if self._last_error else None

    @property
    def correlation_id(self) -> Optional[UUID]:
        return self._correlation_id

    @property
    def is_closed(self) -> bool:
        return self._closed

    def has_data(self) -> bool:
        return bool(self._records)

    def month_keys(self) -> list[str]:
        """Recorded months, oldest first."""
        return sorted(self._records)

    def get_month(self, month_key: str) -> MonthlyRecord:
        """
        The record for a month, or a fresh starter template.

        The template is NOT inserted; it only exists once saved via
        update_month.
        """
        record = self._records.get(month_key)
        if record is None:
            return initial_month_record()
        return record.model_copy(deep=True)

    def snapshot(self) -> Mapping[str, MonthlyRecord]:
        """Read-only copy of the record set for one render."""
        return MappingProxyType(
            {key: self._records[key].model_copy(deep=True) for key in sorted(self._records)}
        )

    def add_listener(self, listener: Listener) -> None:
        """Call listener(engine) after every state or data change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load(self) -> bool:
        """
        Load the record set, creating the document on first login.

        Returns:
            True if the engine ended up with data in memory and no error
        """
        self._ensure_open()
        self._cancel_debounce()
        self._error_kind = None
        self._last_error = None
        self._set_status(SaveStatus.LOADING)

        try:
            records = await self._store.load(self._identity.id)
        except CorruptLocalDataError as e:
            await self._audit(
                AuditEventBuilder.corrupt_local_data(self._identity.id, str(e), self._correlation_id)
            )
            records = None
        except StorageError as e:
            self._records = copy_records(self._offline_edits)
            self._generation += 1
            await self._audit(
                AuditEventBuilder.load_failed(
                    self._identity.id, e.kind.value, str(e), self._correlation_id
                )
            )
            self._fail(ErrorKind.LOAD_FAILED, e)
            return False

        if records is None and self._seed_missing:
            return await self._create_document()

        records = records or {}
        had_offline_edits = bool(self._offline_edits)
        self._records = self._merge_offline_edits(records)
        self._generation += 1
        await self._audit(
            AuditEventBuilder.records_loaded(self._identity.id, len(records), self._correlation_id)
        )
        self._set_status(SaveStatus.SAVED)
        if had_offline_edits:
            self._mark_unsaved()
        return True

    def _merge_offline_edits(self, records: FinancialRecordSet) -> FinancialRecordSet:
        """Lay months edited during a failed load over the stored set."""
        edits, self._offline_edits = self._offline_edits, {}
        if not edits:
            return records
        self._logger.info("offline_edits_merged", months=sorted(edits))
        return {**records, **edits}

    async def _create_document(self) -> bool:
        """
        First load for this identity: migrate guest data or seed a starter set.

        Migration only ever happens here, i.e. when the document does not
        exist, so existing remote data is never overwritten by local data.
        """
        migrated = await self._read_migration_source()
        if migrated:
            records = migrated
        elif self._identity.is_anonymous:
            records = demo_record_set(self._today)
        else:
            records = {current_month_key(self._today): initial_month_record()}

        self._records = self._merge_offline_edits(records)
        self._generation += 1
        self._pending_migration_clear = bool(migrated)

        if migrated:
            event = AuditEventBuilder.local_data_migrated(
                self._identity.id, len(records), self._correlation_id
            )
        else:
            seed = "demo" if self._identity.is_anonymous else "template"
            event = AuditEventBuilder.starter_seeded(
                self._identity.id, seed, len(records), self._correlation_id
            )
        await self._audit(event)

        return await self._save()

    async def _read_migration_source(self) -> Optional[FinancialRecordSet]:
        if self._migration_source is None:
            return None
        source = self._migration_source
        try:
            return await source.store.load(source.identity_id)
        except StorageError as e:
            self._logger.warning("migration_source_unreadable", error=str(e), kind=e.kind.value)
            return None

    async def _clear_migration_source(self) -> None:
        self._pending_migration_clear = False
        source = self._migration_source
        if source is None:
            return
        try:
            await source.store.clear(source.identity_id)
        except StorageError as e:
            self._logger.warning("migration_source_not_cleared", error=str(e), kind=e.kind.value)

    # =========================================================================
    # EDITING
    # =========================================================================

    def update_month(self, month_key: str, record: MonthlyRecord) -> None:
        """
        Replace one month's record.

        The change is visible immediately; persistence happens after the
        debounce window. Must be called from the running event loop.

        Raises:
            SyncStateError: While loading, or after close()
            ValueError: If month_key is not YYYY-MM
        """
        self._ensure_editable()
        if not is_month_key(month_key):
            raise ValueError(f"Not a month key: {month_key!r}")

        self._records = {**self._records, month_key: record.model_copy(deep=True)}
        self._generation += 1
        if self._error_kind == ErrorKind.LOAD_FAILED:
            self._offline_edits[month_key] = record.model_copy(deep=True)
        self._audit_soon(
            AuditEventBuilder.month_updated(self._identity.id, month_key, self._correlation_id)
        )
        self._mark_unsaved()

    async def import_all(self, text: Union[str, bytes]) -> FinancialRecordSet:
        """
        Restore the whole record set from an exported document.

        The document is parsed before anything changes: a malformed
        document leaves the current set untouched.

        Raises:
            ImportDocumentError: If the document is malformed
            SyncStateError: While loading, or after close()
        """
        self._ensure_editable()
        try:
            records = import_all(text)
        except ImportDocumentError as e:
            await self._audit(
                AuditEventBuilder.import_rejected(self._identity.id, str(e), self._correlation_id)
            )
            raise

        self._records = records
        self._generation += 1
        if self._error_kind == ErrorKind.LOAD_FAILED:
            # A restore replaces the whole document, so it is safe to write
            self._error_kind = None
            self._offline_edits = {}
        await self._audit(
            AuditEventBuilder.records_imported(self._identity.id, len(records), self._correlation_id)
        )
        self._mark_unsaved()
        return copy_records(records)

    def export_all(self) -> str:
        """The whole record set as a backup document."""
        self._audit_soon(
            AuditEventBuilder.records_exported(self._identity.id, len(self._records), self._correlation_id)
        )
        return export_all(self._records)

    def create_snapshot_token(self, month_key: str) -> str:
        """
        Encode one recorded month for a share link.

        Raises:
            KeyError: If nothing is recorded for the month
        """
        record = self._records.get(month_key)
        if record is None:
            raise KeyError(f"No data recorded for {month_key}")
        token = encode_snapshot(month_key, record)
        self._audit_soon(
            AuditEventBuilder.snapshot_created(self._identity.id, month_key, self._correlation_id)
        )
        return token

    def _mark_unsaved(self) -> None:
        if self._error_kind == ErrorKind.LOAD_FAILED:
            # The stored document was never seen; saving now would
            # overwrite it with a partial set. Edits stay in memory
            # and are merged into the document when retry() reloads.
            self._notify()
            return
        self._error_kind = None
        self._last_error = None
        self._set_status(SaveStatus.UNSAVED, force_notify=True)
        self._schedule_save()

    # =========================================================================
    # SAVING
    # =========================================================================

    def _schedule_save(self) -> None:
        """Cancel any pending debounce and start a new one."""
        self._cancel_debounce()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounced_save())

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        self._debounce_task = None
        await self._save()

    async def _save(self) -> bool:
        """Persist the current record set. One save in flight at a time."""
        if self._save_in_flight:
            self._resave_requested = True
            return False

        self._save_in_flight = True
        self._idle.clear()
        generation = self._generation
        records = copy_records(self._records)
        self._set_status(SaveStatus.SAVING)

        try:
            await self._store.save(self._identity.id, records)
        except StorageError as e:
            self._finish_save()
            self._resave_requested = False
            await self._audit(
                AuditEventBuilder.save_failed(
                    self._identity.id, e.kind.value, str(e), self._correlation_id
                )
            )
            if generation == self._generation or self._debounce_task is None:
                self._fail(ErrorKind.SAVE_FAILED, e)
            return False

        self._finish_save()
        await self._audit(
            AuditEventBuilder.records_saved(self._identity.id, len(records), self._correlation_id)
        )
        if self._pending_migration_clear:
            await self._clear_migration_source()

        if self._closed:
            return True

        if generation == self._generation:
            self._error_kind = None
            self._last_error = None
            self._set_status(SaveStatus.SAVED)
        else:
            self._set_status(SaveStatus.UNSAVED)
            if self._resave_requested and self._debounce_task is None:
                self._schedule_save()
        self._resave_requested = False
        return True

    def _finish_save(self) -> None:
        self._save_in_flight = False
        self._idle.set()

    async def retry(self) -> bool:
        """
        Explicit user retry after a failure.

        Reloads after LOAD_FAILED, re-saves the current in-memory set
        after SAVE_FAILED. Does nothing outside the error state.
        """
        self._ensure_open()
        if self._status != SaveStatus.ERROR:
            return self._status == SaveStatus.SAVED

        await self._audit(AuditEventBuilder.save_retried(self._identity.id, self._correlation_id))
        if self._error_kind == ErrorKind.LOAD_FAILED:
            return await self.load()

        self._cancel_debounce()
        await self._idle.wait()
        return await self._save()

    async def flush(self) -> bool:
        """
        Save pending edits now instead of waiting for the debounce.

        Waits for an in-flight save first. Returns True when everything
        in memory is durable.
        """
        self._cancel_debounce()
        await self._idle.wait()
        self._cancel_debounce()
        if self._status == SaveStatus.UNSAVED:
            return await self._save()
        return self._status == SaveStatus.SAVED

    async def close(self) -> None:
        """
        End the session: cancel pending work and discard the in-memory set.

        An in-flight save is not cancelled; it completes in the background.
        """
        if self._closed:
            return
        self._closed = True
        self._cancel_debounce()
        self._records = {}
        self._generation += 1
        self._error_kind = None
        self._last_error = None
        self._set_status(SaveStatus.SAVED, force_notify=True)
        self._listeners.clear()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _ensure_open(self) -> None:
        if self._closed:
            raise SyncStateError("Session has ended")

    def _ensure_editable(self) -> None:
        self._ensure_open()
        if self._status == SaveStatus.LOADING:
            raise SyncStateError("Records are still loading")

    def _set_status(self, status: SaveStatus, force_notify: bool = False) -> None:
        changed = status != self._status
        self._status = status
        if changed or force_notify:
            self._notify()

    def _fail(self, kind: ErrorKind, error: StorageError) -> None:
        self._error_kind = kind
        self._last_error = error
        self._logger.warning("sync_failed", state=kind.value, cause=error.kind.value, error=str(error))
        self._set_status(SaveStatus.ERROR, force_notify=True)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger is not None:
            await self._audit_logger.log(event)

    def _audit_soon(self, event: AuditEvent) -> None:
        """Audit from synchronous code without blocking the caller."""
        if self._audit_logger is None:
            return
        task = asyncio.get_running_loop().create_task(self._audit_logger.log(event))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
