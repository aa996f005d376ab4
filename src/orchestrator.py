"""
Main Orchestrator for CreditWorth

This module ties together all the components:
1. Session setup (settings → stores → audit logger → SyncSession)
2. Opening a shared snapshot link (path → token → decoded month)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Guest data never leaves the device unless the user signs in
- Remote data is only written by the sync engine
- A missing remote configuration degrades to an in-memory store,
  it does not stop the app from starting

This is the "glue"; the components themselves know nothing about
each other's concrete classes.
"""

from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.audit import AuditLogger, configure_logging, create_correlation_id
from src.config import get_settings
from src.models.audit import AuditEventBuilder
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    LocalFileRecordStore,
    RecordStoreInterface,
)
from src.sharing import Snapshot, SnapshotDecodeError, decode_snapshot, parse_snapshot_path
from src.sync import SyncSession


def create_session(use_remote: bool = True) -> SyncSession:
    """
    Factory function to create a ready-to-use sync session.

    Args:
        use_remote: Whether to initialize Google Sheets storage.
                    Set to False to keep signed-in data in memory.

    Returns:
        A SyncSession with no active engine; call start_guest() or
        set_identity() next.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)
    logger = structlog.get_logger(__name__)

    local_settings = settings.local_store
    local_store = LocalFileRecordStore(local_settings.resolved_data_dir)

    remote_store: RecordStoreInterface
    audit_logger: AuditLogger
    if use_remote:
        try:
            sheets_client = GoogleSheetsClient()
            remote_store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValidationError as e:
            # Remote store not configured; continue without it
            logger.warning("remote_store_not_configured", error=str(e))
            remote_store = InMemoryRecordStore()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        remote_store = InMemoryRecordStore()
        audit_logger = AuditLogger()  # Local-only logging

    return SyncSession(
        remote_store,
        local_store,
        debounce_seconds=settings.sync.debounce_seconds,
        guest_key=local_settings.guest_key,
        audit_logger=audit_logger,
    )


async def open_snapshot_link(
    path: str,
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
) -> tuple[Optional[Snapshot], str]:
    """
    Decode a shared month from a link path.

    Needs no identity and touches no store.

    Returns:
        (snapshot, message)

    If snapshot is None, message explains why the link is unusable.
    """
    correlation_id = correlation_id or create_correlation_id()

    try:
        snapshot = decode_snapshot(parse_snapshot_path(path))
    except SnapshotDecodeError as e:
        if audit_logger:
            await audit_logger.log(AuditEventBuilder.snapshot_rejected(str(e), correlation_id))
        return None, str(e)

    return snapshot, f"Shared snapshot for {snapshot.month_key}"
