"""
Audit Models for CreditWorth

Every persistence step is recorded so a user (or a maintainer) can
reconstruct what happened to a record set:
1. When it was loaded, seeded or migrated
2. Which months were edited
3. Every save attempt and its outcome
4. Imports, exports and shared snapshots

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Audit events never carry account names or amounts, only month keys,
counts and error kinds.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"

    # Loading
    RECORDS_LOADED = "records_loaded"
    LOAD_FAILED = "load_failed"
    STARTER_SEEDED = "starter_seeded"
    LOCAL_DATA_MIGRATED = "local_data_migrated"
    CORRUPT_LOCAL_DATA = "corrupt_local_data"

    # Editing and persistence
    MONTH_UPDATED = "month_updated"
    RECORDS_SAVED = "records_saved"
    SAVE_FAILED = "save_failed"
    SAVE_RETRIED = "save_retried"

    # Backup and sharing
    RECORDS_IMPORTED = "records_imported"
    IMPORT_REJECTED = "import_rejected"
    RECORDS_EXPORTED = "records_exported"
    SNAPSHOT_CREATED = "snapshot_created"
    SNAPSHOT_REJECTED = "snapshot_rejected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose records, which month
    identity_id: Optional[str] = Field(
        default=None,
        description="Identity that owns the record set"
    )
    month_key: Optional[str] = Field(
        default=None,
        description="Month the event relates to, if any"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "identity_id": self.identity_id,
            "month_key": self.month_key,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, identity_id, month_key,
         correlation_id, description, details_json, error_kind, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.identity_id or "",
            self.month_key or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_kind or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.records_saved(identity_id, month_count, correlation_id)
    """

    @staticmethod
    def session_started(
        identity_id: str,
        is_anonymous: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Session started",
            details={"is_anonymous": is_anonymous},
            is_user_action=True,
        )

    @staticmethod
    def session_ended(
        identity_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ENDED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Session ended, in-memory records discarded",
            is_user_action=True,
        )

    @staticmethod
    def records_loaded(
        identity_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_LOADED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"Loaded {month_count} months",
            details={"month_count": month_count},
        )

    @staticmethod
    def load_failed(
        identity_id: str,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Loading records failed",
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def starter_seeded(
        identity_id: str,
        seed: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STARTER_SEEDED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"New document seeded with {seed} data",
            details={"seed": seed, "month_count": month_count},
        )

    @staticmethod
    def local_data_migrated(
        identity_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_DATA_MIGRATED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"Migrated {month_count} local months to the remote document",
            details={"month_count": month_count},
        )

    @staticmethod
    def corrupt_local_data(
        identity_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRUPT_LOCAL_DATA,
            severity=AuditSeverity.WARNING,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Local data could not be parsed, treated as empty",
            error_kind="corrupt_local_data",
            error_message=error_message,
        )

    @staticmethod
    def month_updated(
        identity_id: str,
        month_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_UPDATED,
            severity=AuditSeverity.DEBUG,
            identity_id=identity_id,
            month_key=month_key,
            correlation_id=correlation_id,
            description=f"Month {month_key} updated",
            is_user_action=True,
        )

    @staticmethod
    def records_saved(
        identity_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_SAVED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"Saved {month_count} months",
            details={"month_count": month_count},
        )

    @staticmethod
    def save_failed(
        identity_id: str,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Saving records failed, edits kept in memory",
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def save_retried(
        identity_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_RETRIED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="User retried after a persistence failure",
            is_user_action=True,
        )

    @staticmethod
    def records_imported(
        identity_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_IMPORTED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"Restored {month_count} months from an imported document",
            details={"month_count": month_count},
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        identity_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description="Imported document rejected",
            error_kind="malformed_document",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def records_exported(
        identity_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_EXPORTED,
            identity_id=identity_id,
            correlation_id=correlation_id,
            description=f"Exported {month_count} months",
            details={"month_count": month_count},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_created(
        identity_id: str,
        month_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_CREATED,
            identity_id=identity_id,
            month_key=month_key,
            correlation_id=correlation_id,
            description=f"Share link created for {month_key}",
            is_user_action=True,
        )

    @staticmethod
    def snapshot_rejected(
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Invalid snapshot link",
            error_kind="decode_error",
            error_message=error_message,
        )
