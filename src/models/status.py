"""
Status and Error Kinds

Shared vocabulary for persistence state and failures.
Every error the core can surface carries one of these kinds so the UI
can decide what to render (retry affordance, "invalid link" screen, ...).
"""

from enum import Enum


class SaveStatus(str, Enum):
    """
    Persistence state of the in-memory record set.

    SAVED doubles as the idle state: nothing pending, nothing failed.
    """
    SAVED = "saved"
    LOADING = "loading"
    UNSAVED = "unsaved"
    SAVING = "saving"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Failure taxonomy."""
    # Storage
    CORRUPT_LOCAL_DATA = "corrupt_local_data"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"

    # Documents and links
    MALFORMED_DOCUMENT = "malformed_document"
    DECODE_ERROR = "decode_error"

    # Engine state
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"
