"""Sharing and backup: single-month snapshot links and full-set documents."""

from src.sharing.backup import (
    ImportDocumentError,
    export_all,
    export_filename,
    export_template,
    import_all,
)
from src.sharing.snapshot import (
    Snapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
    parse_snapshot_path,
    snapshot_path,
)

__all__ = [
    "ImportDocumentError",
    "Snapshot",
    "SnapshotDecodeError",
    "decode_snapshot",
    "encode_snapshot",
    "export_all",
    "export_filename",
    "export_template",
    "import_all",
    "parse_snapshot_path",
    "snapshot_path",
]
