"""
Local File Storage

On-device key-value storage for guest sessions: one JSON file per
storage key inside a data directory.

GUARANTEES:
- A missing file means "no data yet" (load returns None)
- Writes are atomic: a crash mid-write leaves the previous file intact
- Unparseable content raises CorruptLocalDataError, never a raw
  JSON or validation error
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from src.models.finance import (
    FinancialRecordSet,
    records_from_document,
    records_to_document,
)
from src.services.storage.interface import (
    CorruptLocalDataError,
    RecordStoreInterface,
    UnavailableError,
)


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class LocalFileRecordStore(RecordStoreInterface):
    """Record store backed by JSON files on the local disk."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)
        self._logger = structlog.get_logger(__name__)

    def path_for(self, identity_id: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", identity_id) or "_"
        return self._data_dir / f"{safe_key}.json"

    async def load(self, identity_id: str) -> Optional[FinancialRecordSet]:
        path = self.path_for(identity_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptLocalDataError(f"Local data is not UTF-8 text: {e}")
        except OSError as e:
            raise UnavailableError(f"Failed to read local data: {e}")

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptLocalDataError(f"Local data is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise CorruptLocalDataError("Local data is not a record set")

        try:
            return records_from_document(document)
        except (ValueError, ValidationError) as e:
            raise CorruptLocalDataError(f"Local data is not a record set: {e}")

    async def save(self, identity_id: str, records: FinancialRecordSet) -> bool:
        path = self.path_for(identity_id)
        text = json.dumps(records_to_document(records), ensure_ascii=False)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise UnavailableError(f"Failed to write local data: {e}")

        self._logger.debug("local_records_saved", path=str(path), months=len(records))
        return True

    async def clear(self, identity_id: str) -> bool:
        path = self.path_for(identity_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise UnavailableError(f"Failed to clear local data: {e}")
        return True
