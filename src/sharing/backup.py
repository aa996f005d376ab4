"""
Import/Export Gateway

Full backup and restore of a record set as a JSON document.

DOCUMENT FORMAT:
- UTF-8 text, 2-space indentation (human-diffable)
- Top-level keys are month keys (YYYY-MM), sorted chronologically
- Values are MonthlyRecord objects in their camelCase wire shape

IMPORT IS A RESTORE, NOT A MERGE: the parsed set replaces the
current one entirely. Structural problems (not JSON, not an object,
a key that is not a month, a month that is not an object) reject the
whole document. Field values are not deep-validated; bad numbers are
coerced to zero by the models.
"""

import json
from datetime import date
from typing import Optional, Union

from pydantic import ValidationError

from src.models.finance import (
    FinancialRecordSet,
    current_month_key,
    initial_month_record,
    records_from_document,
    records_to_document,
)
from src.models.status import ErrorKind


EXPORT_FILENAME_PREFIX = "creditworth-export"
TEMPLATE_FILENAME = "creditworth-template.json"


class ImportDocumentError(Exception):
    """An imported document failed structural validation."""

    kind = ErrorKind.MALFORMED_DOCUMENT


def export_all(records: FinancialRecordSet) -> str:
    """Serialize the whole record set as a pretty-printed JSON document."""
    return json.dumps(records_to_document(records), indent=2, ensure_ascii=False)


def import_all(text: Union[str, bytes]) -> FinancialRecordSet:
    """
    Parse a document produced by export_all (or written by hand).

    Raises:
        ImportDocumentError: If the document is not a month -> record mapping
    """
    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8-sig")
        document = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportDocumentError(f"Document is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise ImportDocumentError("Document must be an object keyed by month (YYYY-MM)")

    try:
        return records_from_document(document)
    except (ValueError, ValidationError) as e:
        raise ImportDocumentError(str(e)) from e


def export_template(today: Optional[date] = None) -> str:
    """A one-month starter document users can fill in and import."""
    return export_all({current_month_key(today): initial_month_record()})


def export_filename(today: Optional[date] = None) -> str:
    return f"{EXPORT_FILENAME_PREFIX}-{(today or date.today()).isoformat()}.json"
