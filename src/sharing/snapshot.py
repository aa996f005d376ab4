"""
Snapshot Codec

Turns one month's record into a token that can be embedded in a link
(/snapshot/<token>) and back again, for read-only sharing.

ENCODING STEPS:
1. Payload {"monthYear": key, "data": record} as compact, sorted-key JSON
2. UTF-8 bytes (names may contain any Unicode)
3. URL-safe base64 without padding: only A-Z a-z 0-9 - _

A snapshot is DETACHED: it is a copy, later edits never change it.

Decoding is all-or-nothing. Any failure (bad alphabet, bad UTF-8,
bad JSON, missing fields) raises one generic SnapshotDecodeError;
a malformed token is never partially trusted.
"""

import base64
import binascii
import json
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, ValidationError

from src.models.finance import MonthlyRecord, is_month_key
from src.models.status import ErrorKind


SNAPSHOT_ROUTE_PREFIX = "/snapshot/"


class SnapshotDecodeError(Exception):
    """A snapshot token or link could not be decoded."""

    kind = ErrorKind.DECODE_ERROR

    def __init__(self, message: str = "The link you followed appears to be corrupted or invalid."):
        super().__init__(message)


class Snapshot(BaseModel):
    """A decoded, read-only month."""
    model_config = ConfigDict(frozen=True)

    month_key: str
    record: MonthlyRecord


def encode_snapshot(month_key: str, record: MonthlyRecord) -> str:
    """
    Encode one month as a URL-safe token.

    Raises:
        ValueError: If month_key is not YYYY-MM
    """
    if not is_month_key(month_key):
        raise ValueError(f"Not a month key: {month_key!r}")

    payload = {"monthYear": month_key, "data": record.to_document()}
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    token = base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    return token.rstrip("=")


def _token_to_bytes(token: str) -> bytes:
    if not isinstance(token, str):
        raise TypeError("token must be a string")

    # Older links percent-encoded a standard base64 token
    text = unquote(token.strip()).replace("+", "-").replace("/", "_").rstrip("=")
    if not text or len(text) % 4 == 1:
        raise ValueError("token has an impossible length")

    padded = text + "=" * (-len(text) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


def decode_snapshot(token: str) -> Snapshot:
    """
    Decode a token produced by encode_snapshot.

    Raises:
        SnapshotDecodeError: For any malformed or corrupted token
    """
    try:
        payload = json.loads(_token_to_bytes(token).decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("payload is not an object")

        month_key = payload.get("monthYear")
        data = payload.get("data")
        if not is_month_key(month_key):
            raise ValueError("payload has no valid monthYear")
        if not isinstance(data, dict):
            raise ValueError("payload has no data object")

        return Snapshot(month_key=month_key, record=MonthlyRecord.model_validate(data))
    except (TypeError, ValueError, binascii.Error, ValidationError) as e:
        raise SnapshotDecodeError() from e


def snapshot_path(token: str) -> str:
    """The route path a host application serves a snapshot on."""
    return f"{SNAPSHOT_ROUTE_PREFIX}{token}"


def parse_snapshot_path(path: str) -> str:
    """
    Extract the token from a /snapshot/<token> path.

    Raises:
        SnapshotDecodeError: If the path is not a snapshot link or has no token
    """
    if not path.startswith(SNAPSHOT_ROUTE_PREFIX):
        raise SnapshotDecodeError("Not a snapshot link.")
    token = path[len(SNAPSHOT_ROUTE_PREFIX):].split("?", 1)[0].strip("/")
    if not token:
        raise SnapshotDecodeError("The link you followed is incomplete.")
    return token
