"""Tests for snapshot links and full-set import/export."""

import base64
import json
import re
from datetime import date
from urllib.parse import quote

import pytest

from src.metrics import DTIRating, classify_dti, normalized_monthly_income, record_dti
from src.models.finance import MonthlyRecord, NamedAmount, PayFrequency
from src.models.status import ErrorKind
from src.sharing import (
    ImportDocumentError,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
    export_all,
    export_filename,
    export_template,
    import_all,
    parse_snapshot_path,
    snapshot_path,
)


class TestSnapshotCodec:
    """Tests for single-month share tokens."""

    def test_round_trip(self, record):
        token = encode_snapshot("2024-03", record)
        snapshot = decode_snapshot(token)
        assert snapshot.month_key == "2024-03"
        assert snapshot.record == record

    def test_token_is_url_safe(self, record):
        """Test that tokens use only the URL-safe alphabet, without padding."""
        record.monthly_bills.append(NamedAmount(name="Café ☕ ???>>>", amount=4))
        token = encode_snapshot("2024-03", record)
        assert re.fullmatch(r"[A-Za-z0-9_-]+", token)

    def test_unicode_names_survive(self, record_factory):
        record = record_factory(name="Gehalt für März 💶")
        snapshot = decode_snapshot(encode_snapshot("2024-03", record))
        assert snapshot.record.income[0].name == "Gehalt für März 💶"

    def test_snapshot_is_detached(self, record):
        """Test that later edits do not change an issued token."""
        token = encode_snapshot("2024-03", record)
        record.monthly_bills[0].amount = 9999
        assert decode_snapshot(token).record.monthly_bills[0].amount == 2000

    def test_encode_rejects_bad_month_key(self, record):
        with pytest.raises(ValueError):
            encode_snapshot("March", record)

    def test_decode_accepts_legacy_percent_encoded_token(self, record):
        """Test older links: standard base64, padded, percent-encoded."""
        payload = json.dumps({"monthYear": "2024-03", "data": record.to_document()})
        legacy = quote(base64.b64encode(payload.encode("utf-8")).decode("ascii"), safe="")
        assert decode_snapshot(legacy).record == record

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "!!!not-base64!!!",
            "a",
            base64.urlsafe_b64encode(b"not json").decode().rstrip("="),
            base64.urlsafe_b64encode(b"[1, 2]").decode().rstrip("="),
            base64.urlsafe_b64encode(b'{"monthYear": "2024-13", "data": {}}').decode().rstrip("="),
            base64.urlsafe_b64encode(b'{"monthYear": "2024-03", "data": []}').decode().rstrip("="),
            base64.urlsafe_b64encode(b"\xff\xfe\xfd").decode().rstrip("="),
        ],
    )
    def test_decode_rejects_malformed_tokens(self, token):
        """Test that every malformed token gives the same generic error."""
        with pytest.raises(SnapshotDecodeError) as exc_info:
            decode_snapshot(token)
        assert exc_info.value.kind == ErrorKind.DECODE_ERROR
        assert "corrupted or invalid" in str(exc_info.value)

    def test_snapshot_path(self, record):
        token = encode_snapshot("2024-03", record)
        path = snapshot_path(token)
        assert path == f"/snapshot/{token}"
        assert parse_snapshot_path(path) == token
        assert parse_snapshot_path(path + "?ref=share") == token

    def test_parse_snapshot_path_rejects_other_routes(self):
        with pytest.raises(SnapshotDecodeError):
            parse_snapshot_path("/dashboard")
        with pytest.raises(SnapshotDecodeError):
            parse_snapshot_path("/snapshot/")


class TestBackup:
    """Tests for full record set export and import."""

    def test_export_is_pretty_and_sorted(self, record):
        text = export_all({"2024-03": record, "2023-11": record})
        document = json.loads(text)
        assert list(document) == ["2023-11", "2024-03"]
        assert text.startswith('{\n  "2023-11"')

    def test_export_keeps_unicode(self, record_factory):
        text = export_all({"2024-03": record_factory(name="Überstunden")})
        assert "Überstunden" in text

    def test_import_round_trip(self, record):
        records = {"2024-01": record, "2024-03": MonthlyRecord()}
        assert import_all(export_all(records)) == records

    def test_import_accepts_bytes_with_bom(self, record):
        data = "\ufeff".encode("utf-8") + export_all({"2024-03": record}).encode("utf-8")
        assert import_all(data) == {"2024-03": record}

    def test_import_computes_same_metrics(self):
        """Test a hand-written document: 2000 bills / 5000 income is DTI 40, neutral."""
        document = json.dumps({
            "2024-03": {
                "income": [{"name": "Job", "amount": 5000, "frequency": "monthly"}],
                "monthlyBills": [{"name": "Rent", "amount": 2000}],
            }
        })
        records = import_all(document)
        assert record_dti(records["2024-03"]) == pytest.approx(40.0)

    def test_import_accepts_unknown_frequency(self):
        """Test that an unrecognised pay period imports and adds no income."""
        document = json.dumps({
            "2024-03": {
                "income": [
                    {"name": "Job", "amount": 5000, "frequency": "monthly"},
                    {"name": "Side gig", "amount": 100, "frequency": "daily"},
                    {"name": "Tips", "amount": 40, "frequency": 7},
                ],
            }
        })
        records = import_all(document)
        income = records["2024-03"].income
        assert [source.name for source in income] == ["Job", "Side gig", "Tips"]
        assert income[1].frequency == PayFrequency.OTHER
        assert income[2].frequency == PayFrequency.OTHER
        assert normalized_monthly_income(income) == pytest.approx(5000)
        assert classify_dti(record_dti(records["2024-03"])) == DTIRating.NEUTRAL

    def test_import_coerces_bad_numbers(self):
        records = import_all('{"2024-03": {"assets": [{"name": "Cash", "value": "lots"}]}}')
        assert records["2024-03"].assets[0].value == 0.0

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "[1, 2, 3]",
            '"just a string"',
            '{"March 2024": {}}',
            '{"2024-03": "not an object"}',
        ],
    )
    def test_import_rejects_malformed_documents(self, text):
        with pytest.raises(ImportDocumentError) as exc_info:
            import_all(text)
        assert exc_info.value.kind == ErrorKind.MALFORMED_DOCUMENT

    def test_export_template(self):
        document = json.loads(export_template(date(2024, 3, 15)))
        assert list(document) == ["2024-03"]
        assert document["2024-03"]["income"][0]["name"] == "Main Job"

    def test_export_filename(self):
        assert export_filename(date(2024, 3, 5)) == "creditworth-export-2024-03-05.json"
