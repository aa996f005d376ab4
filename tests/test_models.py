"""
Tests for CreditWorth

Test strategy:
1. Unit tests for individual components (models, metrics, codecs)
2. Integration tests for the sync engine (with in-memory stores)
3. No real API calls in tests (use mocks)
"""

import math
from datetime import date
from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.models.finance import (
    Asset,
    CreditScores,
    Identity,
    IncomeSource,
    LiabilityAccount,
    MonthlyRecord,
    NamedAmount,
    PayFrequency,
    coerce_amount,
    copy_records,
    current_month_key,
    demo_record_set,
    format_month_key,
    initial_month_record,
    is_month_key,
    next_month_key,
    previous_month_key,
    records_from_document,
    records_to_document,
    shift_month_key,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.status import ErrorKind, SaveStatus


class TestFinanceModels:
    """Tests for the monthly record Pydantic models."""

    def test_line_item_generates_id(self):
        """Test that items without an ID get one."""
        first = NamedAmount(name="Rent", amount=1200)
        second = NamedAmount(name="Rent", amount=1200)
        assert first.id
        assert first.id != second.id

    def test_line_item_replaces_empty_id(self):
        """Test that an empty ID is regenerated."""
        item = Asset.model_validate({"id": "", "name": "Savings", "value": 10})
        assert item.id

    def test_amount_coercion(self):
        """Test that unusable numbers become zero."""
        assert coerce_amount("12.5") == 12.5
        assert coerce_amount("abc") == 0.0
        assert coerce_amount(None) == 0.0
        assert coerce_amount(-50) == 0.0
        assert coerce_amount(math.nan) == 0.0
        assert coerce_amount(math.inf) == 0.0
        assert coerce_amount(True) == 0.0

    def test_liability_account_coerces_bad_numbers(self):
        """Test that a malformed balance is stored as zero, not rejected."""
        card = LiabilityAccount.model_validate({"name": "Visa", "balance": "oops", "limit": -1})
        assert card.balance == 0.0
        assert card.limit == 0.0

    def test_income_frequency_defaults_to_monthly(self):
        """Test the default pay period."""
        source = IncomeSource(name="Job", amount=100)
        assert source.frequency == PayFrequency.MONTHLY

    def test_income_accepts_legacy_frequency(self):
        """Test that the old twice-a-month spelling still loads."""
        source = IncomeSource.model_validate({"name": "Job", "frequency": "twice-a-month"})
        assert source.frequency == PayFrequency.TWICE_MONTHLY

    def test_income_unknown_frequency_becomes_other(self):
        """Test that an unknown pay period is kept as OTHER instead of failing."""
        source = IncomeSource.model_validate({"name": "Job", "frequency": "fortnightly-ish", "amount": 50})
        assert source.frequency == PayFrequency.OTHER
        assert source.amount == 50

    def test_income_non_string_frequency_becomes_other(self):
        """Test that a numeric pay period does not reject the source."""
        source = IncomeSource.model_validate({"name": "Job", "frequency": 3})
        assert source.frequency == PayFrequency.OTHER

    def test_income_frequency_case_insensitive(self):
        """Test that pay periods are matched regardless of case."""
        source = IncomeSource.model_validate({"name": "Job", "frequency": " Weekly "})
        assert source.frequency == PayFrequency.WEEKLY

    def test_credit_scores_aliases(self):
        """Test camelCase wire names for auxiliary scores."""
        scores = CreditScores.model_validate({"experian": 700, "lendingTree": 690, "mrCooper": 710})
        assert scores.lending_tree == 690
        assert scores.mr_cooper == 710
        assert scores.equifax == 0

    def test_credit_scores_accept_legacy_shape(self):
        """Test that {"score8": n} readings are unwrapped."""
        scores = CreditScores.model_validate({"experian": {"score8": 701}})
        assert scores.experian == 701

    def test_bureau_scores(self):
        """Test the three bureau scores by name."""
        scores = CreditScores(experian=1, equifax=2, transunion=3, credit_karma=4)
        assert scores.bureau_scores == {"experian": 1, "equifax": 2, "transunion": 3}

    def test_monthly_record_defaults(self):
        """Test that every list defaults to empty."""
        record = MonthlyRecord()
        assert record.income == []
        assert record.credit_cards == []
        assert record.loans == []
        assert record.assets == []
        assert record.monthly_bills == []
        assert record.credit_scores == CreditScores()

    def test_monthly_record_tolerates_missing_and_malformed_lists(self):
        """Test that non-list fields load as empty lists."""
        record = MonthlyRecord.model_validate({
            "creditCards": None,
            "loans": "not a list",
            "assets": [{"name": "Cash", "value": 5}, "junk"],
        })
        assert record.credit_cards == []
        assert record.loans == []
        assert len(record.assets) == 1

    def test_monthly_record_accepts_legacy_income(self):
        """Test that {"jobs": [...]} income still loads."""
        record = MonthlyRecord.model_validate({
            "income": {"jobs": [{"name": "Job", "amount": 3000, "frequency": "monthly"}]},
        })
        assert len(record.income) == 1
        assert record.income[0].amount == 3000

    def test_monthly_record_regenerates_duplicate_ids(self):
        """Test that IDs are unique within each list."""
        record = MonthlyRecord.model_validate({
            "monthlyBills": [
                {"id": "same", "name": "Rent", "amount": 1},
                {"id": "same", "name": "Power", "amount": 2},
            ],
        })
        ids = [bill.id for bill in record.monthly_bills]
        assert ids[0] == "same"
        assert ids[1] != "same"

    def test_to_document_uses_wire_names(self, record):
        """Test the camelCase wire shape."""
        document = record.to_document()
        assert set(document) == {
            "income", "creditScores", "creditCards", "loans", "assets", "monthlyBills",
        }
        assert "lendingTree" in document["creditScores"]
        assert document["income"][0]["frequency"] == "monthly"

    def test_document_round_trip_preserves_ids(self, record):
        """Test that parsing a dumped record keeps item IDs."""
        parsed = MonthlyRecord.model_validate(record.to_document())
        assert parsed == record

    def test_identity_is_frozen(self):
        """Test that identities are immutable and comparable."""
        identity = Identity(id="abc")
        assert identity == Identity(id="abc", is_anonymous=False)
        with pytest.raises(ValidationError):
            identity.id = "other"

    def test_identity_requires_id(self):
        with pytest.raises(ValidationError):
            Identity(id="")


class TestRecordSets:
    """Tests for record set (de)serialization."""

    def test_records_to_document_sorted(self, record):
        """Test that months serialize in chronological order."""
        document = records_to_document({"2024-03": record, "2023-12": record, "2024-01": record})
        assert list(document) == ["2023-12", "2024-01", "2024-03"]

    def test_records_from_document_rejects_bad_key(self):
        with pytest.raises(ValueError):
            records_from_document({"March": {}})

    def test_records_from_document_rejects_non_object_month(self):
        with pytest.raises(ValueError):
            records_from_document({"2024-03": []})

    def test_copy_records_is_deep(self, record):
        """Test that edits to a copy never leak back."""
        original = {"2024-03": record}
        copied = copy_records(original)
        copied["2024-03"].monthly_bills[0].amount = 99
        copied["2024-04"] = MonthlyRecord()
        assert original["2024-03"].monthly_bills[0].amount == 2000
        assert "2024-04" not in original


class TestMonthKeys:
    """Tests for YYYY-MM month key helpers."""

    def test_is_month_key(self):
        assert is_month_key("2024-03")
        assert not is_month_key("2024-13")
        assert not is_month_key("2024-3")
        assert not is_month_key("March 2024")
        assert not is_month_key(202403)

    def test_current_month_key(self):
        assert current_month_key(date(2024, 3, 31)) == "2024-03"

    def test_shift_across_year_boundary(self):
        assert previous_month_key("2024-01") == "2023-12"
        assert next_month_key("2023-12") == "2024-01"
        assert shift_month_key("2024-03", -12) == "2023-03"

    def test_shift_rejects_bad_key(self):
        with pytest.raises(ValueError):
            shift_month_key("2024/03", 1)

    def test_format_month_key(self):
        assert format_month_key("2024-03") == "March 2024"
        assert format_month_key("2024-03", "short") == "Mar 2024"
        assert format_month_key("bad") == ""


class TestTemplates:
    """Tests for starter and demonstration data."""

    def test_initial_month_record_is_all_zero(self):
        """Test the starter template: one labelled zero entry per list."""
        record = initial_month_record()
        assert [source.name for source in record.income] == ["Main Job"]
        assert record.income[0].amount == 0
        assert record.credit_cards[0].balance == 0
        assert record.credit_scores == CreditScores()

    def test_initial_month_record_fresh_ids(self):
        first = initial_month_record()
        second = initial_month_record()
        assert first.income[0].id != second.income[0].id

    def test_demo_record_set_ends_in_current_month(self, today):
        """Test four demo months ending at today."""
        demo = demo_record_set(today)
        assert sorted(demo) == ["2023-12", "2024-01", "2024-02", "2024-03"]
        # Scores improve over the demo period
        assert demo["2024-03"].credit_scores.experian > demo["2023-12"].credit_scores.experian


class TestStatusEnums:
    """Tests for save status and error kinds."""

    def test_save_status_values(self):
        assert {status.value for status in SaveStatus} == {
            "saved", "loading", "unsaved", "saving", "error",
        }

    def test_error_kinds(self):
        assert ErrorKind.LOAD_FAILED.value == "load_failed"
        assert ErrorKind.SAVE_FAILED.value == "save_failed"


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORDS_LOADED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.RECORDS_LOADED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.RECORDS_SAVED,
            description="Saved",
            identity_id="user-1",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "records_saved"
        assert log_dict["identity_id"] == "user-1"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        """Test conversion to Sheets row."""
        event = AuditEventBuilder.save_failed("user-1", "unavailable", "timeout")
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "save_failed"
        assert row[4] == "user-1"

    def test_audit_event_builder_month_updated(self):
        """Test the edit event is user initiated and local-only."""
        event = AuditEventBuilder.month_updated("user-1", "2024-03")
        assert event.event_type == AuditEventType.MONTH_UPDATED
        assert event.month_key == "2024-03"
        assert event.is_user_action is True

    def test_audit_event_builder_load_failed(self):
        """Test load failures carry the error kind."""
        event = AuditEventBuilder.load_failed("user-1", "permission_denied", "403")
        assert event.event_type == AuditEventType.LOAD_FAILED
        assert event.error_kind == "permission_denied"
        assert event.severity in (AuditSeverity.ERROR, AuditSeverity.WARNING)
