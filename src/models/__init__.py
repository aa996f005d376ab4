"""
Data Models Package

This package contains all Pydantic models used by CreditWorth.
All data flowing through the system must conform to these schemas.
"""

from src.models.finance import (
    Asset,
    CreditScores,
    FinancialRecordSet,
    Identity,
    IncomeSource,
    LiabilityAccount,
    MonthlyRecord,
    NamedAmount,
    PayFrequency,
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
from src.models.status import ErrorKind, SaveStatus
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Asset",
    "CreditScores",
    "FinancialRecordSet",
    "Identity",
    "IncomeSource",
    "LiabilityAccount",
    "MonthlyRecord",
    "NamedAmount",
    "PayFrequency",
    "copy_records",
    "current_month_key",
    "demo_record_set",
    "format_month_key",
    "initial_month_record",
    "is_month_key",
    "next_month_key",
    "previous_month_key",
    "records_from_document",
    "records_to_document",
    "shift_month_key",
    # Status
    "ErrorKind",
    "SaveStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
