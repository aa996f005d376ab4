"""Shared fixtures for the CreditWorth test suite."""

from datetime import date

import pytest

from src.audit import AuditLogger
from src.models.audit import AuditEvent, AuditEventType
from src.models.finance import (
    Asset,
    CreditScores,
    Identity,
    IncomeSource,
    LiabilityAccount,
    MonthlyRecord,
    NamedAmount,
    PayFrequency,
)
from src.services.storage import AuditStorageInterface, InMemoryRecordStore


@pytest.fixture
def today() -> date:
    return date(2024, 3, 15)


@pytest.fixture
def identity() -> Identity:
    return Identity(id="user-123")


@pytest.fixture
def anonymous_identity() -> Identity:
    return Identity(id="anon-456", is_anonymous=True)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps appended audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def event_types(self) -> list[AuditEventType]:
        return [event.event_type for event in self.events]

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]


@pytest.fixture
def audit_storage() -> RecordingAuditStorage:
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


def make_record(
    income: float = 5000,
    bills: float = 2000,
    card_balance: float = 1500,
    card_limit: float = 10000,
    loan_balance: float = 0,
    assets: float = 10000,
    name: str = "Salary",
) -> MonthlyRecord:
    """A small, fully populated month with easy-to-check totals."""
    return MonthlyRecord(
        income=[IncomeSource(name=name, amount=income, frequency=PayFrequency.MONTHLY)],
        credit_scores=CreditScores(experian=720, equifax=710, transunion=715),
        credit_cards=[LiabilityAccount(name="Visa", balance=card_balance, limit=card_limit)],
        loans=[LiabilityAccount(name="Car", balance=loan_balance, limit=20000)] if loan_balance else [],
        assets=[Asset(name="Savings", value=assets)],
        monthly_bills=[NamedAmount(name="Rent", amount=bills)],
    )


@pytest.fixture
def record() -> MonthlyRecord:
    return make_record()


@pytest.fixture
def record_factory():
    return make_record
