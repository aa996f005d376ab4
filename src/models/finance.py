"""
Core Data Models for CreditWorth

These models define the schema of one user's financial history:
a mapping of calendar months (YYYY-MM) to a MonthlyRecord.

DESIGN DECISION: Unlike strict validation of user-confirmed documents,
financial records are TOLERANT at the point of entry.
- Missing lists default to empty
- Malformed, negative or non-finite numbers become 0
- Missing or duplicated item IDs are regenerated

Older exports and hand-authored files must keep loading. Numbers that
cannot be trusted are zeroed rather than rejected so that every derived
metric stays well defined.
"""

import math
import re
from datetime import date
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def generate_id() -> str:
    """Create a new line item identifier. Never reused."""
    return uuid4().hex


def coerce_amount(value: Any) -> float:
    """
    Coerce user input to a non-negative finite number.

    Anything that is not a usable number becomes 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_score(value: Any) -> int:
    """Coerce a credit score reading. Accepts the legacy {"score8": n} shape."""
    if isinstance(value, dict):
        value = value.get("score8", 0)
    return int(round(coerce_amount(value)))


def _coerce_name(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


Amount = Annotated[float, BeforeValidator(coerce_amount)]
Score = Annotated[int, BeforeValidator(coerce_score)]
Name = Annotated[str, BeforeValidator(_coerce_name)]


# =============================================================================
# ENUMS
# =============================================================================

class PayFrequency(str, Enum):
    """How often an income source pays out."""
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    TWICE_MONTHLY = "twice-monthly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    # Anything unrecognised; kept so the source survives but adds nothing
    # to monthly income
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> Optional["PayFrequency"]:
        # Older exports spell it "twice-a-month"
        if value == "twice-a-month":
            return cls.TWICE_MONTHLY
        return cls.OTHER


# =============================================================================
# LINE ITEMS
# =============================================================================

class LineItem(BaseModel):
    """
    Base for every entry in a MonthlyRecord list.

    The ID identifies the item within its list only.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        default_factory=generate_id,
        description="Identifier, unique within its list"
    )
    name: Name = Field(
        default="",
        description="User supplied label"
    )

    @field_validator('id', mode='before')
    @classmethod
    def ensure_id(cls, v: Any) -> str:
        """Generate an ID for items that arrive without one."""
        if v is None or v == "":
            return generate_id()
        return str(v)


class IncomeSource(LineItem):
    """A job or other recurring income."""

    amount: Amount = Field(
        default=0.0,
        description="Amount paid per period"
    )
    frequency: PayFrequency = Field(
        default=PayFrequency.MONTHLY,
        description="Pay period"
    )

    @field_validator('frequency', mode='before')
    @classmethod
    def default_frequency(cls, v: Any) -> PayFrequency:
        """Missing means monthly; an unrecognised period is OTHER, never an error."""
        if isinstance(v, PayFrequency):
            return v
        if v is None or v == "":
            return PayFrequency.MONTHLY
        if not isinstance(v, str):
            return PayFrequency.OTHER
        return PayFrequency(v.strip().lower())


class LiabilityAccount(LineItem):
    """A credit card or a loan."""

    balance: Amount = Field(
        default=0.0,
        description="Outstanding balance"
    )
    limit: Amount = Field(
        default=0.0,
        description="Credit limit or original loan amount"
    )


class Asset(LineItem):
    """Something owned: savings, investments, home equity."""

    value: Amount = Field(
        default=0.0,
        description="Current value"
    )


class NamedAmount(LineItem):
    """A recurring monthly bill."""

    amount: Amount = Field(
        default=0.0,
        description="Monthly amount"
    )


class CreditScores(BaseModel):
    """
    Credit score readings for one month.

    Three bureau scores plus four auxiliary readings. 0 means "not set".
    """
    model_config = ConfigDict(populate_by_name=True)

    experian: Score = 0
    equifax: Score = 0
    transunion: Score = 0
    lending_tree: Score = Field(default=0, alias="lendingTree")
    credit_karma: Score = Field(default=0, alias="creditKarma")
    credit_sesame: Score = Field(default=0, alias="creditSesame")
    mr_cooper: Score = Field(default=0, alias="mrCooper")

    @property
    def bureau_scores(self) -> dict[str, int]:
        """The three bureau scores by bureau name."""
        return {
            "experian": self.experian,
            "equifax": self.equifax,
            "transunion": self.transunion,
        }


# =============================================================================
# MONTHLY RECORD
# =============================================================================

_LIST_FIELDS = ("income", "credit_cards", "loans", "assets", "monthly_bills")


class MonthlyRecord(BaseModel):
    """
    Everything recorded for one calendar month.

    Replaced wholesale on every save; never patched field by field.
    """
    model_config = ConfigDict(populate_by_name=True)

    income: list[IncomeSource] = Field(default_factory=list)
    credit_scores: CreditScores = Field(
        default_factory=CreditScores,
        alias="creditScores"
    )
    credit_cards: list[LiabilityAccount] = Field(
        default_factory=list,
        alias="creditCards"
    )
    loans: list[LiabilityAccount] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    monthly_bills: list[NamedAmount] = Field(
        default_factory=list,
        alias="monthlyBills"
    )

    @field_validator('income', mode='before')
    @classmethod
    def accept_legacy_income(cls, v: Any) -> Any:
        """Older records nest income sources under {"jobs": [...]}."""
        if isinstance(v, dict):
            v = v.get("jobs")
        return _only_items(v)

    @field_validator('credit_cards', 'loans', 'assets', 'monthly_bills', mode='before')
    @classmethod
    def default_empty_list(cls, v: Any) -> Any:
        return _only_items(v)

    @field_validator('credit_scores', mode='before')
    @classmethod
    def default_scores(cls, v: Any) -> Any:
        if not isinstance(v, (dict, CreditScores)):
            return {}
        return v

    @model_validator(mode='after')
    def ensure_unique_ids(self) -> 'MonthlyRecord':
        """A duplicated ID within a list is replaced by a fresh one."""
        for field_name in _LIST_FIELDS:
            seen: set[str] = set()
            for item in getattr(self, field_name):
                if item.id in seen:
                    item.id = generate_id()
                seen.add(item.id)
        return self

    def to_document(self) -> dict:
        """Serialize to the JSON-compatible wire shape (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


def _only_items(value: Any) -> list:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


FinancialRecordSet = dict[str, MonthlyRecord]


def records_to_document(records: FinancialRecordSet) -> dict[str, dict]:
    """Serialize a record set, months in chronological order."""
    return {key: records[key].to_document() for key in sorted(records)}


def records_from_document(document: dict[str, Any]) -> FinancialRecordSet:
    """
    Parse a record set from its wire shape.

    Raises:
        ValueError: If a key is not a month key or a value is not an object
    """
    records: FinancialRecordSet = {}
    for key, value in document.items():
        if not is_month_key(key):
            raise ValueError(f"Not a month key: {key!r}")
        if not isinstance(value, dict):
            raise ValueError(f"Record for {key} is not an object")
        records[key] = MonthlyRecord.model_validate(value)
    return records


def copy_records(records: FinancialRecordSet) -> FinancialRecordSet:
    """Deep copy, so later edits never leak into the copy."""
    return {key: record.model_copy(deep=True) for key, record in records.items()}


# =============================================================================
# IDENTITY
# =============================================================================

class Identity(BaseModel):
    """
    Who owns the record set.

    Supplied by the identity provider on login. Anonymous identities
    still get a remote document; they are seeded with demonstration data.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    is_anonymous: bool = False


# =============================================================================
# MONTH KEYS
# =============================================================================

def is_month_key(value: Any) -> bool:
    return isinstance(value, str) and MONTH_KEY_PATTERN.match(value) is not None


def month_key_for(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    return month_key_for(today or date.today())


def shift_month_key(month_key: str, months: int) -> str:
    """Move a month key forward (or backward, for negative months)."""
    if not is_month_key(month_key):
        raise ValueError(f"Not a month key: {month_key!r}")
    year, month = (int(part) for part in month_key.split("-"))
    total = year * 12 + (month - 1) + months
    return f"{total // 12:04d}-{total % 12 + 1:02d}"


def previous_month_key(month_key: str) -> str:
    return shift_month_key(month_key, -1)


def next_month_key(month_key: str) -> str:
    return shift_month_key(month_key, 1)


def format_month_key(month_key: str, style: str = "long") -> str:
    """
    Human label for a month key.

    "long" -> "March 2024", "short" -> "Mar 2024".
    """
    if not is_month_key(month_key):
        return ""
    year, month = (int(part) for part in month_key.split("-"))
    pattern = "%b %Y" if style == "short" else "%B %Y"
    return date(year, month, 1).strftime(pattern)


# =============================================================================
# TEMPLATES
# =============================================================================

def initial_month_record() -> MonthlyRecord:
    """The all-zero starter record shown for a month with no data."""
    return MonthlyRecord(
        income=[IncomeSource(name="Main Job", frequency=PayFrequency.MONTHLY)],
        credit_cards=[LiabilityAccount(name="Primary Card")],
        loans=[LiabilityAccount(name="Auto Loan")],
        assets=[Asset(name="Savings Account")],
        monthly_bills=[NamedAmount(name="Rent/Mortgage")],
    )


def _demo_month(offset: int) -> MonthlyRecord:
    # offset 0 is the oldest month, 3 the current one
    return MonthlyRecord(
        income=[
            IncomeSource(name="Senior Engineer @ Tech Co", amount=7500 + offset * 250),
            IncomeSource(name="Freelance Design", amount=800 + offset * 100),
        ],
        credit_scores=CreditScores(
            experian=685 + offset * 15,
            equifax=680 + offset * 12,
            transunion=690 + offset * 14,
            lending_tree=695 + offset * 10,
            credit_karma=690 + offset * 10,
            credit_sesame=685 + offset * 10,
            mr_cooper=710 + offset * 10,
        ),
        credit_cards=[
            LiabilityAccount(
                name="Chase Sapphire Pref",
                balance=max(0, 4200 - offset * 1100),
                limit=15000,
            ),
            LiabilityAccount(
                name="Amex Platinum",
                balance=max(0, 1500 - offset * 400),
                limit=30000,
            ),
            LiabilityAccount(name="Apple Card", balance=200, limit=8000),
        ],
        loans=[
            LiabilityAccount(
                name="Mortgage (Fixed 3.5%)",
                balance=345000 - offset * 800,
                limit=420000,
            ),
            LiabilityAccount(
                name="BMW i4 Lease/Loan",
                balance=42000 - offset * 650,
                limit=65000,
            ),
        ],
        assets=[
            Asset(name="Marcus Savings", value=12000 + offset * 2000),
            Asset(name="Fidelity 401k", value=85000 + offset * 3200),
            Asset(name="Coinbase (BTC)", value=15000 + offset * 1100),
            Asset(name="Home Equity", value=125000 + offset * 500),
        ],
        monthly_bills=[
            NamedAmount(name="Mortgage Payment", amount=2450),
            NamedAmount(name="Utilities", amount=310),
            NamedAmount(name="Car Insurance", amount=210),
            NamedAmount(name="Subscriptions", amount=125),
        ],
    )


def demo_record_set(today: Optional[date] = None) -> FinancialRecordSet:
    """
    Four months of demonstration data ending in the current month.

    Given to new anonymous identities so the dashboard has something to show.
    """
    current = current_month_key(today)
    return {
        shift_month_key(current, offset - 3): _demo_month(offset)
        for offset in range(4)
    }
