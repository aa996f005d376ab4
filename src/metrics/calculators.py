"""
Metric Calculators

Pure functions from a MonthlyRecord (or one of its lists) to derived numbers.
No state, no I/O, never mutate their input.

Every calculator is TOTAL:
- None is treated as an empty list / empty record
- Empty input returns the identity value (0 for sums, 0% for ratios)
- Division by zero is defined as 0

The risk thresholds below are fixed policy and must not drift.
"""

import math
from enum import Enum
from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from src.models.finance import (
    Asset,
    IncomeSource,
    LiabilityAccount,
    MonthlyRecord,
    NamedAmount,
    PayFrequency,
    coerce_amount,
)


WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12

# Monthly equivalent of one payment at each frequency
FREQUENCY_MULTIPLIERS: dict[PayFrequency, float] = {
    PayFrequency.WEEKLY: WEEKS_PER_YEAR / MONTHS_PER_YEAR,
    PayFrequency.BI_WEEKLY: (WEEKS_PER_YEAR / 2) / MONTHS_PER_YEAR,
    PayFrequency.TWICE_MONTHLY: 2.0,
    PayFrequency.MONTHLY: 1.0,
    PayFrequency.YEARLY: 1 / MONTHS_PER_YEAR,
    # PayFrequency.OTHER contributes nothing
}

UTILIZATION_HIGH_RISK_ABOVE = 70.0
UTILIZATION_MODERATE_ABOVE = 30.0
DTI_STRONG_AT_OR_BELOW = 36.0
DTI_HIGH_RISK_ABOVE = 43.0


class UtilizationRisk(str, Enum):
    HEALTHY = "healthy"
    MODERATE = "moderate"
    HIGH_RISK = "high_risk"


class DTIRating(str, Enum):
    STRONG = "strong"
    NEUTRAL = "neutral"
    HIGH_RISK = "high_risk"


# =============================================================================
# SUMS
# =============================================================================

def calculate_total(items: Optional[Iterable[Union[NamedAmount, Asset]]]) -> float:
    """Sum bill amounts or asset values."""
    total = 0.0
    for item in items or ():
        raw = item.value if isinstance(item, Asset) else item.amount
        total += coerce_amount(raw)
    return total


def total_balance(accounts: Optional[Iterable[LiabilityAccount]]) -> float:
    return sum((coerce_amount(account.balance) for account in accounts or ()), 0.0)


def total_limit(accounts: Optional[Iterable[LiabilityAccount]]) -> float:
    return sum((coerce_amount(account.limit) for account in accounts or ()), 0.0)


def monthly_equivalent(source: IncomeSource) -> float:
    """One income source converted to a monthly amount."""
    multiplier = FREQUENCY_MULTIPLIERS.get(source.frequency, 0.0)
    return coerce_amount(source.amount) * multiplier


def normalized_monthly_income(sources: Optional[Iterable[IncomeSource]]) -> float:
    """
    Total income as a monthly amount.

    weekly x 52/12, bi-weekly x 26/12, twice-monthly x 2,
    monthly x 1, yearly / 12.
    """
    return sum((monthly_equivalent(source) for source in sources or ()), 0.0)


# =============================================================================
# RATIOS
# =============================================================================

def utilization(balance: float, limit: float) -> float:
    """Balance as a percentage of limit. 0 when there is no usable limit."""
    if not limit or not math.isfinite(limit):
        return 0.0
    return balance / limit * 100


def debt_to_income(monthly_bills: float, monthly_income: float) -> float:
    """Monthly bills as a percentage of monthly income. 0 without income."""
    if not monthly_income or not math.isfinite(monthly_income):
        return 0.0
    return monthly_bills / monthly_income * 100


def classify_utilization(percent: float) -> UtilizationRisk:
    if percent > UTILIZATION_HIGH_RISK_ABOVE:
        return UtilizationRisk.HIGH_RISK
    if percent > UTILIZATION_MODERATE_ABOVE:
        return UtilizationRisk.MODERATE
    return UtilizationRisk.HEALTHY


def classify_dti(percent: float) -> DTIRating:
    if percent <= DTI_STRONG_AT_OR_BELOW:
        return DTIRating.STRONG
    if percent > DTI_HIGH_RISK_ABOVE:
        return DTIRating.HIGH_RISK
    return DTIRating.NEUTRAL


# =============================================================================
# RECORD LEVEL
# =============================================================================

def total_debt(record: Optional[MonthlyRecord]) -> float:
    if record is None:
        return 0.0
    return total_balance(record.credit_cards) + total_balance(record.loans)


def net_worth(record: Optional[MonthlyRecord]) -> float:
    """Assets minus credit card and loan balances."""
    if record is None:
        return 0.0
    return calculate_total(record.assets) - total_debt(record)


def record_dti(record: Optional[MonthlyRecord]) -> float:
    if record is None:
        return 0.0
    return debt_to_income(
        calculate_total(record.monthly_bills),
        normalized_monthly_income(record.income),
    )


# =============================================================================
# FORMATTING
# =============================================================================

def format_currency(amount: float) -> str:
    """US dollars, two decimals, thousands separated: -$1,234.50"""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    sign = "-" if value < 0 and round(abs(value), 2) != 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float, digits: int = 1) -> str:
    if not math.isfinite(value):
        value = 0.0
    return f"{value:.{digits}f}%"


# =============================================================================
# SUMMARY
# =============================================================================

class MonthSummary(BaseModel):
    """
    Every aggregate for one month in one object.

    This is the ONLY payload that leaves the core for advice generation:
    numbers and scores, never account names or identifiers.
    """

    monthly_income: float = Field(ge=0)
    monthly_bills: float = Field(ge=0)
    total_assets: float = Field(ge=0)

    card_balance: float = Field(ge=0)
    card_limit: float = Field(ge=0)
    card_utilization: float
    card_risk: UtilizationRisk

    loan_balance: float = Field(ge=0)
    loan_limit: float = Field(ge=0)
    loan_utilization: float

    total_debt: float = Field(ge=0)
    net_worth: float
    dti: float
    dti_rating: DTIRating

    bureau_scores: dict[str, int] = Field(default_factory=dict)


def summarize_month(record: Optional[MonthlyRecord]) -> MonthSummary:
    """Compute every derived metric for a month."""
    record = record or MonthlyRecord()

    income = normalized_monthly_income(record.income)
    bills = calculate_total(record.monthly_bills)
    card_balance = total_balance(record.credit_cards)
    card_limit = total_limit(record.credit_cards)
    loan_balance = total_balance(record.loans)
    loan_limit = total_limit(record.loans)
    card_utilization = utilization(card_balance, card_limit)
    dti = debt_to_income(bills, income)

    return MonthSummary(
        monthly_income=income,
        monthly_bills=bills,
        total_assets=calculate_total(record.assets),
        card_balance=card_balance,
        card_limit=card_limit,
        card_utilization=card_utilization,
        card_risk=classify_utilization(card_utilization),
        loan_balance=loan_balance,
        loan_limit=loan_limit,
        loan_utilization=utilization(loan_balance, loan_limit),
        total_debt=card_balance + loan_balance,
        net_worth=net_worth(record),
        dti=dti,
        dti_rating=classify_dti(dti),
        bureau_scores=record.credit_scores.bureau_scores,
    )
