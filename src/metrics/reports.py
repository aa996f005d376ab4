"""
Comparison Reports

Month-over-month, quarter-over-quarter and year-over-year net worth
comparisons, plus the plain-text summary used when sharing a month.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from src.metrics.calculators import (
    calculate_total,
    format_currency,
    net_worth,
    normalized_monthly_income,
    total_debt,
)
from src.models.finance import (
    FinancialRecordSet,
    MonthlyRecord,
    format_month_key,
    shift_month_key,
)


class ReportPeriod(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


_PERIOD_MONTHS = {
    ReportPeriod.QUARTERLY: 3,
    ReportPeriod.ANNUAL: 12,
}


class NetWorthComparison(BaseModel):
    """Net worth of one month against an earlier one."""

    period_label: str
    current_month: str
    previous_month: str
    current_net_worth: float
    previous_net_worth: float
    change: float


def compare_net_worth(
    records: FinancialRecordSet,
    period: ReportPeriod = ReportPeriod.MONTHLY,
) -> list[NetWorthComparison]:
    """
    Compare each recorded month with an earlier recorded month.

    MONTHLY compares with the next older recorded month.
    QUARTERLY and ANNUAL compare with the month exactly 3 or 12 months
    earlier, and skip months where that month was not recorded.

    Returns comparisons newest first. Fewer than two months gives [].
    """
    months = sorted(records, reverse=True)
    comparisons = []

    for index, current in enumerate(months[:-1]):
        previous: Optional[str]
        if period == ReportPeriod.MONTHLY:
            previous = months[index + 1]
        else:
            target = shift_month_key(current, -_PERIOD_MONTHS[period])
            previous = target if target in records else None

        if previous is None:
            continue

        current_value = net_worth(records[current])
        previous_value = net_worth(records[previous])
        comparisons.append(
            NetWorthComparison(
                period_label=(
                    f"{format_month_key(previous, 'short')} vs "
                    f"{format_month_key(current, 'short')}"
                ),
                current_month=current,
                previous_month=previous,
                current_net_worth=current_value,
                previous_net_worth=previous_value,
                change=current_value - previous_value,
            )
        )

    return comparisons


def net_worth_history(records: FinancialRecordSet) -> list[tuple[str, float]]:
    """Chronological (month, net worth) pairs, for the trend chart."""
    return [(key, net_worth(records[key])) for key in sorted(records)]


def share_summary_text(month_key: str, record: MonthlyRecord) -> str:
    """Plain-text summary a user can paste into a message."""
    lines = [
        f"My Financial Snapshot for {format_month_key(month_key)}:",
        f"- Net Worth: {format_currency(net_worth(record))}",
        f"- Monthly Income: {format_currency(normalized_monthly_income(record.income))}",
        f"- Total Assets: {format_currency(calculate_total(record.assets))}",
        f"- Total Debt: {format_currency(total_debt(record))}",
    ]
    return "\n".join(lines)
