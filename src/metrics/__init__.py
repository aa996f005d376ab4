"""Derived financial metrics."""

from src.metrics.calculators import (
    DTIRating,
    MonthSummary,
    UtilizationRisk,
    calculate_total,
    classify_dti,
    classify_utilization,
    debt_to_income,
    format_currency,
    format_percent,
    monthly_equivalent,
    net_worth,
    normalized_monthly_income,
    record_dti,
    summarize_month,
    total_balance,
    total_debt,
    total_limit,
    utilization,
)
from src.metrics.reports import (
    NetWorthComparison,
    ReportPeriod,
    compare_net_worth,
    net_worth_history,
    share_summary_text,
)

__all__ = [
    "DTIRating",
    "MonthSummary",
    "NetWorthComparison",
    "ReportPeriod",
    "UtilizationRisk",
    "calculate_total",
    "classify_dti",
    "classify_utilization",
    "compare_net_worth",
    "debt_to_income",
    "format_currency",
    "format_percent",
    "monthly_equivalent",
    "net_worth",
    "net_worth_history",
    "normalized_monthly_income",
    "record_dti",
    "share_summary_text",
    "summarize_month",
    "total_balance",
    "total_debt",
    "total_limit",
    "utilization",
]
