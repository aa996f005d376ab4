"""
Advice Boundary

CRITICAL BOUNDARIES:

1. WHAT CROSSES: only a MonthSummary (aggregate numbers and scores).
   Account names, bill names and identifiers NEVER leave the core.

2. WHO ANSWERS: an AdviceProviderInterface implementation (an AI text
   generator living outside this package). It is optional.

3. NO DEPENDENCY ON SUCCESS: if the provider is missing, fails, or
   returns nothing, the rule-based local recommendations are used.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.metrics import (
    MonthSummary,
    calculate_total,
    format_currency,
    summarize_month,
)
from src.models.finance import MonthlyRecord


EMERGENCY_FUND_MONTHS = 6
LIABILITY_PROTECTION_DEBT = 100_000


class RecommendationCategory(str, Enum):
    DEBT_REDUCTION = "Debt Reduction"
    STRATEGIC_MOVE = "Strategic Move"
    INVESTMENT = "Investment"
    PROTECTION = "Life Insurance & Protection"


class Recommendation(BaseModel):
    """One piece of advice."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    category: RecommendationCategory
    action_item: str = Field(alias="actionItem")


class AdviceProviderInterface(ABC):
    """External advice generator."""

    @abstractmethod
    async def recommend(self, summary: MonthSummary) -> list[Recommendation]:
        """
        Produce recommendations from aggregate numbers.

        Args:
            summary: Derived metrics for one month

        Returns:
            Recommendations, most important first
        """
        pass


def local_recommendations(record: MonthlyRecord) -> list[Recommendation]:
    """
    Rule-based recommendations, always available.

    One recommendation per category: debt, borrowing power,
    liquidity, protection.
    """
    summary = summarize_month(record)
    recommendations = []

    # Debt reduction
    if summary.card_utilization > 30 and record.credit_cards:
        target = max(record.credit_cards, key=lambda card: card.balance)
        recommendations.append(Recommendation(
            title="Credit Utilization Alert",
            description=(
                f"Your card utilization is at {summary.card_utilization:.1f}%. High utilization "
                "can drag down your credit score even if you pay on time."
            ),
            category=RecommendationCategory.DEBT_REDUCTION,
            action_item=(
                f'Focus on paying down "{target.name}" to under '
                f"{format_currency(target.limit * 0.3)}."
            ),
        ))
    elif record.loans:
        recommendations.append(Recommendation(
            title="Debt Avalanche Strategy",
            description=(
                "With low card utilization, you are in a prime position to aggressively "
                "target principal balances on your loans."
            ),
            category=RecommendationCategory.DEBT_REDUCTION,
            action_item="Apply an extra 10% to your highest-interest loan this month.",
        ))

    # Borrowing power
    if summary.dti > 43:
        recommendations.append(Recommendation(
            title="DTI Ratio Optimization",
            description=(
                f"Your Debt-to-Income ratio ({summary.dti:.1f}%) is above the 43% threshold "
                "preferred by most lenders for major loans."
            ),
            category=RecommendationCategory.STRATEGIC_MOVE,
            action_item=(
                "Audit your 'Monthly Bills' for subscription fatigue or consider a "
                "debt consolidation loan."
            ),
        ))
    else:
        recommendations.append(Recommendation(
            title="Strong Borrowing Power",
            description=(
                f"Your DTI of {summary.dti:.1f}% indicates high financial stability. "
                "You have significant leverage for better interest rates."
            ),
            category=RecommendationCategory.STRATEGIC_MOVE,
            action_item=(
                "Consider requesting a credit limit increase to further suppress "
                "utilization ratios."
            ),
        ))

    # Liquidity
    emergency_fund_target = calculate_total(record.monthly_bills) * EMERGENCY_FUND_MONTHS
    if summary.total_assets < emergency_fund_target:
        recommendations.append(Recommendation(
            title="Liquidity Buffer",
            description=(
                "Based on your monthly expenses, your ideal emergency fund is "
                f"{format_currency(emergency_fund_target)}."
            ),
            category=RecommendationCategory.INVESTMENT,
            action_item="Direct current surplus cash flow into a high-yield savings account (HYSA).",
        ))
    else:
        recommendations.append(Recommendation(
            title="Wealth Acceleration",
            description=(
                "You have a solid cash buffer. Your capital is ready to work harder "
                "than a standard savings account."
            ),
            category=RecommendationCategory.INVESTMENT,
            action_item="Research tax-advantaged accounts like a Roth IRA or increase 401k contributions.",
        ))

    # Protection
    if summary.total_debt > LIABILITY_PROTECTION_DEBT and summary.net_worth < summary.total_debt:
        recommendations.append(Recommendation(
            title="Liability Protection",
            description=(
                f"Your total liabilities ({format_currency(summary.total_debt)}) exceed your "
                "liquid net worth. This creates risk for your estate."
            ),
            category=RecommendationCategory.PROTECTION,
            action_item=(
                "Evaluate a Term Life policy that covers your total debt footprint "
                "plus 2 years of income."
            ),
        ))
    else:
        recommendations.append(Recommendation(
            title="Financial Security Check",
            description=(
                "Your asset-to-debt ratio is healthy, but identity and asset protection "
                "should remain a priority."
            ),
            category=RecommendationCategory.PROTECTION,
            action_item=(
                "Review your 'Experian' and 'Equifax' reports for any unauthorized "
                "inquiries or accounts."
            ),
        ))

    return recommendations


async def get_recommendations(
    record: MonthlyRecord,
    provider: Optional[AdviceProviderInterface] = None,
) -> tuple[list[Recommendation], bool]:
    """
    Ask the provider for advice, falling back to local rules.

    Returns:
        (recommendations, from_provider)
    """
    if provider is not None:
        try:
            recommendations = await provider.recommend(summarize_month(record))
        except Exception as e:
            # The provider is an external service; its failure is not ours
            structlog.get_logger(__name__).warning("advice_provider_failed", error=str(e))
        else:
            if recommendations:
                return recommendations, True

    return local_recommendations(record), False
