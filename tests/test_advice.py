"""Tests for the advice boundary and local recommendation rules."""

import pytest

from src.agents import (
    AdviceProviderInterface,
    Recommendation,
    RecommendationCategory,
    get_recommendations,
    local_recommendations,
)
from src.metrics import MonthSummary
from src.models.finance import Asset, LiabilityAccount, MonthlyRecord


class StaticProvider(AdviceProviderInterface):
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.received = []

    async def recommend(self, summary):
        self.received.append(summary)
        if self.error:
            raise self.error
        return self.result


class TestLocalRecommendations:
    """Tests for the rule-based fallback."""

    def test_healthy_month_without_loans_skips_debt_advice(self, record):
        categories = [r.category for r in local_recommendations(record)]
        assert categories == [
            RecommendationCategory.STRATEGIC_MOVE,
            RecommendationCategory.INVESTMENT,
            RecommendationCategory.PROTECTION,
        ]

    def test_high_utilization_targets_largest_balance(self):
        record = MonthlyRecord(credit_cards=[
            LiabilityAccount(name="Small", balance=100, limit=1000),
            LiabilityAccount(name="Big", balance=4000, limit=5000),
        ])
        first = local_recommendations(record)[0]
        assert first.title == "Credit Utilization Alert"
        assert '"Big"' in first.action_item
        assert "$1,500.00" in first.action_item

    def test_low_utilization_with_loans(self, record_factory):
        record = record_factory(card_balance=100, loan_balance=5000)
        assert local_recommendations(record)[0].title == "Debt Avalanche Strategy"

    def test_high_dti(self, record_factory):
        record = record_factory(income=1000, bills=900)
        titles = [r.title for r in local_recommendations(record)]
        assert "DTI Ratio Optimization" in titles

    def test_emergency_fund(self, record_factory):
        short = record_factory(bills=2000, assets=1000)
        funded = record_factory(bills=2000, assets=50000)
        assert "Liquidity Buffer" in [r.title for r in local_recommendations(short)]
        assert "Wealth Acceleration" in [r.title for r in local_recommendations(funded)]

    def test_liability_protection(self):
        record = MonthlyRecord(
            loans=[LiabilityAccount(name="Mortgage", balance=300000, limit=400000)],
            assets=[Asset(name="Savings", value=20000)],
        )
        assert local_recommendations(record)[-1].title == "Liability Protection"


class TestGetRecommendations:
    """Tests for provider use and fallback."""

    @pytest.mark.asyncio
    async def test_without_provider(self, record):
        recommendations, from_provider = await get_recommendations(record)
        assert from_provider is False
        assert recommendations == local_recommendations(record)

    @pytest.mark.asyncio
    async def test_provider_only_sees_summary(self, record):
        advice = Recommendation(
            title="Custom",
            description="From the provider",
            category=RecommendationCategory.INVESTMENT,
            actionItem="Do something",
        )
        provider = StaticProvider(result=[advice])

        recommendations, from_provider = await get_recommendations(record, provider)

        assert from_provider is True
        assert recommendations == [advice]
        assert isinstance(provider.received[0], MonthSummary)

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self, record):
        provider = StaticProvider(error=RuntimeError("quota exceeded"))
        recommendations, from_provider = await get_recommendations(record, provider)
        assert from_provider is False
        assert recommendations

    @pytest.mark.asyncio
    async def test_empty_provider_answer_falls_back(self, record):
        recommendations, from_provider = await get_recommendations(record, StaticProvider())
        assert from_provider is False
        assert len(recommendations) >= 3
