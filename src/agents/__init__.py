"""Advice boundary: external advice provider contract and local fallback rules."""

from src.agents.advice import (
    AdviceProviderInterface,
    Recommendation,
    RecommendationCategory,
    get_recommendations,
    local_recommendations,
)

__all__ = [
    "AdviceProviderInterface",
    "Recommendation",
    "RecommendationCategory",
    "get_recommendations",
    "local_recommendations",
]
