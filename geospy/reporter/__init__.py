"""Recommendation generation from coverage analyses."""

from .recommendations import (
    ActionItem,
    RecommendationDraft,
    generate_recommendations,
)

__all__ = [
    "ActionItem",
    "RecommendationDraft",
    "generate_recommendations",
]
