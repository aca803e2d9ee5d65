"""
Coverage Scoring

- helpers: tunables, depth score, cosine similarity
- matching: topic -> page matching strategies
- coverage: the coverage analyzer
"""

from .helpers import (
    CoverageConfig,
    calculate_depth_score,
    cosine_similarity,
    similarity_to_percentage,
)
from .matching import (
    TopicMatch,
    PageText,
    ExactHeadingStrategy,
    FuzzyHeadingStrategy,
    BodyKeywordStrategy,
    TopicMatcher,
)
from .coverage import (
    PageSnapshot,
    AnswerSnapshot,
    CoverageReport,
    CoverageAnalyzer,
)

__all__ = [
    "CoverageConfig",
    "calculate_depth_score",
    "cosine_similarity",
    "similarity_to_percentage",
    "TopicMatch",
    "PageText",
    "ExactHeadingStrategy",
    "FuzzyHeadingStrategy",
    "BodyKeywordStrategy",
    "TopicMatcher",
    "PageSnapshot",
    "AnswerSnapshot",
    "CoverageReport",
    "CoverageAnalyzer",
]
