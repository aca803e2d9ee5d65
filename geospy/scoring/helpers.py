"""
Scoring Helper Functions and Constants

Coverage tunables, depth-score math and vector similarity used by the
coverage analyzer.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np


# ============================================================================
# COVERAGE TUNABLES
# ============================================================================

@dataclass(frozen=True)
class CoverageConfig:
    """
    Heuristic thresholds for topic classification and depth scoring.

    Defaults:
        weak_ratio: 0.5 - matched topic is weak below half its baseline depth
        default_topic_words: 80 - baseline depth when no competitor covers a topic
        baseline_word_count: 1000 - depth baseline with no competitor pages
        baseline_heading_count: 5 - heading baseline with no competitor pages
        depth_weight_words / depth_weight_headings: 50 / 50 - each half saturates
        fuzzy_token_overlap: 0.6 - token overlap needed for a fuzzy heading match
        max_competitor_topics: 40 - competitor headings added to the topic universe
    """
    weak_ratio: float = 0.5
    default_topic_words: int = 80
    baseline_word_count: int = 1000
    baseline_heading_count: int = 5
    depth_weight_words: float = 50.0
    depth_weight_headings: float = 50.0
    fuzzy_token_overlap: float = 0.6
    max_competitor_topics: int = 40

    @classmethod
    def from_settings(cls, settings) -> "CoverageConfig":
        """Build from application Settings."""
        return cls(
            weak_ratio=settings.WEAK_RATIO,
            default_topic_words=settings.DEFAULT_TOPIC_WORDS,
            baseline_word_count=settings.BASELINE_WORD_COUNT,
            baseline_heading_count=settings.BASELINE_HEADING_COUNT,
            fuzzy_token_overlap=settings.FUZZY_TOKEN_OVERLAP,
            max_competitor_topics=settings.MAX_COMPETITOR_TOPICS,
        )


# ============================================================================
# DEPTH SCORE
# ============================================================================

def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def saturating_ratio(value: float, baseline: float) -> float:
    """
    value / baseline capped at 1.0.

    A zero or negative baseline counts as fully met when value is positive,
    so an empty competitor set never divides by zero.
    """
    if baseline <= 0:
        return 1.0 if value > 0 else 0.0
    return min(max(value, 0) / baseline, 1.0)


def calculate_depth_score(
    target_words: int,
    target_headings: int,
    baseline_words: float,
    baseline_headings: float,
    config: Optional[CoverageConfig] = None,
) -> int:
    """
    Content depth 0-100.

    Words and headings each contribute up to their weight (50 each by default),
    scaled by the target/baseline ratio capped at 1.0. A page 50x longer than
    competitors therefore scores the same as one exactly as long.

    Args:
        target_words: Total words across target pages
        target_headings: H2 + H3 count across target pages
        baseline_words: Average competitor word count (or configured baseline)
        baseline_headings: Average competitor heading count (or configured baseline)

    Returns:
        Integer score within [0, 100]
    """
    config = config or CoverageConfig()

    score = (
        saturating_ratio(target_words, baseline_words) * config.depth_weight_words
        + saturating_ratio(target_headings, baseline_headings) * config.depth_weight_headings
    )
    return int(round(clamp(score)))


# ============================================================================
# VECTOR SIMILARITY
# ============================================================================

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 for a zero vector.

    Raises:
        ValueError: If lengths differ or a vector is empty
    """
    if len(a) == 0 or len(b) == 0:
        raise ValueError("Cannot compare empty vectors")
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def similarity_to_percentage(similarity: float) -> float:
    """Cosine similarity -> 0-100 percentage (negative similarity floors at 0)."""
    return round(clamp(similarity * 100), 1)


# ============================================================================
# AGGREGATION HELPERS
# ============================================================================

def average(values: List[float]) -> float:
    """Arithmetic mean, 0.0 for an empty list."""
    return sum(values) / len(values) if values else 0.0
