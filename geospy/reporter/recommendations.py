"""
Recommendation Generator

Turns a coverage analysis into prioritized, concrete action items.

Rules:
- Missing topics: one HIGH missing_content recommendation per topic for the
  first few, the remainder grouped into one
- Weak topics: one MEDIUM missing_content recommendation each
- Structure/format mismatches between the answer and the target page:
  LOW, raised to MEDIUM when the analysis also has missing topics
- Depth below threshold: structural, HIGH alongside missing topics, else MEDIUM

Deterministic: the same analysis always yields the same list. An analysis
with no gaps and no mismatches yields no recommendations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from geospy.database.models import (
    PRIORITY_ORDER,
    RecommendationCategory,
    RecommendationPriority,
)

logger = logging.getLogger(__name__)


MAX_INDIVIDUAL_MISSING = 3
DEPTH_SCORE_THRESHOLD = 60

FRAMING = (
    "Generative engines quote pages they can parse into self-contained answers."
)


@dataclass
class ActionItem:
    step: int
    action: str
    format: str

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "action": self.action, "format": self.format}


@dataclass
class RecommendationDraft:
    """A recommendation before it is stored."""
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    action_items: List[ActionItem] = field(default_factory=list)
    expected_impact: str = ""
    topics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "action_items": [item.to_dict() for item in self.action_items],
            "expected_impact": self.expected_impact,
        }


def _steps(*items) -> List[ActionItem]:
    """Number (action, format) pairs from 1."""
    return [ActionItem(step=i, action=action, format=fmt) for i, (action, fmt) in enumerate(items, 1)]


# =============================================================================
# TOPIC GAPS
# =============================================================================

def _missing_topic(topic: str) -> RecommendationDraft:
    return RecommendationDraft(
        priority=RecommendationPriority.HIGH,
        category=RecommendationCategory.MISSING_CONTENT,
        title=f'Add section on "{topic}"',
        description=(
            f'{FRAMING} AI answers on this subject cover "{topic}", '
            f"but your page does not. Add a dedicated section for it."
        ),
        action_items=_steps(
            (f'Add an H2 heading: "{topic}"', "heading"),
            (f"Write 200-300 words explaining {topic}", "paragraph"),
        ),
        expected_impact=f"High. Makes your page eligible for AI answers that mention {topic}.",
        topics=[topic],
    )


def _missing_group(topics: List[str]) -> RecommendationDraft:
    listed = ", ".join(f'"{t}"' for t in topics)
    return RecommendationDraft(
        priority=RecommendationPriority.HIGH,
        category=RecommendationCategory.MISSING_CONTENT,
        title=f"Cover {len(topics)} more missing topics",
        description=f"{FRAMING} Competitors or AI answers also cover {listed}.",
        action_items=_steps(
            *[(f'Add a section or H3 covering "{t}"', "heading") for t in topics]
        ),
        expected_impact="High. Closes the remaining topic gaps against competitors.",
        topics=list(topics),
    )


def _weak_topic(topic: str) -> RecommendationDraft:
    return RecommendationDraft(
        priority=RecommendationPriority.MEDIUM,
        category=RecommendationCategory.MISSING_CONTENT,
        title=f'Expand coverage of "{topic}"',
        description=(
            f'{FRAMING} Your page mentions "{topic}" but with much less depth '
            f"than competitors give it."
        ),
        action_items=_steps(
            (f'Expand the section on "{topic}" to at least 200 words', "content"),
            ("Add specific details, data points or examples", "content"),
        ),
        expected_impact="Medium. Deeper coverage makes your page more quotable.",
        topics=[topic],
    )


# =============================================================================
# STRUCTURE & FORMAT
# =============================================================================

def _format_mismatches(patterns: Dict[str, Any], priority: RecommendationPriority) -> List[RecommendationDraft]:
    drafts = []
    preferred = patterns.get("preferred_format")

    if preferred == "bullet_list" and not patterns.get("target_uses_lists", False):
        drafts.append(RecommendationDraft(
            priority=priority,
            category=RecommendationCategory.STRUCTURAL,
            title="Convert key sections to bullet lists",
            description=f"{FRAMING} AI answers on this topic are bullet lists; your page has none.",
            action_items=_steps(
                ("Find sections with dense paragraphs (over 150 words)", "analysis"),
                ("Break each into 3-5 concise bullet points", "bullet_list"),
            ),
            expected_impact="Easier extraction of individual points into AI answers.",
        ))

    if preferred == "step_by_step" and not patterns.get("target_uses_steps", False):
        drafts.append(RecommendationDraft(
            priority=priority,
            category=RecommendationCategory.FORMAT,
            title="Add clear step-by-step content",
            description=f"{FRAMING} AI answers on this topic are numbered steps; your page has none.",
            action_items=_steps(
                ("Break the process into 4-8 discrete steps", "analysis"),
                ('Add an H2 "How to ..." with one numbered step per action', "steps"),
            ),
            expected_impact="Better inclusion in how-to and procedural answers.",
        ))

    if patterns.get("uses_definitions"):
        drafts.append(RecommendationDraft(
            priority=priority,
            category=RecommendationCategory.FORMAT,
            title="Add a glossary or definition block",
            description=f"{FRAMING} AI answers on this topic define their terms.",
            action_items=_steps(
                ("Pick 5-8 key terms the answer and your audience use", "analysis"),
                ('Add an H2 "Key terms" with one "term: definition" per line', "definitions"),
            ),
            expected_impact="Better inclusion when AI answers open with a definition.",
        ))

    if patterns.get("target_has_faq") is False:
        drafts.append(RecommendationDraft(
            priority=priority,
            category=RecommendationCategory.FORMAT,
            title="Add an FAQ section",
            description=f"{FRAMING} Question-answer pairs are easy for AI engines to lift verbatim.",
            action_items=_steps(
                ("List 3-5 questions your audience asks about this topic", "analysis"),
                ('Add an H2 "Frequently Asked Questions" with a 2-4 sentence answer each', "faq"),
            ),
            expected_impact="Higher chance of use in answer-style AI responses.",
        ))

    return drafts


def _depth(score: int, avg_h2s: int, priority: RecommendationPriority) -> RecommendationDraft:
    return RecommendationDraft(
        priority=priority,
        category=RecommendationCategory.STRUCTURAL,
        title="Increase content depth and coverage",
        description=f"{FRAMING} Your content depth score is {score}/100; competitors cover more ground.",
        action_items=_steps(
            (f"Add {max(2, (avg_h2s or 5) - 3)} more main sections (H2 headings)", "heading"),
            ("Expand each section to at least 200 words", "content"),
        ),
        expected_impact="Brings depth in line with the best competitor pages.",
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def generate_recommendations(analysis) -> List[RecommendationDraft]:
    """
    Derive recommendations from an analysis.

    Args:
        analysis: Anything with topics_missing, topics_weak,
            structural_patterns and content_depth_score
            (AnalysisResult row or CoverageReport)

    Returns:
        Drafts sorted high -> medium -> low (stable within a priority)
    """
    missing = [t for t in (analysis.topics_missing or []) if t and t.strip()]
    weak = [t for t in (analysis.topics_weak or []) if t and t.strip()]
    patterns = analysis.structural_patterns or {}

    drafts = [_missing_topic(t) for t in missing[:MAX_INDIVIDUAL_MISSING]]
    if len(missing) > MAX_INDIVIDUAL_MISSING:
        drafts.append(_missing_group(missing[MAX_INDIVIDUAL_MISSING:]))

    drafts.extend(_weak_topic(t) for t in weak)

    mismatch_priority = RecommendationPriority.MEDIUM if missing else RecommendationPriority.LOW
    drafts.extend(_format_mismatches(patterns, mismatch_priority))

    score = analysis.content_depth_score
    if score is not None and score < DEPTH_SCORE_THRESHOLD:
        depth_priority = RecommendationPriority.HIGH if missing else RecommendationPriority.MEDIUM
        drafts.append(_depth(score, patterns.get("competitor_avg_h2s") or 0, depth_priority))

    drafts.sort(key=lambda d: PRIORITY_ORDER[d.priority])

    logger.info(f"Generated {len(drafts)} recommendations")
    return drafts

