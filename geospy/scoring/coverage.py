"""
Coverage Analyzer

Diffs a project's target pages against its competitor pages and a
reference AI answer.

Pipeline:
1. Topic universe: answer key concepts, then content headings seen on
   competitor pages (navigation chrome filtered, capped)
2. Each topic lands in exactly one bucket: present, weak or missing
3. Content depth score (0-100, saturating)
4. Semantic coverage: cosine similarity of target content and answer
   embeddings (omitted when embedding is unavailable or fails)
5. Competitor coverage metadata and structural patterns

All lists keep the order topics first entered the universe.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from geospy.analyzer.embeddings import EmbeddingClient
from geospy.collector.structure import PageStructure, Section
from geospy.database.models import AnswerFormat, URLRole
from geospy.exceptions import MissingTargetContentError
from geospy.integrations.gemini import GeminiError
from geospy.scoring.helpers import (
    CoverageConfig,
    average,
    calculate_depth_score,
    cosine_similarity,
    similarity_to_percentage,
)
from geospy.scoring.matching import PageText, TopicMatch, TopicMatcher
from geospy.utils.topic_filter import filter_content_topics, normalize_heading

logger = logging.getLogger(__name__)


LIST_LINE = re.compile(r"^[ \t]*[*\-•+][ \t]+\S", re.MULTILINE)
STEP_LINE = re.compile(r"^[ \t]*(?:\d+[.)]|Step \d+)", re.MULTILINE | re.IGNORECASE)
FAQ_MARKERS = ("faq", "faqs", "frequently asked", "common questions")
EXAMPLE_MARKERS = ("example", "for instance", "e.g.")


# =============================================================================
# INPUT SNAPSHOTS
# =============================================================================

@dataclass
class PageSnapshot:
    """Latest successful scrape of one URL."""
    url: str
    role: URLRole
    h1s: List[str] = field(default_factory=list)
    h2s: List[str] = field(default_factory=list)
    h3s: List[str] = field(default_factory=list)
    word_count: int = 0
    sections: List[Section] = field(default_factory=list)
    raw_content: str = ""

    @classmethod
    def from_structure(
        cls,
        url: str,
        role: URLRole,
        structure: PageStructure,
        raw_content: str = "",
    ) -> "PageSnapshot":
        return cls(
            url=url,
            role=role,
            h1s=list(structure.h1s),
            h2s=list(structure.h2s),
            h3s=list(structure.h3s),
            word_count=structure.word_count,
            sections=list(structure.sections),
            raw_content=raw_content,
        )

    @classmethod
    def from_scraped(cls, tracked_url, scraped) -> "PageSnapshot":
        """Build from TrackedURL + ScrapedContent rows."""
        sections = (scraped.content_structure or {}).get("sections") or []
        return cls(
            url=tracked_url.url,
            role=tracked_url.role,
            h1s=list(scraped.h1_tags or []),
            h2s=list(scraped.h2_tags or []),
            h3s=list(scraped.h3_tags or []),
            word_count=scraped.word_count or 0,
            sections=[Section.from_dict(s) for s in sections],
            raw_content=scraped.raw_content or "",
        )

    @property
    def heading_count(self) -> int:
        return len(self.h2s) + len(self.h3s)

    def page_text(self) -> PageText:
        if self.raw_content:
            return PageText.from_markdown(self.raw_content)
        return PageText.from_sections(self.h1s, self.sections)

    def embedding_text(self) -> str:
        if self.raw_content:
            return self.raw_content
        return "\n".join(self.h1s + self.h2s + self.h3s)


@dataclass
class AnswerSnapshot:
    """The parts of an AIAnswer the analysis reads."""
    text: str
    answer_format: AnswerFormat
    key_concepts: List[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, ai_answer) -> "AnswerSnapshot":
        return cls(
            text=ai_answer.raw_answer or "",
            answer_format=ai_answer.answer_format,
            key_concepts=list(ai_answer.key_concepts or []),
        )


# =============================================================================
# OUTPUT
# =============================================================================

@dataclass
class CoverageReport:
    """Everything persisted on an AnalysisResult, plus per-topic match detail."""
    topics_present: List[str]
    topics_missing: List[str]
    topics_weak: List[str]
    structural_patterns: Dict[str, Any]
    content_depth_score: int
    competitor_coverage: Dict[str, Any]
    matches: Dict[str, Optional[TopicMatch]] = field(default_factory=dict)

    @property
    def topic_universe(self) -> List[str]:
        return list(self.matches.keys())

    @property
    def semantic_coverage(self) -> Optional[float]:
        return self.competitor_coverage.get("semantic_coverage")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topics_present": list(self.topics_present),
            "topics_missing": list(self.topics_missing),
            "topics_weak": list(self.topics_weak),
            "structural_patterns": dict(self.structural_patterns),
            "content_depth_score": self.content_depth_score,
            "competitor_coverage": dict(self.competitor_coverage),
        }


# =============================================================================
# ANALYZER
# =============================================================================

class CoverageAnalyzer:
    """
    Computes a CoverageReport from one answer and a project's pages.

    Usage:
        analyzer = CoverageAnalyzer(embedder=EmbeddingClient(clients.gemini))
        report = await analyzer.analyze(answer, targets, competitors)
    """

    def __init__(
        self,
        embedder: Optional[EmbeddingClient] = None,
        config: Optional[CoverageConfig] = None,
        matcher: Optional[TopicMatcher] = None,
    ):
        self.embedder = embedder
        self.config = config or CoverageConfig()
        self.matcher = matcher or TopicMatcher.default(min_overlap=self.config.fuzzy_token_overlap)

    async def analyze(
        self,
        answer: AnswerSnapshot,
        targets: List[PageSnapshot],
        competitors: List[PageSnapshot],
    ) -> CoverageReport:
        """
        Run the full coverage diff.

        Args:
            answer: Reference AI answer
            targets: Successful target scrapes (at least one)
            competitors: Successful competitor scrapes (may be empty)

        Raises:
            MissingTargetContentError: If there is no target content
        """
        if not targets:
            raise MissingTargetContentError(
                "No successful scrape for any target URL; scrape the project first"
            )

        logger.info(
            f"Analyzing with {len(targets)} target pages and "
            f"{len(competitors)} competitor pages..."
        )

        universe = self.build_topic_universe(answer, competitors)
        present, missing, weak, matches = self.classify_topics(universe, targets, competitors)
        depth = self.depth_score(targets, competitors)
        semantic = await self.semantic_coverage(answer, targets)

        report = CoverageReport(
            topics_present=present,
            topics_missing=missing,
            topics_weak=weak,
            structural_patterns=self.structural_patterns(answer, targets, competitors),
            content_depth_score=depth,
            competitor_coverage=self.competitor_coverage(competitors, semantic),
            matches=matches,
        )

        logger.info(
            f"Analysis results: present={len(present)}, missing={len(missing)}, "
            f"weak={len(weak)}, depth={depth}, semantic={semantic}"
        )
        return report

    # -------------------------------------------------------------------------
    # Topic universe & classification
    # -------------------------------------------------------------------------

    def build_topic_universe(
        self,
        answer: AnswerSnapshot,
        competitors: List[PageSnapshot],
    ) -> List[str]:
        """
        Answer concepts first, then capped competitor headings; deduplicated.

        Both sources pass the same content-topic filter, so every topic that
        ends up missing or weak can be turned into a recommendation.
        """
        universe = []
        seen = set()

        def add(topic: str) -> bool:
            topic = topic.strip()
            key = normalize_heading(topic)
            if not key or key in seen:
                return False
            seen.add(key)
            universe.append(topic)
            return True

        for concept in filter_content_topics(answer.key_concepts, source="answer concepts"):
            add(concept)

        added = 0
        for page in competitors:
            for heading in filter_content_topics(page.h2s + page.h3s, source=page.url):
                if added >= self.config.max_competitor_topics:
                    return universe
                if add(heading):
                    added += 1

        return universe

    def classify_topics(
        self,
        universe: List[str],
        targets: List[PageSnapshot],
        competitors: List[PageSnapshot],
    ) -> Tuple[List[str], List[str], List[str], Dict[str, Optional[TopicMatch]]]:
        """
        Partition the universe into present, missing and weak.

        A matched topic is weak when its target depth is below
        `weak_ratio` x the average depth competitors give it (or
        `default_topic_words` when no competitor covers it).
        """
        target_texts = [page.page_text() for page in targets]
        competitor_texts = [page.page_text() for page in competitors]

        present, missing, weak = [], [], []
        matches = {}

        for topic in universe:
            match = self._best_match(topic, target_texts)
            matches[topic] = match

            if match is None:
                missing.append(topic)
                continue

            baseline = self._competitor_baseline(topic, competitor_texts)
            if match.depth_words < self.config.weak_ratio * baseline:
                weak.append(topic)
            else:
                present.append(topic)

        return present, missing, weak, matches

    def _best_match(self, topic: str, pages: List[PageText]) -> Optional[TopicMatch]:
        best = None
        for page in pages:
            match = self.matcher.match(topic, page)
            if match is not None and (best is None or match.depth_words > best.depth_words):
                best = match
        return best

    def _competitor_baseline(self, topic: str, pages: List[PageText]) -> float:
        depths = []
        for page in pages:
            match = self.matcher.match(topic, page)
            if match is not None:
                depths.append(match.depth_words)
        return average(depths) if depths else float(self.config.default_topic_words)

    # -------------------------------------------------------------------------
    # Scores
    # -------------------------------------------------------------------------

    def depth_score(self, targets: List[PageSnapshot], competitors: List[PageSnapshot]) -> int:
        """Target totals against competitor averages (configured baselines without competitors)."""
        target_words = sum(page.word_count for page in targets)
        target_headings = sum(page.heading_count for page in targets)

        if competitors:
            baseline_words = average([page.word_count for page in competitors])
            baseline_headings = average([page.heading_count for page in competitors])
        else:
            baseline_words = self.config.baseline_word_count
            baseline_headings = self.config.baseline_heading_count

        return calculate_depth_score(
            target_words,
            target_headings,
            baseline_words,
            baseline_headings,
            self.config,
        )

    async def semantic_coverage(
        self,
        answer: AnswerSnapshot,
        targets: List[PageSnapshot],
    ) -> Optional[float]:
        """
        Cosine similarity of target content vs. the answer, as a percentage.

        Returns None (figure omitted) without an embedder, without text, or
        when embedding fails.
        """
        if self.embedder is None:
            return None

        target_text = "\n\n".join(t for t in (page.embedding_text() for page in targets) if t)
        if not target_text.strip() or not answer.text.strip():
            return None

        try:
            target_vector, answer_vector = await self.embedder.embed_batch([target_text, answer.text])
            return similarity_to_percentage(cosine_similarity(target_vector, answer_vector))
        except (GeminiError, ValueError) as e:
            logger.warning(f"Semantic coverage omitted: {e}")
            return None

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def competitor_coverage(
        self,
        competitors: List[PageSnapshot],
        semantic: Optional[float],
    ) -> Dict[str, Any]:
        coverage = {
            "total_competitors": len(competitors),
            "avg_word_count": round(average([page.word_count for page in competitors]), 1),
            "avg_heading_count": round(average([page.heading_count for page in competitors]), 1),
        }
        if semantic is not None:
            coverage["semantic_coverage"] = semantic
        return coverage

    def structural_patterns(
        self,
        answer: AnswerSnapshot,
        targets: List[PageSnapshot],
        competitors: List[PageSnapshot],
    ) -> Dict[str, Any]:
        """How the answer is shaped, how competitors are sectioned, what the target already does."""
        text = answer.text or ""
        lower = text.lower()

        section_lengths = [page.word_count / (len(page.h2s) or 1) for page in competitors]
        target_raw = "\n".join(page.raw_content for page in targets)
        target_headings = [
            normalize_heading(h) for page in targets for h in page.h2s + page.h3s
        ]

        return {
            "preferred_format": answer.answer_format.value,
            "uses_definitions": ":" in text,
            "uses_examples": any(marker in lower for marker in EXAMPLE_MARKERS),
            "average_section_length": int(round(average(section_lengths))),
            "competitor_avg_h2s": int(round(average([len(page.h2s) for page in competitors]))),
            "target_uses_lists": bool(LIST_LINE.search(target_raw)),
            "target_uses_steps": bool(STEP_LINE.search(target_raw)),
            "target_has_faq": any(
                marker in heading for heading in target_headings for marker in FAQ_MARKERS
            ),
        }
