"""
GEO Service

Orchestrates the content-gap pipeline for one request:
- Project management (owner-scoped)
- Scraping a project's URLs and storing their structure
- Query enhancement and reference-answer generation
- Coverage analysis and recommendation generation
- Recommendation drafting and answer simulation

The service is built per request from a database session and the
process-wide ExternalAPIClients; it holds no other state.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from geospy.analyzer.answers import AnswerGenerator, AnswerOutcome
from geospy.analyzer.embeddings import EmbeddingClient
from geospy.analyzer.query import enhance_query
from geospy.collector.orchestrator import ScrapeBatchResult, ScrapeOrchestrator, ScrapeTarget
from geospy.database import repository
from geospy.database.models import (
    AIAnswer,
    AnalysisResult,
    Project,
    Recommendation,
    URLRole,
)
from geospy.exceptions import InvalidRequestError, MissingCredentialError
from geospy.integrations.config import ExternalAPIClients
from geospy.reporter.recommendations import generate_recommendations
from geospy.scoring.coverage import AnswerSnapshot, CoverageAnalyzer, PageSnapshot
from geospy.scoring.helpers import CoverageConfig
from geospy.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


SIMULATION_TOP_RECOMMENDATIONS = 5

DRAFT_PROMPT = """You write web content optimized for citation by generative AI engines.

Write a 200-300 word markdown section for a page about "{project_topic}".

Section topic: {topic}
Why it is needed: {context}
Points to cover: {points}

Use one H2 heading, short paragraphs, and a bullet list where it helps.
Return only the markdown."""

SIMULATION_PROMPT = """You are simulating a generative AI search engine.

Question: {query}

The website being evaluated has been improved as follows:
{improvements}

Write the answer you would give to the question if that website were one of
your sources, citing it where the improvements make it the best source."""

_QUOTED = re.compile(r'"([^"]+)"')


def _recommendation_topic(rec: Recommendation) -> str:
    match = _QUOTED.search(rec.title or "")
    return match.group(1) if match else rec.title


class GeoService:
    """
    Usage:
        service = GeoService(db, clients)
        batch = await service.scrape_project(user.id, project_id)
        analysis, recs = await service.analyze_project(user.id, project_id)
    """

    def __init__(
        self,
        db: Session,
        clients: ExternalAPIClients,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.clients = clients
        self.settings = settings or get_settings()

    def _require_gemini(self):
        gemini = self.clients.gemini
        if gemini is None:
            raise MissingCredentialError("Gemini", "GEMINI_API_KEY")
        return gemini

    # =========================================================================
    # PROJECTS
    # =========================================================================

    def create_project(
        self,
        user_id: UUID,
        name: str,
        target_topic: str,
        target_urls: List[str],
        competitor_urls: Optional[List[str]] = None,
        description: Optional[str] = None,
    ) -> Project:
        return repository.create_project(
            self.db, user_id, name, target_topic, target_urls, competitor_urls, description
        )

    def list_projects(self, user_id: UUID) -> List[Project]:
        return repository.list_projects(self.db, user_id)

    def update_project(self, user_id: UUID, project_id: UUID, **fields) -> Project:
        return repository.update_project(self.db, user_id, project_id, **fields)

    def delete_project(self, user_id: UUID, project_id: UUID) -> None:
        repository.delete_project(self.db, user_id, project_id)

    def project_detail(self, user_id: UUID, project_id: UUID) -> Dict[str, Any]:
        """Project, its URLs with their latest scrape, answers and latest analysis."""
        project = repository.get_project(self.db, user_id, project_id)
        urls = repository.list_project_urls(self.db, user_id, project_id)
        latest = {
            tracked.id: scraped
            for tracked, scraped in repository.get_latest_scrapes(
                self.db, user_id, project_id, successful_only=False
            )
        }

        return {
            "project": project,
            "urls": [(url, latest.get(url.id)) for url in urls],
            "answers": repository.list_ai_answers(self.db, user_id, project_id),
            "latest_analysis": repository.get_latest_analysis(self.db, user_id, project_id),
        }

    # =========================================================================
    # SCRAPING
    # =========================================================================

    async def scrape_project(self, user_id: UUID, project_id: UUID) -> ScrapeBatchResult:
        """
        Scrape every URL of a project and store one row per URL.

        Raises:
            NotFoundError: Project missing or not owned
            MissingCredentialError: Firecrawl not configured
            InvalidRequestError: Project has no URLs
        """
        repository.get_project(self.db, user_id, project_id)
        urls = repository.list_project_urls(self.db, user_id, project_id)

        orchestrator = ScrapeOrchestrator(
            self.clients.firecrawl,
            concurrency=self.settings.SCRAPE_CONCURRENCY,
            timeout=self.settings.SCRAPE_TIMEOUT,
        )
        batch = await orchestrator.run(
            [ScrapeTarget(url=u.url, url_id=u.id, role=u.role) for u in urls]
        )

        repository.store_scrape_outcomes(
            self.db,
            batch.outcomes,
            raw_content_limit=self.settings.RAW_CONTENT_LIMIT,
        )
        return batch

    # =========================================================================
    # ANSWERS
    # =========================================================================

    async def enhance_query(self, user_id: UUID, project_id: UUID, query: str) -> Optional[str]:
        """
        Enhanced question, or None when enhancement degraded.

        Raises:
            InvalidRequestError: Empty query
        """
        repository.get_project(self.db, user_id, project_id)
        if not (query or "").strip():
            raise InvalidRequestError("query is required")

        result = await enhance_query(
            self._require_gemini(), query, timeout=self.settings.ENHANCE_TIMEOUT
        )
        return result.value

    async def generate_answers(
        self,
        user_id: UUID,
        project_id: UUID,
        queries: List[str],
        enhance: bool = False,
    ) -> List[Tuple[AnswerOutcome, Optional[AIAnswer]]]:
        """
        Generate, classify and store one answer per query.

        Queries run concurrently; failed queries are reported, not raised.
        """
        repository.get_project(self.db, user_id, project_id)

        generator = AnswerGenerator(
            self._require_gemini(),
            enhance_timeout=self.settings.ENHANCE_TIMEOUT,
        )
        outcomes = await generator.generate_many(queries, enhance=enhance)

        results = []
        for outcome in outcomes:
            row = None
            if outcome.succeeded:
                answer = outcome.answer
                row = repository.store_ai_answer(
                    self.db,
                    project_id,
                    query=answer.query,
                    raw_answer=answer.text,
                    answer_format=answer.answer_format,
                    key_concepts=answer.concepts.topics,
                    entities=answer.concepts.entities,
                    metadata=answer.metadata,
                )
            results.append((outcome, row))
        return results

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    def _embedder(self) -> Optional[EmbeddingClient]:
        gemini = self.clients.gemini
        if gemini is None:
            return None
        return EmbeddingClient(gemini, max_chars=self.settings.EMBED_MAX_CHARS)

    async def analyze_project(
        self,
        user_id: UUID,
        project_id: UUID,
        ai_answer_id: Optional[UUID] = None,
    ) -> Tuple[AnalysisResult, List[Recommendation]]:
        """
        Run coverage analysis against an answer (latest by default), store it
        and its recommendations.

        Raises:
            NotFoundError: Project or answer missing
            MissingTargetContentError: No successful target scrape
        """
        repository.get_project(self.db, user_id, project_id)
        ai_answer = repository.get_ai_answer(self.db, user_id, project_id, ai_answer_id)

        targets, competitors = [], []
        for tracked, scraped in repository.get_latest_scrapes(self.db, user_id, project_id):
            page = PageSnapshot.from_scraped(tracked, scraped)
            (targets if tracked.role == URLRole.TARGET else competitors).append(page)

        analyzer = CoverageAnalyzer(
            embedder=self._embedder(),
            config=CoverageConfig.from_settings(self.settings),
        )
        report = await analyzer.analyze(AnswerSnapshot.from_model(ai_answer), targets, competitors)

        analysis, recommendations = repository.store_analysis_with_recommendations(
            self.db,
            project_id,
            ai_answer.id,
            generate_recommendations(report),
            **report.to_dict(),
        )
        return analysis, recommendations

    def list_analyses(self, user_id: UUID, project_id: UUID) -> List[AnalysisResult]:
        repository.get_project(self.db, user_id, project_id)
        return repository.list_analyses(self.db, user_id, project_id)

    def list_recommendations(self, user_id: UUID, project_id: UUID) -> Dict[str, Any]:
        repository.get_project(self.db, user_id, project_id)
        return repository.get_grouped_recommendations(self.db, user_id, project_id)

    # =========================================================================
    # DRAFTING & SIMULATION
    # =========================================================================

    async def draft_recommendation(
        self,
        user_id: UUID,
        project_id: UUID,
        recommendation_id: UUID,
    ) -> str:
        """
        Markdown section implementing one recommendation.

        Raises:
            GeminiError: If generation fails
        """
        project = repository.get_project(self.db, user_id, project_id)
        rec = repository.get_recommendation(self.db, user_id, project_id, recommendation_id)
        gemini = self._require_gemini()

        points = ", ".join(item.get("action", "") for item in rec.action_items or [])
        prompt = DRAFT_PROMPT.format(
            project_topic=project.target_topic,
            topic=_recommendation_topic(rec),
            context=rec.description or "",
            points=points or "the essentials of the topic",
        )

        result = await gemini.generate(prompt)
        logger.info(f"Drafted content for recommendation {recommendation_id}")
        return result.text

    async def simulate_answer(self, user_id: UUID, project_id: UUID) -> Dict[str, str]:
        """
        Re-ask the latest answer's query assuming the top recommendations shipped.

        Raises:
            NotFoundError: No AI answer yet
            GeminiError: If generation fails
        """
        repository.get_project(self.db, user_id, project_id)
        ai_answer = repository.get_ai_answer(self.db, user_id, project_id)
        gemini = self._require_gemini()

        top = repository.list_recommendations(self.db, user_id, project_id)[:SIMULATION_TOP_RECOMMENDATIONS]
        improvements = "\n".join(f"- {rec.title}" for rec in top) or "- General content depth improvements"

        result = await gemini.generate(
            SIMULATION_PROMPT.format(query=ai_answer.query, improvements=improvements)
        )
        return {"original": ai_answer.raw_answer, "simulated": result.text}
