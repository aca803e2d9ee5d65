"""
GEO Service Tests

End-to-end pipeline through GeoService with mocked Gemini/Firecrawl and an
in-memory database.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import OperationalError

from geospy.database.models import (
    AIAnswer,
    AnalysisResult,
    AnswerFormat,
    Recommendation,
    ScrapedContent,
    ScrapeStatus,
)
from geospy.exceptions import (
    InvalidRequestError,
    MissingCredentialError,
    MissingTargetContentError,
    NotFoundError,
)
from geospy.integrations.firecrawl import FirecrawlError
from geospy.integrations.gemini import GenerationResult
from geospy.services.geo import GeoService
from geospy.utils.config import Settings


ANSWER_TEXT = "Good running shoes need cushioning and a fair warranty: look for at least a year."


async def _routed_generate(prompt, model=None, temperature=None, max_retries=None):
    if "Extract the key topics" in prompt:
        text = '{"topics": ["cushioning", "warranty"], "entities": ["Brooks"]}'
    elif "rewrite search queries" in prompt:
        text = "What are the best running shoes?"
    elif "markdown section" in prompt:
        text = "## Warranty\nMost shoes carry a one year warranty."
    elif "simulating a generative AI search engine" in prompt:
        text = "Simulated answer citing shop.com."
    else:
        text = ANSWER_TEXT
    return GenerationResult(text=text, model="gemini-test")


@pytest.fixture
def service(db_session, mock_clients, mock_gemini):
    mock_gemini.generate = AsyncMock(side_effect=_routed_generate)
    return GeoService(db_session, mock_clients, Settings(SCRAPE_TIMEOUT=5.0))


@pytest.fixture
def project(service, user):
    return service.create_project(
        user.id,
        name="Shoes",
        target_topic="best running shoes",
        target_urls=["https://shop.com/shoes"],
        competitor_urls=["https://rival.com/guide"],
    )


@pytest.fixture
def competitor_fetch(mock_firecrawl, target_markdown, competitor_markdown):
    """Firecrawl returns the competitor page for rival.com."""
    async def fetch(url):
        markdown = competitor_markdown if "rival" in url else target_markdown
        return MagicMock(markdown=markdown)

    mock_firecrawl.fetch_markdown = AsyncMock(side_effect=fetch)
    return mock_firecrawl


class TestScrape:

    @pytest.mark.asyncio
    async def test_scrape_stores_rows(self, service, user, project, db_session, competitor_fetch):
        batch = await service.scrape_project(user.id, project.id)

        assert batch.summary() == {"total": 2, "succeeded": 2, "failed": 0}
        assert db_session.query(ScrapedContent).count() == 2

    @pytest.mark.asyncio
    async def test_partial_failure_still_stored(self, service, user, project, db_session, mock_firecrawl):
        async def fetch(url):
            if "rival" in url:
                raise FirecrawlError("API error: 403")
            return MagicMock(markdown="# Page\n## Section\ntext")

        mock_firecrawl.fetch_markdown = AsyncMock(side_effect=fetch)

        batch = await service.scrape_project(user.id, project.id)

        assert batch.failed == 1
        failed = db_session.query(ScrapedContent).filter_by(status=ScrapeStatus.FAILED).one()
        assert failed.error_message == "API error: 403"

    @pytest.mark.asyncio
    async def test_requires_firecrawl(self, service, user, project, mock_clients):
        mock_clients.firecrawl = None

        with pytest.raises(MissingCredentialError):
            await service.scrape_project(user.id, project.id)

    @pytest.mark.asyncio
    async def test_other_user(self, service, other_user, project):
        with pytest.raises(NotFoundError):
            await service.scrape_project(other_user.id, project.id)


class TestAnswers:

    @pytest.mark.asyncio
    async def test_generate_stores_answers(self, service, user, project, db_session):
        results = await service.generate_answers(user.id, project.id, ["best shoes", "trail shoes"])

        assert len(results) == 2
        assert all(row is not None for _, row in results)
        stored = db_session.query(AIAnswer).all()
        assert len(stored) == 2
        assert stored[0].answer_format == AnswerFormat.DEFINITION
        assert stored[0].key_concepts == ["cushioning", "warranty"]
        assert stored[0].entities == ["Brooks"]
        assert stored[0].answer_metadata["model"] == "gemini-test"

    @pytest.mark.asyncio
    async def test_enhanced_answer_keeps_original_query(self, service, user, project):
        results = await service.generate_answers(user.id, project.id, ["shoes"], enhance=True)
        _, row = results[0]

        assert row.query == "What are the best running shoes?"
        assert row.answer_metadata["original_query"] == "shoes"

    @pytest.mark.asyncio
    async def test_empty_queries(self, service, user, project):
        with pytest.raises(InvalidRequestError):
            await service.generate_answers(user.id, project.id, [])

    @pytest.mark.asyncio
    async def test_requires_gemini(self, service, user, project, mock_clients):
        mock_clients.gemini = None

        with pytest.raises(MissingCredentialError):
            await service.generate_answers(user.id, project.id, ["shoes"])

    @pytest.mark.asyncio
    async def test_enhance_query(self, service, user, project):
        assert await service.enhance_query(user.id, project.id, "shoes") == "What are the best running shoes?"

    @pytest.mark.asyncio
    async def test_enhance_empty_query(self, service, user, project):
        with pytest.raises(InvalidRequestError):
            await service.enhance_query(user.id, project.id, "  ")


class TestAnalysis:

    @pytest.mark.asyncio
    async def test_full_pipeline(self, service, user, project, competitor_fetch):
        await service.scrape_project(user.id, project.id)
        await service.generate_answers(user.id, project.id, ["best shoes"])

        analysis, recommendations = await service.analyze_project(user.id, project.id)

        assert analysis.topics_present == ["cushioning"]
        assert analysis.topics_missing == ["warranty"]
        assert analysis.topics_weak == ["Sizing Guide"]
        assert analysis.competitor_coverage["semantic_coverage"] == 100.0
        assert recommendations[0].title == 'Add section on "warranty"'

        grouped = service.list_recommendations(user.id, project.id)
        assert grouped["total"] == len(recommendations)
        assert len(service.list_analyses(user.id, project.id)) == 1

    @pytest.mark.asyncio
    async def test_analyze_specific_answer(self, service, user, project, competitor_fetch):
        await service.scrape_project(user.id, project.id)
        results = await service.generate_answers(user.id, project.id, ["best shoes"])
        answer = results[0][1]

        analysis, _ = await service.analyze_project(user.id, project.id, answer.id)

        assert analysis.ai_answer_id == answer.id

    @pytest.mark.asyncio
    async def test_analyze_without_scrape(self, service, user, project):
        await service.generate_answers(user.id, project.id, ["best shoes"])

        with pytest.raises(MissingTargetContentError):
            await service.analyze_project(user.id, project.id)

    @pytest.mark.asyncio
    async def test_analyze_without_answer(self, service, user, project, competitor_fetch):
        await service.scrape_project(user.id, project.id)

        with pytest.raises(NotFoundError):
            await service.analyze_project(user.id, project.id)

    @pytest.mark.asyncio
    async def test_analysis_works_without_gemini(self, service, user, project, competitor_fetch, mock_clients):
        await service.scrape_project(user.id, project.id)
        await service.generate_answers(user.id, project.id, ["best shoes"])
        mock_clients.gemini = None

        analysis, _ = await service.analyze_project(user.id, project.id)

        assert "semantic_coverage" not in analysis.competitor_coverage

    @pytest.mark.asyncio
    async def test_failed_recommendation_insert_stores_nothing(
        self, service, user, project, competitor_fetch, db_session
    ):
        await service.scrape_project(user.id, project.id)
        await service.generate_answers(user.id, project.id, ["best shoes"])
        write_error = OperationalError("INSERT INTO recommendations", {}, Exception("disk I/O error"))

        with patch("geospy.database.repository._add_recommendations", side_effect=write_error):
            with pytest.raises(OperationalError):
                await service.analyze_project(user.id, project.id)

        assert db_session.query(AnalysisResult).count() == 0
        assert db_session.query(Recommendation).count() == 0


class TestDraftAndSimulate:

    async def _analyze(self, service, user, project):
        await service.scrape_project(user.id, project.id)
        await service.generate_answers(user.id, project.id, ["best shoes"])
        return await service.analyze_project(user.id, project.id)

    @pytest.mark.asyncio
    async def test_draft(self, service, user, project, competitor_fetch, mock_gemini):
        _, recommendations = await self._analyze(service, user, project)

        draft = await service.draft_recommendation(user.id, project.id, recommendations[0].id)

        assert draft.startswith("## Warranty")
        prompt = mock_gemini.generate.call_args[0][0]
        assert "Section topic: warranty" in prompt
        assert "best running shoes" in prompt

    @pytest.mark.asyncio
    async def test_draft_unknown_recommendation(self, service, user, project, competitor_fetch):
        from uuid import uuid4

        await self._analyze(service, user, project)
        with pytest.raises(NotFoundError):
            await service.draft_recommendation(user.id, project.id, uuid4())

    @pytest.mark.asyncio
    async def test_simulate(self, service, user, project, competitor_fetch, mock_gemini):
        await self._analyze(service, user, project)

        result = await service.simulate_answer(user.id, project.id)

        assert result == {"original": ANSWER_TEXT, "simulated": "Simulated answer citing shop.com."}
        prompt = mock_gemini.generate.call_args[0][0]
        assert 'Add section on "warranty"' in prompt
        assert "best shoes" in prompt

    @pytest.mark.asyncio
    async def test_simulate_without_answer(self, service, user, project):
        with pytest.raises(NotFoundError):
            await service.simulate_answer(user.id, project.id)
