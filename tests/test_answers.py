"""
Answer Generator Tests

Tests the per-query pipeline: enhance -> generate -> classify -> extract.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from geospy.analyzer.answers import AnswerGenerator
from geospy.database.models import AnswerFormat
from geospy.exceptions import InvalidRequestError, MissingCredentialError
from geospy.integrations.gemini import GeminiError, GenerationResult

CONCEPTS_JSON = '{"topics": ["arch support", "sizing"], "entities": ["Brooks"]}'


def _result(text):
    return GenerationResult(text=text, model="gemini-test")


def _routing_gemini(answer="1. Measure\n2. Try on", enhanced="What fits flat feet?", fail_for=None):
    """Gemini mock that answers by prompt type."""
    async def generate(prompt, model=None, temperature=None, max_retries=None):
        if "rewrite search queries" in prompt:
            return _result(enhanced)
        if "Extract the key topics" in prompt:
            return _result(CONCEPTS_JSON)
        if fail_for and fail_for in prompt:
            raise GeminiError("API error: 500", status_code=500)
        return _result(answer)

    client = MagicMock()
    client.generate = AsyncMock(side_effect=generate)
    return client


class TestGenerateOne:

    @pytest.mark.asyncio
    async def test_full_pipeline(self):
        generator = AnswerGenerator(_routing_gemini())

        answer = await generator.generate_one("shoes for flat feet")

        assert answer.query == "shoes for flat feet"
        assert answer.answer_format == AnswerFormat.STEP_BY_STEP
        assert answer.concepts.topics == ["arch support", "sizing"]
        assert answer.concepts.entities == ["Brooks"]
        assert answer.enhanced is False
        assert answer.degraded == []

    @pytest.mark.asyncio
    async def test_enhanced_query_is_sent(self):
        gemini = _routing_gemini()
        generator = AnswerGenerator(gemini)

        answer = await generator.generate_one("flat feet shoes", enhance=True)

        assert answer.query == "What fits flat feet?"
        assert answer.original_query == "flat feet shoes"
        assert answer.enhanced is True
        assert answer.metadata["original_query"] == "flat feet shoes"
        assert answer.metadata["enhanced"] is True

    @pytest.mark.asyncio
    async def test_failed_enhancement_keeps_original(self):
        gemini = _routing_gemini(enhanced='""')
        generator = AnswerGenerator(gemini)

        answer = await generator.generate_one("flat feet shoes", enhance=True)

        assert answer.query == "flat feet shoes"
        assert answer.enhanced is False
        assert answer.metadata["degraded"]

    @pytest.mark.asyncio
    async def test_concept_failure_keeps_answer(self):
        async def generate(prompt, **kwargs):
            if "Extract the key topics" in prompt:
                raise GeminiError("API error: 503")
            return _result("A short definition.")

        gemini = MagicMock()
        gemini.generate = AsyncMock(side_effect=generate)

        answer = await AnswerGenerator(gemini).generate_one("what is GEO")

        assert answer.text == "A short definition."
        assert answer.answer_format == AnswerFormat.DEFINITION
        assert answer.concepts.topics == []
        assert len(answer.degraded) == 1

    @pytest.mark.asyncio
    async def test_answer_failure_raises(self):
        gemini = _routing_gemini(fail_for="shoes")

        with pytest.raises(GeminiError):
            await AnswerGenerator(gemini).generate_one("shoes")

    def test_metadata_fields(self):
        from geospy.analyzer.answers import GeneratedAnswer
        from geospy.analyzer.concepts import KeyConcepts

        answer = GeneratedAnswer(
            query="q",
            original_query="q",
            text="t",
            answer_format=AnswerFormat.PARAGRAPH,
            concepts=KeyConcepts(),
            model="gemini-test",
        )

        assert set(answer.metadata) == {"model", "timestamp", "original_query", "enhanced"}


class TestGenerateMany:

    def test_requires_client(self):
        with pytest.raises(MissingCredentialError):
            AnswerGenerator(None)

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self):
        generator = AnswerGenerator(_routing_gemini())

        with pytest.raises(InvalidRequestError):
            await generator.generate_many([])

        with pytest.raises(InvalidRequestError):
            await generator.generate_many(["  ", ""])

    @pytest.mark.asyncio
    async def test_partial_failure(self):
        generator = AnswerGenerator(_routing_gemini(fail_for="broken"))

        outcomes = await generator.generate_many(["good query", "broken query", " "])

        assert [o.query for o in outcomes] == ["good query", "broken query"]
        assert outcomes[0].succeeded
        assert not outcomes[1].succeeded
        assert "500" in outcomes[1].error
