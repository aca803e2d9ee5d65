"""
Reference Answer Generation

For each query: (optional) enhance -> generate -> classify -> extract concepts.
Queries run concurrently; each one is sequential inside. A failed query
becomes a failed outcome and never aborts the others.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from geospy.analyzer.classifier import classify_answer_format
from geospy.analyzer.concepts import KeyConcepts, extract_key_concepts
from geospy.analyzer.query import DEFAULT_ENHANCE_TIMEOUT, enhance_query
from geospy.database.models import AnswerFormat
from geospy.exceptions import InvalidRequestError, MissingCredentialError
from geospy.integrations.gemini import GeminiClient, GeminiError

logger = logging.getLogger(__name__)


@dataclass
class GeneratedAnswer:
    """A classified answer ready to be stored as an AIAnswer."""
    query: str  # Text actually sent to the model
    original_query: str
    text: str
    answer_format: AnswerFormat
    concepts: KeyConcepts
    model: str
    enhanced: bool = False
    degraded: List[str] = field(default_factory=list)  # Reasons from best-effort steps
    generated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def metadata(self) -> Dict[str, Any]:
        meta = {
            "model": self.model,
            "timestamp": self.generated_at.isoformat(),
            "original_query": self.original_query,
            "enhanced": self.enhanced,
        }
        if self.degraded:
            meta["degraded"] = list(self.degraded)
        return meta


@dataclass
class AnswerOutcome:
    """Result for one query in a batch."""
    query: str
    answer: Optional[GeneratedAnswer] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.answer is not None


class AnswerGenerator:
    """
    Produces reference answers for a batch of queries.

    Usage:
        generator = AnswerGenerator(clients.gemini)
        outcomes = await generator.generate_many(["best trail shoes"], enhance=True)
    """

    def __init__(
        self,
        gemini: Optional[GeminiClient],
        enhance_timeout: float = DEFAULT_ENHANCE_TIMEOUT,
        concept_timeout: Optional[float] = None,
    ):
        if gemini is None:
            raise MissingCredentialError("Gemini", "GEMINI_API_KEY")
        self.gemini = gemini
        self.enhance_timeout = enhance_timeout
        self.concept_timeout = concept_timeout

    async def generate_one(self, query: str, enhance: bool = False) -> GeneratedAnswer:
        """
        Run the full per-query pipeline.

        Raises:
            GeminiError: If the answer itself cannot be generated
        """
        original = query.strip()
        sent = original
        degraded = []

        if enhance:
            enhancement = await enhance_query(self.gemini, original, timeout=self.enhance_timeout)
            if enhancement.is_ok:
                sent = enhancement.value
            else:
                degraded.append(enhancement.reason)

        result = await self.gemini.generate(sent)
        answer_format = classify_answer_format(result.text)

        concepts = await extract_key_concepts(self.gemini, result.text, timeout=self.concept_timeout)
        if concepts.degraded:
            degraded.append(concepts.reason)

        logger.info(
            f"Answer generated for {sent!r}: format={answer_format.value}, "
            f"length={len(result.text)}, topics={len(concepts.value.topics)}, "
            f"entities={len(concepts.value.entities)}"
        )

        return GeneratedAnswer(
            query=sent,
            original_query=original,
            text=result.text,
            answer_format=answer_format,
            concepts=concepts.value,
            model=result.model,
            enhanced=sent != original,
            degraded=degraded,
        )

    async def generate_many(self, queries: List[str], enhance: bool = False) -> List[AnswerOutcome]:
        """
        Generate answers for every non-blank query concurrently.

        Raises:
            InvalidRequestError: If no non-blank query was given
        """
        cleaned = [q.strip() for q in queries or [] if isinstance(q, str) and q.strip()]
        if not cleaned:
            raise InvalidRequestError("queries must be a non-empty list")

        logger.info(f"Generating answers for {len(cleaned)} queries...")

        async def run(query: str) -> AnswerOutcome:
            try:
                return AnswerOutcome(query=query, answer=await self.generate_one(query, enhance))
            except GeminiError as e:
                logger.error(f"Error generating answer for {query!r}: {e}")
                return AnswerOutcome(query=query, error=str(e))

        outcomes = await asyncio.gather(*(run(q) for q in cleaned))

        succeeded = sum(1 for o in outcomes if o.succeeded)
        logger.info(
            f"Answer generation complete: {succeeded} succeeded, "
            f"{len(outcomes) - succeeded} failed"
        )
        return list(outcomes)
