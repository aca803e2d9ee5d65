"""
Query Enhancement

Rewrites a terse query ("best running shoes flat feet") into one
well-formed question before it is sent for a reference answer.
Best-effort: on any failure the caller keeps the original query.
"""

import asyncio
import logging
from typing import Optional

from geospy.analyzer.outcome import BestEffort
from geospy.integrations.gemini import GeminiClient, GeminiError

logger = logging.getLogger(__name__)


DEFAULT_ENHANCE_TIMEOUT = 10.0

QUOTE_CHARS = "\"'“”‘’"

ENHANCE_PROMPT = """You rewrite search queries for a Generative Engine Optimization tool.

Turn the user's short or informal query into ONE clear, specific question that:
- keeps the user's intent and topic
- is ready to send to a generative AI assistant
- is concise and grammatical
- adds no extra questions or bullet points

Reply with the question only. No quotes, no preamble, no explanation.

Query:
{query}"""


def clean_enhanced_query(text: str) -> str:
    """Trim whitespace and surrounding quote characters."""
    return text.strip().strip(QUOTE_CHARS).strip()


async def enhance_query(
    gemini: Optional[GeminiClient],
    query: str,
    timeout: float = DEFAULT_ENHANCE_TIMEOUT,
) -> BestEffort[Optional[str]]:
    """
    Rewrite a query into a well-formed question.

    Args:
        gemini: Gemini client (None degrades immediately)
        query: User query
        timeout: Cancellation deadline in seconds

    Returns:
        BestEffort with the enhanced question, or None when degraded
    """
    trimmed = (query or "").strip()
    if not trimmed:
        return BestEffort.fallback(None, "Empty query")

    if gemini is None:
        return BestEffort.fallback(None, "Gemini not configured")

    try:
        result = await asyncio.wait_for(
            gemini.generate(ENHANCE_PROMPT.format(query=trimmed), max_retries=0),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Query enhancement timed out after {timeout}s")
        return BestEffort.fallback(None, "Query enhancement timed out")
    except GeminiError as e:
        logger.warning(f"Query enhancement failed: {e}")
        return BestEffort.fallback(None, f"Query enhancement failed: {e}")

    enhanced = clean_enhanced_query(result.text)
    if not enhanced:
        return BestEffort.fallback(None, "Empty enhancement")

    logger.info(f"Enhanced query: {trimmed!r} -> {enhanced!r}")
    return BestEffort.ok(enhanced)
