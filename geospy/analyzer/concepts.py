"""
Key Concept Extraction

One Gemini call that pulls topics and named entities out of an answer.
Failure never aborts answer generation: any upstream or parse error
degrades to empty lists.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from geospy.analyzer.outcome import BestEffort
from geospy.integrations.gemini import GeminiClient, GeminiError

logger = logging.getLogger(__name__)


PROMPT_MAX_CHARS = 2000

CONCEPT_PROMPT = """Extract the key topics and named entities from the text below.

Respond with a single JSON object and nothing else (no markdown, no code fences, no commentary):
{{"topics": ["topic one", "topic two"], "entities": ["Entity One", "Entity Two"]}}

Topics are short noun phrases a web page would use as section headings.
Entities are specific brands, products, people, places or organizations.

Text:
{text}"""

_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


@dataclass
class KeyConcepts:
    """Topics and entities found in an answer (order kept, duplicates possible)."""
    topics: List[str] = field(default_factory=list)
    entities: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"topics": list(self.topics), "entities": list(self.entities)}


def strip_code_fences(text: str) -> str:
    """Remove ``` / ```json markers a model sometimes wraps JSON in."""
    return _CODE_FENCE.sub("", text).strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def parse_concepts(raw: str) -> KeyConcepts:
    """
    Parse the model's JSON reply.

    Raises:
        ValueError: If the reply is not a JSON object
    """
    data = json.loads(strip_code_fences(raw))
    if not isinstance(data, dict):
        raise ValueError("Concept response is not a JSON object")

    return KeyConcepts(
        topics=_string_list(data.get("topics")),
        entities=_string_list(data.get("entities")),
    )


async def extract_key_concepts(
    gemini: Optional[GeminiClient],
    text: str,
    timeout: Optional[float] = None,
) -> BestEffort[KeyConcepts]:
    """
    Extract topics and entities from an answer.

    Args:
        gemini: Gemini client (None degrades immediately)
        text: Answer text; only the first 2000 characters are sent
        timeout: Optional cancellation deadline in seconds

    Returns:
        BestEffort wrapping KeyConcepts (empty lists when degraded)
    """
    if gemini is None:
        return BestEffort.fallback(KeyConcepts(), "Gemini not configured")

    prompt = CONCEPT_PROMPT.format(text=(text or "")[:PROMPT_MAX_CHARS])

    try:
        # Single attempt: extraction is best-effort
        call = gemini.generate(prompt, max_retries=0)
        result = await (asyncio.wait_for(call, timeout) if timeout else call)
        concepts = parse_concepts(result.text)
    except asyncio.TimeoutError:
        logger.warning(f"Concept extraction timed out after {timeout}s")
        return BestEffort.fallback(KeyConcepts(), "Concept extraction timed out")
    except GeminiError as e:
        logger.warning(f"Concept extraction failed: {e}")
        return BestEffort.fallback(KeyConcepts(), f"Concept extraction failed: {e}")
    except ValueError as e:
        logger.warning(f"Could not parse concept response: {e}")
        return BestEffort.fallback(KeyConcepts(), "Concept response was not valid JSON")

    logger.debug(f"Extracted {len(concepts.topics)} topics, {len(concepts.entities)} entities")
    return BestEffort.ok(concepts)
