"""
Embedding Client

Thin wrapper over the Gemini embedding endpoint.

Unlike concept extraction, errors propagate: semantic coverage cannot be
computed without vectors, and the coverage analyzer decides whether to
omit the figure.
"""

import logging
from typing import List, Optional

from geospy.exceptions import MissingCredentialError
from geospy.integrations.gemini import GeminiClient

logger = logging.getLogger(__name__)


DEFAULT_MAX_CHARS = 8000


class EmbeddingClient:
    """
    Embeds texts, truncating each to the upstream character limit.

    Usage:
        embedder = EmbeddingClient(clients.gemini)
        vector = await embedder.embed("page content ...")
        vectors = await embedder.embed_batch(["a", "b"])  # sequential, order kept
    """

    def __init__(
        self,
        gemini: Optional[GeminiClient],
        max_chars: int = DEFAULT_MAX_CHARS,
        model: Optional[str] = None,
    ):
        if gemini is None:
            raise MissingCredentialError("Gemini", "GEMINI_API_KEY")
        self.gemini = gemini
        self.max_chars = max_chars
        self.model = model

    def prepare(self, text: str) -> str:
        """Truncate to max_chars."""
        return (text or "")[:self.max_chars]

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            GeminiError: On HTTP failure or a response without a vector
        """
        return await self.gemini.embed(self.prepare(text), model=self.model)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed texts one after another; output order matches input order."""
        vectors = []
        for text in texts:
            vectors.append(await self.embed(text))
        logger.debug(f"Embedded {len(vectors)} texts")
        return vectors
