"""
External API Configuration

Configuration and factory for external API clients.
Loads credentials from environment variables.

Required environment variables:
- GEMINI_API_KEY: Gemini API key
- FIRECRAWL_API_KEY: Firecrawl API key

Optional:
- GEMINI_MODEL: Completion model (default: gemini-2.5-flash)
- GEMINI_EMBED_MODEL: Embedding model (default: gemini-embedding-001)
- GEMINI_ENABLED: Enable Gemini (default: true)
- FIRECRAWL_ENABLED: Enable Firecrawl (default: true)
"""

import os
import logging
from typing import Optional

from .firecrawl import FirecrawlClient, RetryConfig as FirecrawlRetryConfig
from .gemini import GeminiClient

logger = logging.getLogger(__name__)


def get_env_bool(key: str, default: bool = True) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("false", "0", "no", "off"):
        return False
    if val in ("true", "1", "yes", "on"):
        return True
    return default


class ExternalAPIConfig:
    """Configuration for external APIs."""

    def __init__(
        self,
        gemini_api_key: Optional[str] = None,
        firecrawl_api_key: Optional[str] = None,
        gemini_model: Optional[str] = None,
        gemini_embed_model: Optional[str] = None,
        gemini_enabled: bool = True,
        firecrawl_enabled: bool = True,
        ai_timeout: float = 60.0,
    ):
        """
        Initialize external API configuration.

        Args:
            gemini_api_key: Gemini API key (or from env)
            firecrawl_api_key: Firecrawl API key (or from env)
            gemini_model: Completion model
            gemini_embed_model: Embedding model
            gemini_enabled: Whether Gemini is enabled
            firecrawl_enabled: Whether Firecrawl is enabled
            ai_timeout: HTTP timeout for Gemini calls
        """
        self.gemini_api_key = gemini_api_key or os.environ.get("GEMINI_API_KEY")
        self.firecrawl_api_key = firecrawl_api_key or os.environ.get("FIRECRAWL_API_KEY")
        self.gemini_model = gemini_model or os.environ.get("GEMINI_MODEL", GeminiClient.DEFAULT_MODEL)
        self.gemini_embed_model = gemini_embed_model or os.environ.get(
            "GEMINI_EMBED_MODEL", GeminiClient.DEFAULT_EMBED_MODEL
        )
        self.gemini_enabled = gemini_enabled and get_env_bool("GEMINI_ENABLED", True)
        self.firecrawl_enabled = firecrawl_enabled and get_env_bool("FIRECRAWL_ENABLED", True)
        self.ai_timeout = ai_timeout

    @classmethod
    def from_settings(cls, settings) -> "ExternalAPIConfig":
        """Build from application Settings."""
        return cls(
            gemini_api_key=settings.GEMINI_API_KEY,
            firecrawl_api_key=settings.FIRECRAWL_API_KEY,
            gemini_model=settings.GEMINI_MODEL,
            gemini_embed_model=settings.GEMINI_EMBED_MODEL,
            ai_timeout=settings.AI_TIMEOUT,
        )

    @property
    def has_gemini(self) -> bool:
        """Check if Gemini is configured and enabled."""
        return self.gemini_enabled and bool(self.gemini_api_key)

    @property
    def has_firecrawl(self) -> bool:
        """Check if Firecrawl is configured and enabled."""
        return self.firecrawl_enabled and bool(self.firecrawl_api_key)

    def log_status(self):
        """Log configuration status."""
        logger.info(
            f"External API status: "
            f"Gemini={'enabled' if self.has_gemini else 'disabled'}, "
            f"Firecrawl={'enabled' if self.has_firecrawl else 'disabled'}"
        )


class ExternalAPIClients:
    """
    Factory and manager for external API clients.

    Built once at startup and handed to the services that need it.

    Usage:
        config = ExternalAPIConfig()
        clients = ExternalAPIClients(config)

        # Use clients
        if clients.gemini:
            result = await clients.gemini.generate("...")

        # Cleanup
        await clients.close()
    """

    def __init__(self, config: Optional[ExternalAPIConfig] = None):
        """
        Initialize external API clients.

        Args:
            config: API configuration (defaults to env-based config)
        """
        self.config = config or ExternalAPIConfig()
        self._gemini: Optional[GeminiClient] = None
        self._firecrawl: Optional[FirecrawlClient] = None

    @property
    def gemini(self) -> Optional[GeminiClient]:
        """Get or create Gemini client."""
        if not self.config.has_gemini:
            return None

        if self._gemini is None:
            self._gemini = GeminiClient(
                api_key=self.config.gemini_api_key,
                default_model=self.config.gemini_model,
                embed_model=self.config.gemini_embed_model,
                timeout=self.config.ai_timeout,
            )
            logger.info("Initialized Gemini client")

        return self._gemini

    @property
    def firecrawl(self) -> Optional[FirecrawlClient]:
        """Get or create Firecrawl client."""
        if not self.config.has_firecrawl:
            return None

        if self._firecrawl is None:
            # No retries: a scrape batch resolves each URL exactly once
            self._firecrawl = FirecrawlClient(
                api_key=self.config.firecrawl_api_key,
                retry_config=FirecrawlRetryConfig(max_retries=0),
            )
            logger.info("Initialized Firecrawl client")

        return self._firecrawl

    async def close(self):
        """Close all clients."""
        if self._gemini:
            await self._gemini.close()
            self._gemini = None

        if self._firecrawl:
            await self._firecrawl.close()
            self._firecrawl = None

        logger.info("Closed external API clients")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
