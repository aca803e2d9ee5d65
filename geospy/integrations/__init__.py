"""
External API Integrations

Clients for third-party APIs used by the content-gap pipeline:
- Firecrawl: Page scraping to markdown
- Gemini: Text completion and embeddings
- Config: Unified configuration and client management
"""

from .firecrawl import FirecrawlClient, FirecrawlError, ScrapedPage
from .gemini import GeminiClient, GeminiError, GenerationResult
from .config import ExternalAPIConfig, ExternalAPIClients

__all__ = [
    # Firecrawl
    "FirecrawlClient",
    "FirecrawlError",
    "ScrapedPage",
    # Gemini
    "GeminiClient",
    "GeminiError",
    "GenerationResult",
    # Config
    "ExternalAPIConfig",
    "ExternalAPIClients",
]
