"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Gemini (required for answers, concepts, embeddings)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_EMBED_MODEL: str = "gemini-embedding-001"

    # Firecrawl (required for scraping)
    FIRECRAWL_API_KEY: Optional[str] = None

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Scraping
    SCRAPE_CONCURRENCY: int = 3
    SCRAPE_TIMEOUT: float = 30.0
    RAW_CONTENT_LIMIT: int = 50000

    # AI calls
    AI_TIMEOUT: float = 60.0
    ENHANCE_TIMEOUT: float = 10.0
    EMBED_MAX_CHARS: int = 8000

    # Coverage tunables (see scoring.helpers.CoverageConfig)
    WEAK_RATIO: float = 0.5
    DEFAULT_TOPIC_WORDS: int = 80
    BASELINE_WORD_COUNT: int = 1000
    BASELINE_HEADING_COUNT: int = 5
    FUZZY_TOKEN_OVERLAP: float = 0.6
    MAX_COMPETITOR_TOPICS: int = 40

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
