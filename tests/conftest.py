"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules.
"""

import pytest
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from geospy.auth.models import User
from geospy.database.session import init_db
from geospy.integrations.gemini import GenerationResult


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads (TestClient runs in one)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    init_db(engine=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session bound to the in-memory engine."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def user(db_session) -> User:
    """Project owner."""
    owner = User(id=uuid4(), email="owner@test.com", full_name="Owner", is_active=True)
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def other_user(db_session) -> User:
    """A second user who must never see the owner's data."""
    other = User(id=uuid4(), email="other@test.com", is_active=True)
    db_session.add(other)
    db_session.commit()
    return other


# ============================================================================
# Mock Data Fixtures
# ============================================================================

@pytest.fixture
def target_markdown() -> str:
    """Target page: covers shoes and care, no FAQ."""
    return (
        "# Running Shoes\n"
        "Intro paragraph about our running shoes for every runner.\n"
        "\n"
        "## Cushioning\n"
        + "Cushioning protects your joints on long runs and hard surfaces. " * 12 + "\n"
        "\n"
        "## Sizing Guide\n"
        "Order half a size up.\n"
    )


@pytest.fixture
def competitor_markdown() -> str:
    """Competitor page: deeper sizing guide, plus a warranty section."""
    return (
        "# Best Running Shoes\n"
        "\n"
        "## Cushioning\n"
        + "Cushioning matters for distance runners and heavier athletes. " * 10 + "\n"
        "\n"
        "## Sizing Guide\n"
        + "Measure your foot in the evening and compare with the size chart. " * 8 + "\n"
        "\n"
        "## Warranty\n"
        + "Most brands replace shoes with manufacturing defects within a year. " * 6 + "\n"
        "\n"
        "## Related posts\n"
        "Other articles.\n"
    )


@pytest.fixture
def analysis_fields() -> Dict[str, Any]:
    """Persistable analysis fields with two missing topics."""
    return {
        "topics_present": ["cushioning"],
        "topics_missing": ["warranty", "sizing guide"],
        "topics_weak": [],
        "structural_patterns": {
            "preferred_format": "paragraph",
            "uses_definitions": False,
            "target_has_faq": True,
        },
        "content_depth_score": 80,
        "competitor_coverage": {"total_competitors": 1},
    }


# ============================================================================
# Mock API Clients
# ============================================================================

def gemini_result(text: str, model: str = "gemini-test") -> GenerationResult:
    """GenerationResult as returned by GeminiClient.generate."""
    return GenerationResult(text=text, model=model, prompt="", tokens_used=10)


@pytest.fixture
def mock_gemini():
    """Mock Gemini client: plain-text answers, fixed embeddings."""
    client = MagicMock()
    client.generate = AsyncMock(return_value=gemini_result("A plain answer."))
    client.embed = AsyncMock(return_value=[1.0, 0.0, 0.0])
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_firecrawl(target_markdown):
    """Mock Firecrawl client returning the target page for every URL."""
    client = MagicMock()
    client.fetch_markdown = AsyncMock(return_value=MagicMock(markdown=target_markdown))
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_clients(mock_gemini, mock_firecrawl):
    """ExternalAPIClients stand-in with both services configured."""
    clients = MagicMock()
    clients.gemini = mock_gemini
    clients.firecrawl = mock_firecrawl
    return clients


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
