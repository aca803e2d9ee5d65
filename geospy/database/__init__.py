"""
GEOspy Database Layer

Usage:
    from geospy.database import (
        # Session management
        init_db, get_db, transaction,

        # Models
        Project, TrackedURL, ScrapedContent, AIAnswer, AnalysisResult, Recommendation,

        # Enums
        URLRole, ScrapeStatus, AnswerFormat,
    )

    # Initialize database
    init_db()

    # Repository functions take the session first and the owner second
    from geospy.database import repository
    project = repository.get_project(db, user.id, project_id)
"""

# Models
from .models import (
    Base,
    Project,
    TrackedURL,
    ScrapedContent,
    AIAnswer,
    AnalysisResult,
    Recommendation,
    # Enums
    URLRole,
    ScrapeStatus,
    AnswerFormat,
    RecommendationPriority,
    RecommendationCategory,
)

# Session management
from .session import (
    get_database_url,
    get_engine,
    get_session_factory,
    get_db,
    transaction,
    init_db,
    get_db_info,
    check_db_connection,
)

__all__ = [
    "Base",
    "Project",
    "TrackedURL",
    "ScrapedContent",
    "AIAnswer",
    "AnalysisResult",
    "Recommendation",
    "URLRole",
    "ScrapeStatus",
    "AnswerFormat",
    "RecommendationPriority",
    "RecommendationCategory",
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "get_db",
    "transaction",
    "init_db",
    "get_db_info",
    "check_db_connection",
]
