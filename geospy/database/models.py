"""
SQLAlchemy Models for GEOspy

Design Principles:
1. Every row hangs off a Project, and every Project has exactly one owner
2. Scrapes, answers and analyses are append-only (history, not upserts)
3. Structural data stays in JSON columns (headings, sections, topic lists)

JSON columns use JSONB on PostgreSQL and plain JSON elsewhere (SQLite in
development and tests).
"""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, DateTime, Text,
    ForeignKey, Enum, Index, JSON, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENUMS
# =============================================================================

class URLRole(enum.Enum):
    """Which side of the comparison a tracked URL is on"""
    TARGET = "target"          # The user's own page
    COMPETITOR = "competitor"  # A page the user wants to out-cover


class ScrapeStatus(enum.Enum):
    """Lifecycle of one scrape: pending -> success | failed"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class AnswerFormat(enum.Enum):
    """Shape of an AI answer, first match wins in this order"""
    STEP_BY_STEP = "step_by_step"
    BULLET_LIST = "bullet_list"
    DEFINITION = "definition"
    PARAGRAPH = "paragraph"


class RecommendationPriority(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(enum.Enum):
    MISSING_CONTENT = "missing_content"
    STRUCTURAL = "structural"
    FORMAT = "format"


PRIORITY_ORDER = {
    RecommendationPriority.HIGH: 0,
    RecommendationPriority.MEDIUM: 1,
    RecommendationPriority.LOW: 2,
}


# =============================================================================
# PROJECTS
# =============================================================================

class Project(Base):
    """A topic the user wants AI engines to cite them for"""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)  # Owner

    name = Column(String(255), nullable=False)
    description = Column(Text)
    target_topic = Column(Text, nullable=False)  # Question or theme to optimize for

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    urls = relationship("TrackedURL", back_populates="project", cascade="all, delete-orphan")
    answers = relationship("AIAnswer", back_populates="project", cascade="all, delete-orphan")
    analyses = relationship("AnalysisResult", back_populates="project", cascade="all, delete-orphan")
    recommendations = relationship("Recommendation", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_project_user", "user_id"),
    )


class TrackedURL(Base):
    """Target or competitor page registered with a project"""
    __tablename__ = "tracked_urls"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    url = Column(String(2000), nullable=False)
    role = Column(Enum(URLRole), nullable=False)
    domain = Column(String(255))  # Host name, derived on insert

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="urls")
    scrapes = relationship("ScrapedContent", back_populates="tracked_url", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_tracked_url_project", "project_id"),
    )


class ScrapedContent(Base):
    """One scrape of one URL; rescrapes add rows"""
    __tablename__ = "scraped_content"

    id = Column(Uuid, primary_key=True, default=uuid4)
    url_id = Column(Uuid, ForeignKey("tracked_urls.id", ondelete="CASCADE"), nullable=False)

    # Structure
    h1_tags = Column(JSONType, default=list)
    h2_tags = Column(JSONType, default=list)
    h3_tags = Column(JSONType, default=list)
    word_count = Column(Integer, default=0)
    content_structure = Column(JSONType, default=dict)  # {"sections": [{heading, subheadings, word_count}]}
    raw_content = Column(Text)  # Truncated markdown

    status = Column(Enum(ScrapeStatus), default=ScrapeStatus.PENDING, nullable=False)
    error_message = Column(Text)

    scraped_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    tracked_url = relationship("TrackedURL", back_populates="scrapes")

    __table_args__ = (
        Index("idx_scraped_url_time", "url_id", "scraped_at"),
    )


# =============================================================================
# AI ANSWERS & ANALYSIS
# =============================================================================

class AIAnswer(Base):
    """Reference answer from the generative model for one query"""
    __tablename__ = "ai_answers"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    query = Column(Text, nullable=False)  # Text actually sent to the model
    raw_answer = Column(Text, nullable=False)
    answer_format = Column(Enum(AnswerFormat), nullable=False)
    key_concepts = Column(JSONType, default=list)
    entities = Column(JSONType, default=list)
    answer_metadata = Column("metadata", JSONType, default=dict)  # model, timestamp, original query

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="answers")
    analyses = relationship("AnalysisResult", back_populates="ai_answer")

    __table_args__ = (
        Index("idx_answer_project_time", "project_id", "created_at"),
    )


class AnalysisResult(Base):
    """Coverage diff of a project's pages against one AI answer"""
    __tablename__ = "analysis_results"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    ai_answer_id = Column(Uuid, ForeignKey("ai_answers.id", ondelete="CASCADE"), nullable=False)

    # Topic partition (order = first appearance in the topic universe)
    topics_present = Column(JSONType, default=list)
    topics_missing = Column(JSONType, default=list)
    topics_weak = Column(JSONType, default=list)

    structural_patterns = Column(JSONType, default=dict)
    content_depth_score = Column(Integer, default=0)  # 0-100
    competitor_coverage = Column(JSONType, default=dict)  # count, avg words, semantic coverage

    analyzed_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="analyses")
    ai_answer = relationship("AIAnswer", back_populates="analyses")
    recommendations = relationship("Recommendation", back_populates="analysis", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_analysis_project_time", "project_id", "analyzed_at"),
    )


class Recommendation(Base):
    """One prioritized action derived from an analysis"""
    __tablename__ = "recommendations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    analysis_id = Column(Uuid, ForeignKey("analysis_results.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    priority = Column(Enum(RecommendationPriority), nullable=False)
    category = Column(Enum(RecommendationCategory), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    action_items = Column(JSONType, default=list)  # [{step, action, format}]
    expected_impact = Column(Text)
    position = Column(Integer, default=0)  # Order within its analysis

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    analysis = relationship("AnalysisResult", back_populates="recommendations")
    project = relationship("Project", back_populates="recommendations")

    __table_args__ = (
        Index("idx_recommendation_project", "project_id", "priority"),
    )
