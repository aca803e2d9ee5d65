"""
Repository Layer - Clean Interface for Data Operations

Provides simple functions to store and retrieve project data.
Handles all SQLAlchemy complexity internally.

Every read of a project-derived row filters by the owning user's id,
directly or through the parent Project. Rows owned by someone else are
reported exactly like rows that do not exist (NotFoundError).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case
from sqlalchemy.orm import Session

from geospy.exceptions import InvalidRequestError, NotFoundError
from geospy.utils.topic_filter import extract_domain

from .models import (
    Project, TrackedURL, ScrapedContent, AIAnswer, AnalysisResult, Recommendation,
    URLRole, ScrapeStatus, AnswerFormat,
    RecommendationPriority,
)
from .session import transaction

logger = logging.getLogger(__name__)


DEFAULT_RAW_CONTENT_LIMIT = 50000


# =============================================================================
# PROJECTS
# =============================================================================

def _clean_urls(urls: Optional[List[str]]) -> List[str]:
    seen = set()
    cleaned = []
    for url in urls or []:
        url = (url or "").strip()
        if url and url not in seen:
            seen.add(url)
            cleaned.append(url)
    return cleaned


def create_project(
    db: Session,
    user_id: UUID,
    name: str,
    target_topic: str,
    target_urls: List[str],
    competitor_urls: Optional[List[str]] = None,
    description: Optional[str] = None,
) -> Project:
    """
    Create a project together with its URL batch.

    Raises:
        InvalidRequestError: Missing name/topic or no target URL
    """
    name = (name or "").strip()
    target_topic = (target_topic or "").strip()
    targets = _clean_urls(target_urls)
    competitors = [u for u in _clean_urls(competitor_urls) if u not in targets]

    if not name or not target_topic:
        raise InvalidRequestError("name and target_topic are required")
    if not targets:
        raise InvalidRequestError("At least one target URL is required")

    with transaction(db):
        project = Project(
            user_id=user_id,
            name=name,
            description=description,
            target_topic=target_topic,
        )
        db.add(project)
        db.flush()

        for url in targets:
            db.add(TrackedURL(project_id=project.id, url=url, role=URLRole.TARGET, domain=extract_domain(url)))
        for url in competitors:
            db.add(TrackedURL(project_id=project.id, url=url, role=URLRole.COMPETITOR, domain=extract_domain(url)))

    logger.info(
        f"Created project {project.id} for user {user_id}: "
        f"{len(targets)} targets, {len(competitors)} competitors"
    )
    return project


def list_projects(db: Session, user_id: UUID) -> List[Project]:
    """User's projects, newest first."""
    return (
        db.query(Project)
        .filter(Project.user_id == user_id)
        .order_by(Project.created_at.desc())
        .all()
    )


def get_project(db: Session, user_id: UUID, project_id: UUID) -> Project:
    """
    Fetch one owned project.

    Raises:
        NotFoundError: Missing or owned by someone else
    """
    project = (
        db.query(Project)
        .filter(Project.id == project_id, Project.user_id == user_id)
        .first()
    )
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def update_project(
    db: Session,
    user_id: UUID,
    project_id: UUID,
    name: Optional[str] = None,
    description: Optional[str] = None,
    target_topic: Optional[str] = None,
) -> Project:
    """Update the editable project fields that were given."""
    project = get_project(db, user_id, project_id)

    if name is not None and not name.strip():
        raise InvalidRequestError("name cannot be empty")
    if target_topic is not None and not target_topic.strip():
        raise InvalidRequestError("target_topic cannot be empty")

    with transaction(db):
        if name is not None:
            project.name = name.strip()
        if description is not None:
            project.description = description
        if target_topic is not None:
            project.target_topic = target_topic.strip()
        project.updated_at = datetime.utcnow()

    return project


def delete_project(db: Session, user_id: UUID, project_id: UUID) -> None:
    """Delete a project and everything under it."""
    project = get_project(db, user_id, project_id)
    with transaction(db):
        db.delete(project)
    logger.info(f"Deleted project {project_id}")


def list_project_urls(
    db: Session,
    user_id: UUID,
    project_id: UUID,
    role: Optional[URLRole] = None,
) -> List[TrackedURL]:
    """Tracked URLs of an owned project, targets first."""
    query = (
        db.query(TrackedURL)
        .join(Project, TrackedURL.project_id == Project.id)
        .filter(Project.id == project_id, Project.user_id == user_id)
    )
    if role is not None:
        query = query.filter(TrackedURL.role == role)

    urls = query.order_by(TrackedURL.created_at).all()
    return sorted(urls, key=lambda u: 0 if u.role == URLRole.TARGET else 1)


# =============================================================================
# SCRAPED CONTENT
# =============================================================================

def store_scraped_content(
    db: Session,
    url_id: UUID,
    status: ScrapeStatus,
    h1s: Optional[List[str]] = None,
    h2s: Optional[List[str]] = None,
    h3s: Optional[List[str]] = None,
    word_count: int = 0,
    content_structure: Optional[Dict[str, Any]] = None,
    raw_content: str = "",
    error_message: Optional[str] = None,
    raw_content_limit: int = DEFAULT_RAW_CONTENT_LIMIT,
) -> ScrapedContent:
    """Add one scrape row (not committed; see store_scrape_outcomes)."""
    row = ScrapedContent(
        url_id=url_id,
        h1_tags=list(h1s or []),
        h2_tags=list(h2s or []),
        h3_tags=list(h3s or []),
        word_count=word_count,
        content_structure=content_structure or {"sections": []},
        raw_content=(raw_content or "")[:raw_content_limit],
        status=status,
        error_message=error_message,
        scraped_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def store_scrape_outcomes(
    db: Session,
    outcomes: List[Any],
    raw_content_limit: int = DEFAULT_RAW_CONTENT_LIMIT,
) -> List[ScrapedContent]:
    """
    Persist a batch of ScrapeOutcome objects, one row each.

    Failed outcomes are stored with empty structural fields.
    """
    rows = []
    with transaction(db):
        for outcome in outcomes:
            structure = outcome.structure
            rows.append(store_scraped_content(
                db,
                url_id=outcome.target.url_id,
                status=outcome.status,
                h1s=structure.h1s,
                h2s=structure.h2s,
                h3s=structure.h3s,
                word_count=structure.word_count,
                content_structure=structure.to_content_structure(),
                raw_content=outcome.markdown,
                error_message=outcome.error,
                raw_content_limit=raw_content_limit,
            ))
    return rows


def get_latest_scrapes(
    db: Session,
    user_id: UUID,
    project_id: UUID,
    successful_only: bool = True,
) -> List[Tuple[TrackedURL, ScrapedContent]]:
    """
    Most recent scrape per URL of an owned project.

    URLs without a (successful) scrape are left out.
    """
    query = (
        db.query(TrackedURL, ScrapedContent)
        .join(ScrapedContent, ScrapedContent.url_id == TrackedURL.id)
        .join(Project, TrackedURL.project_id == Project.id)
        .filter(Project.id == project_id, Project.user_id == user_id)
    )
    if successful_only:
        query = query.filter(ScrapedContent.status == ScrapeStatus.SUCCESS)

    latest = {}
    for tracked_url, scraped in query.order_by(ScrapedContent.scraped_at.desc()).all():
        latest.setdefault(tracked_url.id, (tracked_url, scraped))

    return sorted(latest.values(), key=lambda pair: 0 if pair[0].role == URLRole.TARGET else 1)


# =============================================================================
# AI ANSWERS
# =============================================================================

def store_ai_answer(
    db: Session,
    project_id: UUID,
    query: str,
    raw_answer: str,
    answer_format: AnswerFormat,
    key_concepts: Optional[List[str]] = None,
    entities: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AIAnswer:
    """Insert one AI answer."""
    with transaction(db):
        answer = AIAnswer(
            project_id=project_id,
            query=query,
            raw_answer=raw_answer,
            answer_format=answer_format,
            key_concepts=list(key_concepts or []),
            entities=list(entities or []),
            answer_metadata=metadata or {},
            created_at=datetime.utcnow(),
        )
        db.add(answer)
    return answer


def _owned_answers(db: Session, user_id: UUID, project_id: UUID):
    return (
        db.query(AIAnswer)
        .join(Project, AIAnswer.project_id == Project.id)
        .filter(Project.id == project_id, Project.user_id == user_id)
    )


def get_ai_answer(
    db: Session,
    user_id: UUID,
    project_id: UUID,
    answer_id: Optional[UUID] = None,
) -> AIAnswer:
    """
    A specific answer, or the most recent one when answer_id is None.

    Raises:
        NotFoundError: No such (owned) answer
    """
    query = _owned_answers(db, user_id, project_id)
    if answer_id is not None:
        answer = query.filter(AIAnswer.id == answer_id).first()
    else:
        answer = query.order_by(AIAnswer.created_at.desc()).first()

    if answer is None:
        raise NotFoundError("AI answer", answer_id)
    return answer


def list_ai_answers(db: Session, user_id: UUID, project_id: UUID) -> List[AIAnswer]:
    """Answers of an owned project, newest first."""
    return _owned_answers(db, user_id, project_id).order_by(AIAnswer.created_at.desc()).all()


# =============================================================================
# ANALYSIS RESULTS
# =============================================================================

def _add_analysis(
    db: Session,
    project_id: UUID,
    ai_answer_id: UUID,
    topics_present: List[str],
    topics_missing: List[str],
    topics_weak: List[str],
    structural_patterns: Dict[str, Any],
    content_depth_score: int,
    competitor_coverage: Dict[str, Any],
) -> AnalysisResult:
    analysis = AnalysisResult(
        project_id=project_id,
        ai_answer_id=ai_answer_id,
        topics_present=list(topics_present),
        topics_missing=list(topics_missing),
        topics_weak=list(topics_weak),
        structural_patterns=dict(structural_patterns),
        content_depth_score=content_depth_score,
        competitor_coverage=dict(competitor_coverage),
        analyzed_at=datetime.utcnow(),
    )
    db.add(analysis)
    return analysis


def store_analysis(
    db: Session,
    project_id: UUID,
    ai_answer_id: UUID,
    topics_present: List[str],
    topics_missing: List[str],
    topics_weak: List[str],
    structural_patterns: Dict[str, Any],
    content_depth_score: int,
    competitor_coverage: Dict[str, Any],
) -> AnalysisResult:
    """Insert one analysis (always a new row)."""
    with transaction(db):
        analysis = _add_analysis(
            db,
            project_id,
            ai_answer_id,
            topics_present,
            topics_missing,
            topics_weak,
            structural_patterns,
            content_depth_score,
            competitor_coverage,
        )
    logger.info(f"Stored analysis {analysis.id} for project {project_id}")
    return analysis


def list_analyses(db: Session, user_id: UUID, project_id: UUID) -> List[AnalysisResult]:
    """Analysis history of an owned project, newest first."""
    return (
        db.query(AnalysisResult)
        .join(Project, AnalysisResult.project_id == Project.id)
        .filter(Project.id == project_id, Project.user_id == user_id)
        .order_by(AnalysisResult.analyzed_at.desc())
        .all()
    )


def get_latest_analysis(db: Session, user_id: UUID, project_id: UUID) -> Optional[AnalysisResult]:
    analyses = list_analyses(db, user_id, project_id)
    return analyses[0] if analyses else None


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

_PRIORITY_RANK = case(
    (Recommendation.priority == RecommendationPriority.HIGH, 0),
    (Recommendation.priority == RecommendationPriority.MEDIUM, 1),
    else_=2,
)


def _add_recommendations(
    db: Session,
    analysis_id: UUID,
    project_id: UUID,
    drafts: List[Any],
) -> List[Recommendation]:
    """Add (without committing) one row per draft, keeping generation order."""
    now = datetime.utcnow()
    rows = []
    for position, draft in enumerate(drafts):
        row = Recommendation(
            analysis_id=analysis_id,
            project_id=project_id,
            position=position,
            priority=draft.priority,
            category=draft.category,
            title=draft.title,
            description=draft.description,
            action_items=[item.to_dict() for item in draft.action_items],
            expected_impact=draft.expected_impact,
            created_at=now,
        )
        db.add(row)
        rows.append(row)
    return rows


def store_recommendations(
    db: Session,
    analysis_id: UUID,
    project_id: UUID,
    drafts: List[Any],
) -> List[Recommendation]:
    """Insert a batch of RecommendationDraft objects for one analysis."""
    if not drafts:
        return []

    with transaction(db):
        rows = _add_recommendations(db, analysis_id, project_id, drafts)

    logger.info(f"Stored {len(rows)} recommendations for analysis {analysis_id}")
    return rows


def store_analysis_with_recommendations(
    db: Session,
    project_id: UUID,
    ai_answer_id: UUID,
    drafts: List[Any],
    **fields,
) -> Tuple[AnalysisResult, List[Recommendation]]:
    """
    Insert an analysis and its recommendations in one transaction.

    Either both are stored or neither is.
    """
    with transaction(db):
        analysis = _add_analysis(db, project_id, ai_answer_id, **fields)
        db.flush()  # assigns analysis.id
        rows = _add_recommendations(db, analysis.id, project_id, drafts or [])

    logger.info(
        f"Stored analysis {analysis.id} with {len(rows)} recommendations for project {project_id}"
    )
    return analysis, rows


def _owned_recommendations(db: Session, user_id: UUID, project_id: UUID):
    return (
        db.query(Recommendation)
        .join(Project, Recommendation.project_id == Project.id)
        .filter(Project.id == project_id, Project.user_id == user_id)
    )


def list_recommendations(db: Session, user_id: UUID, project_id: UUID) -> List[Recommendation]:
    """
    Recommendations of an owned project: high -> medium -> low, then
    newest analysis first, then generation order.
    """
    return (
        _owned_recommendations(db, user_id, project_id)
        .join(AnalysisResult, Recommendation.analysis_id == AnalysisResult.id)
        .order_by(_PRIORITY_RANK, AnalysisResult.analyzed_at.desc(), Recommendation.position)
        .all()
    )


def get_recommendation(
    db: Session,
    user_id: UUID,
    project_id: UUID,
    recommendation_id: UUID,
) -> Recommendation:
    """
    Raises:
        NotFoundError: No such (owned) recommendation
    """
    rec = (
        _owned_recommendations(db, user_id, project_id)
        .filter(Recommendation.id == recommendation_id)
        .first()
    )
    if rec is None:
        raise NotFoundError("Recommendation", recommendation_id)
    return rec


def get_grouped_recommendations(db: Session, user_id: UUID, project_id: UUID) -> Dict[str, Any]:
    """{"recommendations": [...], "grouped": {"high": [...], ...}, "total": n}"""
    recommendations = list_recommendations(db, user_id, project_id)
    grouped = {p.value: [] for p in RecommendationPriority}
    for rec in recommendations:
        grouped[rec.priority.value].append(rec)
    return {"recommendations": recommendations, "grouped": grouped, "total": len(recommendations)}
