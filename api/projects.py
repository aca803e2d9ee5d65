"""
API Endpoints for Projects

Handles:
1. Project CRUD (owner-scoped)
2. Scraping target and competitor URLs
3. Query enhancement and AI answer generation
4. Coverage analysis and recommendations
5. Recommendation drafting and answer simulation
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from api.dependencies import get_geo_service
from geospy.auth.dependencies import get_current_user
from geospy.auth.models import User
from geospy.database.models import (
    AIAnswer,
    AnalysisResult,
    Project,
    Recommendation,
    ScrapedContent,
    TrackedURL,
)
from geospy.services.geo import GeoService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/projects",
    tags=["Projects"],
    dependencies=[Depends(get_current_user)],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CreateProjectRequest(BaseModel):
    """Request to create a project."""
    name: str = Field(..., min_length=1, max_length=255)
    target_topic: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_urls: List[str] = Field(default_factory=list)
    competitor_urls: List[str] = Field(default_factory=list)


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    target_topic: Optional[str] = Field(default=None, min_length=1)


class EnhanceQueryRequest(BaseModel):
    query: str = ""


class GenerateAnswerRequest(BaseModel):
    """One or more questions to send to the generative model."""
    queries: List[str] = Field(default_factory=list)
    enhance: bool = False


class AnalyzeRequest(BaseModel):
    ai_answer_id: Optional[UUID] = Field(
        default=None,
        description="Answer to analyze against; defaults to the latest answer",
    )


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class ProjectResponse(BaseModel):
    """Single project response."""
    id: str
    name: str
    description: Optional[str] = None
    target_topic: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    total: int


class ScrapeSummary(BaseModel):
    """Latest scrape of one URL."""
    status: str
    word_count: int = 0
    h1_count: int = 0
    h2_count: int = 0
    h3_count: int = 0
    error_message: Optional[str] = None
    scraped_at: Optional[datetime] = None


class TrackedURLResponse(BaseModel):
    id: str
    url: str
    role: str
    domain: Optional[str] = None
    latest_scrape: Optional[ScrapeSummary] = None


class AIAnswerResponse(BaseModel):
    """Stored AI answer."""
    id: str
    query: str
    raw_answer: str
    answer_format: str
    key_concepts: List[str] = []
    entities: List[str] = []
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None


class AnalysisResponse(BaseModel):
    """Stored coverage analysis."""
    id: str
    ai_answer_id: str
    topics_present: List[str] = []
    topics_missing: List[str] = []
    topics_weak: List[str] = []
    structural_patterns: Dict[str, Any] = {}
    content_depth_score: int = 0
    competitor_coverage: Dict[str, Any] = {}
    analyzed_at: Optional[datetime] = None


class ProjectDetailResponse(ProjectResponse):
    """Project with URLs, answers and the latest analysis."""
    urls: List[TrackedURLResponse] = []
    answers: List[AIAnswerResponse] = []
    latest_analysis: Optional[AnalysisResponse] = None


class RecommendationResponse(BaseModel):
    id: str
    analysis_id: str
    priority: str
    category: str
    title: str
    description: Optional[str] = None
    action_items: List[Dict[str, Any]] = []
    expected_impact: Optional[str] = None
    created_at: Optional[datetime] = None


class ScrapeResponse(BaseModel):
    results: List[Dict[str, Any]]
    summary: Dict[str, int]


class EnhanceQueryResponse(BaseModel):
    enhanced_query: Optional[str] = None


class AnswerResult(BaseModel):
    """Outcome of one query in a generation batch."""
    query: str
    success: bool
    answer: Optional[AIAnswerResponse] = None
    error: Optional[str] = None


class GenerateAnswerResponse(BaseModel):
    results: List[AnswerResult]
    summary: Dict[str, int]


class AnalyzeResponse(BaseModel):
    analysis: AnalysisResponse
    recommendations: List[RecommendationResponse]


class AnalysisListResponse(BaseModel):
    analyses: List[AnalysisResponse]
    total: int


class RecommendationListResponse(BaseModel):
    recommendations: List[RecommendationResponse]
    grouped: Dict[str, List[RecommendationResponse]]
    total: int


class DraftResponse(BaseModel):
    draft: str


class SimulateResponse(BaseModel):
    original: str
    simulated: str


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=str(project.id),
        name=project.name,
        description=project.description,
        target_topic=project.target_topic,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def url_to_response(url: TrackedURL, scraped: Optional[ScrapedContent] = None) -> TrackedURLResponse:
    latest = None
    if scraped is not None:
        latest = ScrapeSummary(
            status=scraped.status.value,
            word_count=scraped.word_count or 0,
            h1_count=len(scraped.h1_tags or []),
            h2_count=len(scraped.h2_tags or []),
            h3_count=len(scraped.h3_tags or []),
            error_message=scraped.error_message,
            scraped_at=scraped.scraped_at,
        )
    return TrackedURLResponse(
        id=str(url.id),
        url=url.url,
        role=url.role.value,
        domain=url.domain,
        latest_scrape=latest,
    )


def answer_to_response(answer: AIAnswer) -> AIAnswerResponse:
    return AIAnswerResponse(
        id=str(answer.id),
        query=answer.query,
        raw_answer=answer.raw_answer,
        answer_format=answer.answer_format.value,
        key_concepts=answer.key_concepts or [],
        entities=answer.entities or [],
        metadata=answer.answer_metadata or {},
        created_at=answer.created_at,
    )


def analysis_to_response(analysis: AnalysisResult) -> AnalysisResponse:
    return AnalysisResponse(
        id=str(analysis.id),
        ai_answer_id=str(analysis.ai_answer_id),
        topics_present=analysis.topics_present or [],
        topics_missing=analysis.topics_missing or [],
        topics_weak=analysis.topics_weak or [],
        structural_patterns=analysis.structural_patterns or {},
        content_depth_score=analysis.content_depth_score or 0,
        competitor_coverage=analysis.competitor_coverage or {},
        analyzed_at=analysis.analyzed_at,
    )


def recommendation_to_response(rec: Recommendation) -> RecommendationResponse:
    return RecommendationResponse(
        id=str(rec.id),
        analysis_id=str(rec.analysis_id),
        priority=rec.priority.value,
        category=rec.category.value,
        title=rec.title,
        description=rec.description,
        action_items=rec.action_items or [],
        expected_impact=rec.expected_impact,
        created_at=rec.created_at,
    )


# =============================================================================
# PROJECT ENDPOINTS
# =============================================================================

@router.get("", response_model=ProjectListResponse)
async def list_projects(
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """List the current user's projects, newest first."""
    projects = service.list_projects(current_user.id)
    return ProjectListResponse(
        projects=[project_to_response(p) for p in projects],
        total=len(projects),
    )


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    request: CreateProjectRequest,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Create a project with its target and competitor URLs."""
    project = service.create_project(
        current_user.id,
        name=request.name,
        target_topic=request.target_topic,
        target_urls=request.target_urls,
        competitor_urls=request.competitor_urls,
        description=request.description,
    )
    logger.info(f"Created project {project.id} for user {current_user.id}")
    return project_to_response(project)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    detail = service.project_detail(current_user.id, project_id)
    base = project_to_response(detail["project"])
    latest = detail["latest_analysis"]

    return ProjectDetailResponse(
        **base.model_dump(),
        urls=[url_to_response(url, scraped) for url, scraped in detail["urls"]],
        answers=[answer_to_response(a) for a in detail["answers"]],
        latest_analysis=analysis_to_response(latest) if latest else None,
    )


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    request: UpdateProjectRequest,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    fields = request.model_dump(exclude_unset=True)
    project = service.update_project(current_user.id, project_id, **fields)
    return project_to_response(project)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Delete a project and everything recorded for it."""
    service.delete_project(current_user.id, project_id)
    logger.info(f"Deleted project {project_id}")
    return Response(status_code=204)


# =============================================================================
# PIPELINE ENDPOINTS
# =============================================================================

@router.post("/{project_id}/scrape", response_model=ScrapeResponse)
async def scrape_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Scrape every URL of the project; per-URL failures are reported, not raised."""
    batch = await service.scrape_project(current_user.id, project_id)
    return ScrapeResponse(
        results=[outcome.to_dict() for outcome in batch.outcomes],
        summary=batch.summary(),
    )


@router.post("/{project_id}/enhance-query", response_model=EnhanceQueryResponse)
async def enhance_query(
    project_id: UUID,
    request: EnhanceQueryRequest,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    enhanced = await service.enhance_query(current_user.id, project_id, request.query)
    return EnhanceQueryResponse(enhanced_query=enhanced)


@router.post("/{project_id}/generate-answer", response_model=GenerateAnswerResponse)
async def generate_answer(
    project_id: UUID,
    request: GenerateAnswerRequest,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Generate and store one AI answer per query."""
    pairs = await service.generate_answers(
        current_user.id, project_id, request.queries, enhance=request.enhance
    )

    results = []
    for outcome, row in pairs:
        results.append(AnswerResult(
            query=outcome.query,
            success=row is not None,
            answer=answer_to_response(row) if row is not None else None,
            error=outcome.error,
        ))

    succeeded = sum(1 for r in results if r.success)
    return GenerateAnswerResponse(
        results=results,
        summary={"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded},
    )


@router.post("/{project_id}/analyze", response_model=AnalyzeResponse)
async def analyze_project(
    project_id: UUID,
    request: Optional[AnalyzeRequest] = None,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Compare the project's pages with an AI answer and store recommendations."""
    ai_answer_id = request.ai_answer_id if request else None
    analysis, recommendations = await service.analyze_project(
        current_user.id, project_id, ai_answer_id
    )
    return AnalyzeResponse(
        analysis=analysis_to_response(analysis),
        recommendations=[recommendation_to_response(r) for r in recommendations],
    )


@router.get("/{project_id}/analyses", response_model=AnalysisListResponse)
async def list_analyses(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    analyses = service.list_analyses(current_user.id, project_id)
    return AnalysisListResponse(
        analyses=[analysis_to_response(a) for a in analyses],
        total=len(analyses),
    )


@router.get("/{project_id}/recommendations", response_model=RecommendationListResponse)
async def list_recommendations(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    result = service.list_recommendations(current_user.id, project_id)
    return RecommendationListResponse(
        recommendations=[recommendation_to_response(r) for r in result["recommendations"]],
        grouped={
            priority: [recommendation_to_response(r) for r in recs]
            for priority, recs in result["grouped"].items()
        },
        total=result["total"],
    )


@router.post("/{project_id}/recommendations/{recommendation_id}/draft", response_model=DraftResponse)
async def draft_recommendation(
    project_id: UUID,
    recommendation_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Draft a markdown section that implements one recommendation."""
    draft = await service.draft_recommendation(current_user.id, project_id, recommendation_id)
    if not draft.strip():
        raise HTTPException(status_code=502, detail="Empty draft returned")
    return DraftResponse(draft=draft)


@router.post("/{project_id}/simulate", response_model=SimulateResponse)
async def simulate_answer(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
):
    """Re-ask the latest query as if the top recommendations were implemented."""
    result = await service.simulate_answer(current_user.id, project_id)
    return SimulateResponse(**result)
