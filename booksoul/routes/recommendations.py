"""
FastAPI routes for the book recommendation pipeline.

The app is anonymous: no endpoint requires authentication. Consent to
store survey answers is checked per request.

Endpoints:
- POST /recommendations/generate: Run the five-stage pipeline for a survey
- GET /recommendations/status: AI / database availability
- GET /recommendations/analytics: Session analytics, book ratings, insights
- GET /recommendations/performance: Cache and timing metrics
- POST /recommendations/clear-cache: Drop cached recommendations
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from booksoul.schemas.recommendations import (
    AnalyticsResponse,
    CacheClearResponse,
    GenerateRecommendationsRequest,
    GenerateRecommendationsResponse,
    PerformanceResponse,
    RecommendationMetadata,
    SystemStatusResponse,
)
from booksoul.services.llm_client import LLMServiceError
from booksoul.services.recommendation_service import (
    RecommendationOrchestrator,
    RecommendationPipelineError,
    get_orchestrator,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])

Orchestrator = Annotated[RecommendationOrchestrator, Depends(get_orchestrator)]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post(
    "/generate",
    response_model=GenerateRecommendationsResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate book recommendations",
    description="""
    Runs the recommendation pipeline for a filled survey.

    **Pipeline:**
    Profiler (Gemini) → Curator (Gemini) → Filter → Evaluator → Presenter

    **Responses:**
    - 200: recommendations + session_id for rating
    - 400: data_consent not given
    - 422: survey does not satisfy its mode's required fields
    - 429 / 502 / 503: AI service failure (body names the failure kind)
    - 500: pipeline produced no candidates
    """
)
async def generate_recommendations(
    request: GenerateRecommendationsRequest,
    orchestrator: Orchestrator,
) -> GenerateRecommendationsResponse:
    survey = request.survey_data
    logger.info(f"POST /recommendations/generate (mode={survey.survey_mode})")

    if not survey.data_consent:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "consent_required",
                "details": "Data processing consent is required to generate recommendations",
            }
        )

    try:
        result = await orchestrator.generate(survey)

    except LLMServiceError as e:
        logger.error(f"AI service failure ({e.kind}): {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.kind,
                "details": e.message,
            }
        )
    except RecommendationPipelineError as e:
        logger.error(f"Recommendation pipeline failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "pipeline_error",
                "details": str(e),
            }
        )

    logger.info(
        f"Returning {len(result.recommendations)} recommendations "
        f"(session={result.session_id}, cached={result.cached})"
    )

    return GenerateRecommendationsResponse(
        recommendations=result.recommendations,
        session_id=result.session_id,
        metadata=RecommendationMetadata(
            mode=survey.survey_mode,
            processing_time_ms=result.processing_time_ms,
            timestamp=_timestamp(),
            agents_used=result.agents_used,
            cached=result.cached,
            optimized=orchestrator.use_optimizations,
        ),
    )


@router.get(
    "/status",
    response_model=SystemStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Recommendation system status",
)
async def get_system_status(orchestrator: Orchestrator) -> SystemStatusResponse:
    """AI availability decides overall status; the database may fall back to memory."""
    system = orchestrator.system_status()
    return SystemStatusResponse(
        status="available" if system["overall"] else "unavailable",
        ai_models="available" if system["ai"] else "unavailable",
        database="available" if system["database"] else "in-memory fallback",
        timestamp=_timestamp(),
    )


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    status_code=status.HTTP_200_OK,
    summary="Recommendation analytics",
)
async def get_analytics(orchestrator: Orchestrator) -> AnalyticsResponse:
    analytics = await orchestrator.analytics()
    return AnalyticsResponse.model_validate(analytics)


@router.get(
    "/performance",
    response_model=PerformanceResponse,
    status_code=status.HTTP_200_OK,
    summary="Cache and timing metrics",
)
async def get_performance(orchestrator: Orchestrator) -> PerformanceResponse:
    return PerformanceResponse.model_validate(orchestrator.performance_metrics())


@router.post(
    "/clear-cache",
    response_model=CacheClearResponse,
    status_code=status.HTTP_200_OK,
    summary="Clear cached recommendations",
)
async def clear_cache(orchestrator: Orchestrator) -> CacheClearResponse:
    orchestrator.clear_caches()
    return CacheClearResponse()
