"""
Survey session endpoints.

Sessions are created by POST /recommendations/generate; these routes let
the reader rate recommended books and expose the stored sessions.

Endpoints:
- POST /sessions/rating: Rate one book of a session (0, 1 or 2)
- GET /sessions/analytics: Aggregates over every stored session
- GET /sessions/{session_id}: One stored session
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from booksoul.schemas.sessions import (
    RatingRequest,
    RatingResponse,
    SessionAnalyticsResponse,
    SurveySession,
)
from booksoul.services.recommendation_service import (
    RecommendationOrchestrator,
    get_orchestrator,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

Orchestrator = Annotated[RecommendationOrchestrator, Depends(get_orchestrator)]


@router.post(
    "/rating",
    response_model=RatingResponse,
    status_code=status.HTTP_200_OK,
    summary="Rate a recommended book",
    description="""
    Records the reader's rating for one book of a session.

    **Ratings:** 0 = not for me, 1 = okay, 2 = perfect match.
    Any other value is rejected with 422; an unknown session returns 404.
    """
)
async def submit_rating(
    request: RatingRequest,
    orchestrator: Orchestrator,
) -> RatingResponse:
    logger.info(f"POST /sessions/rating (session={request.session_id}, rating={request.rating})")

    try:
        recorded = await orchestrator.submit_rating(
            request.session_id,
            request.book_id,
            request.rating,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "invalid_rating",
                "details": str(e),
            }
        )

    if not recorded:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "not_found",
                "details": "Session not found",
            }
        )

    return RatingResponse()


@router.get(
    "/analytics",
    response_model=SessionAnalyticsResponse,
    status_code=status.HTTP_200_OK,
    summary="Session analytics",
)
async def get_session_analytics(orchestrator: Orchestrator) -> SessionAnalyticsResponse:
    analytics = await orchestrator.session_store.get_analytics()
    return SessionAnalyticsResponse.model_validate(analytics)


@router.get(
    "/{session_id}",
    response_model=SurveySession,
    status_code=status.HTTP_200_OK,
    summary="Get a survey session",
)
async def get_session(
    session_id: Annotated[str, Path(description="Session id (UUID or mem_ id)")],
    orchestrator: Orchestrator,
) -> SurveySession:
    session = await orchestrator.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "not_found",
                "details": "Session not found",
            }
        )
    return session
