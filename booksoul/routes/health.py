"""
Health check route for the BookSoul backend.

Public liveness probe for load balancers and deployment checks. It does
not call Gemini or Supabase; use GET /recommendations/status for that.
"""

from fastapi import APIRouter

from booksoul.schemas.health import HealthResponse
from booksoul.utils.logging import get_logger

logger = get_logger(__name__)

# Mounted at root level in main.py
router = APIRouter(tags=["system"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint",
    status_code=200,
)
async def health_check() -> HealthResponse:
    """
    Returns:
        HealthResponse: {"status": "ok", "service": "booksoul-backend"}
    """
    logger.debug("Health check endpoint called")
    return HealthResponse(status="ok")
