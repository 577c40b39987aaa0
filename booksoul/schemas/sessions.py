"""
Pydantic schemas for survey sessions and ratings.

A session is the persisted record of one survey submission: the raw survey,
the final recommendations and the reader's ternary ratings
(0 = not for me, 1 = okay, 2 = perfect match).
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Rating = Literal[0, 1, 2]
VALID_RATINGS = (0, 1, 2)


class SurveySession(BaseModel):
    """Row of the survey_sessions table (or its in-memory twin)."""
    id: str
    survey_mode: str
    survey_data: Dict[str, Any]
    recommendations: List[Dict[str, Any]] = Field(default_factory=list)
    user_ratings: Dict[str, int] = Field(default_factory=dict)
    user_email: Optional[str] = None
    created_at: str
    updated_at: str
    session_metadata: Dict[str, Any] = Field(default_factory=dict)


class RatingRequest(BaseModel):
    """Rating submitted from the recommendation card widget."""
    session_id: str = Field(..., min_length=1, max_length=200)
    book_id: str = Field(..., min_length=1, max_length=500)
    rating: Rating = Field(
        ...,
        description="0 = not for me, 1 = okay, 2 = perfect match",
        examples=[2],
    )


class RatingResponse(BaseModel):
    status: Literal["RECORDED"] = "RECORDED"
    message: str = "Rating submitted successfully"


class SessionAnalyticsResponse(BaseModel):
    """Aggregates over every stored session."""
    total_sessions: int
    sessions_by_mode: Dict[str, int]
    ratings_distribution: Dict[str, int]
    average_rating: float
    sessions_with_ratings: int
    recent_sessions: List[Dict[str, Any]] = Field(default_factory=list)
