"""
Pydantic schemas for the recommendation pipeline and its endpoints.

These models define the strict records that flow between pipeline stages
(UserProfile, BookCandidate, FinalRecommendation) and the request/response
contracts of the /recommendations endpoints.

LLM output never deserializes straight into these types: the parser builds
them field by field through normalize_book() so the invariants below hold
from construction onwards.

Invariants:
- 70 <= match_score <= 98
- 150 <= page_count <= 800
- 1950 <= publication_year <= current year
- complexity in {low, medium, high}, emotional_tone in {light, medium, heavy}
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from booksoul.schemas.survey import SurveyInput, SurveyMode

EmotionalTone = Literal["light", "medium", "heavy"]
Complexity = Literal["low", "medium", "high"]
Level = Literal["low", "medium", "high"]


# ============================================================================
# PIPELINE RECORDS
# ============================================================================

class UserProfile(BaseModel):
    """
    Psychological reading profile derived from the survey by the Profiler.

    Created once per request and never mutated.
    """
    model_config = ConfigDict(frozen=True)

    emotional_state: str
    cognitive_style: str
    personality_traits: List[str] = Field(default_factory=list)
    reading_motivation: str
    therapeutic_needs: str = "moderate"
    preferred_narrative_style: str = "balanced"
    complexity_level: Level = "medium"
    emotional_tolerance: Level = "medium"
    confidence: float = Field(..., ge=0.0, le=1.0)
    survey_mode: SurveyMode
    generated_at: str
    source: Literal["ai", "fallback"] = "ai"


class PsychologicalMatch(BaseModel):
    """Why a book fits the reader, in four short statements."""
    mood_alignment: str
    cognitive_match: str
    therapeutic_value: str
    personality_fit: str

    def is_complete(self) -> bool:
        return all(
            isinstance(value, str) and value.strip()
            for value in (
                self.mood_alignment,
                self.cognitive_match,
                self.therapeutic_value,
                self.personality_fit,
            )
        )


class PurchaseLinks(BaseModel):
    """Retailer search URLs for a book."""
    amazon: str
    empik: str
    tania_ksiazka: str


class BookDetails(BaseModel):
    """Localized display block shown on the recommendation card."""
    length: str = Field(..., examples=["Medium (320 pages)"])
    difficulty: str = Field(..., examples=["medium", "Umiarkowana"])
    format: List[str] = Field(default_factory=list)
    reading_time: str = Field(..., examples=["4-6 hours"])


class BookCandidate(BaseModel):
    """
    A book proposed by the Curator.

    Later stages enrich candidates with model_copy(update=...); fields are
    added or defaulted, never removed.
    """
    id: Optional[str] = None
    title: str
    author: str
    genres: List[str] = Field(default_factory=list)
    description: str
    personalized_description: str = ""
    match_reason: str = ""
    emotional_tone: EmotionalTone = "medium"
    complexity: Complexity = "medium"
    page_count: int = 300
    publication_year: Optional[int] = 2020
    themes: List[str] = Field(default_factory=list)
    match_score: int = 85
    matching_steps: List[str] = Field(default_factory=list)
    psychological_match: Optional[PsychologicalMatch] = None
    cover_url: Optional[str] = None
    purchase_links: Optional[PurchaseLinks] = None
    book_details: Optional[BookDetails] = None
    source: str = "ai_generated"
    confidence: float = 0.9


class FinalRecommendation(BookCandidate):
    """A BookCandidate with every display field guaranteed present."""
    id: str
    cover_url: str
    purchase_links: PurchaseLinks
    book_details: BookDetails
    psychological_match: PsychologicalMatch


# ============================================================================
# REQUEST MODELS
# ============================================================================

class GenerateRecommendationsRequest(BaseModel):
    """
    Request to run the recommendation pipeline for a filled survey.

    The survey is validated (mode rules, sanitisation) by SurveyInput;
    consent is checked by the endpoint.
    """
    survey_data: SurveyInput


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class RecommendationMetadata(BaseModel):
    """Diagnostics returned next to the recommendations."""
    mode: SurveyMode
    processing_time_ms: int
    timestamp: str
    agents_used: List[str]
    cached: bool = False
    optimized: bool = False


class GenerateRecommendationsResponse(BaseModel):
    """Successful pipeline run."""
    recommendations: List[FinalRecommendation]
    session_id: str
    metadata: RecommendationMetadata


class SystemStatusResponse(BaseModel):
    """Availability of the pipeline's collaborators."""
    status: Literal["available", "unavailable"]
    ai_models: Literal["available", "unavailable"]
    database: Literal["available", "in-memory fallback"]
    timestamp: str


class CacheClearResponse(BaseModel):
    message: str = "All caches cleared successfully"


class AnalyticsResponse(BaseModel):
    """Aggregated session/rating analytics plus pipeline description."""
    total_sessions: int
    sessions_by_mode: Dict[str, int]
    ratings_distribution: Dict[str, int]
    average_rating: float
    sessions_with_ratings: int
    book_performance: Dict[str, Dict[str, Any]]
    insights: List[Dict[str, Any]]
    pipeline: Dict[str, Any]


class PerformanceResponse(BaseModel):
    """Cache and timing metrics of the running orchestrator."""
    cache_size: int
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    total_requests: int
    average_response_time_ms: int
    pipeline_type: str
