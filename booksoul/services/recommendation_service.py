"""
Recommendation Service - five-stage pipeline orchestrator

Runs the fixed, strictly sequential pipeline:

    availability check → Profiler → Curator → Filter → Evaluator → Presenter → cache

Error policy:
- LLM unavailable (no credential) → LLMUnavailableError before any stage runs
- Completion failure after retries → LLMServiceError subclass, run aborted
- Curator produced nothing → RecommendationPipelineError
- Unparsable LLM output, empty filter result and per-candidate failures are
  recovered inside the stages; the caller always gets >= 1 recommendation.

"Optimized" and "standard" pipelines differ only in cache TTL and the
reported pipeline type; agents never run in parallel.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from booksoul.agents.recommendation import (
    analyze_profile,
    evaluate_matches,
    filter_books,
    generate_book_candidates,
    present_recommendations,
)
from booksoul.config import settings
from booksoul.db.client import get_service_role_client
from booksoul.schemas.recommendations import FinalRecommendation
from booksoul.schemas.sessions import SurveySession
from booksoul.schemas.survey import SurveyInput
from booksoul.services.llm_client import CompletionClient, LLMUnavailableError
from booksoul.services.recommendation_cache import (
    RecommendationCache,
    build_cache_key,
)
from booksoul.services.session_service import SessionStore

logger = logging.getLogger(__name__)

PIPELINE_AGENTS = ["Profiler", "Curator", "Filter", "Evaluator", "Presenter"]
AI_CALLS_PER_RUN = 2
RESPONSE_TIME_WINDOW = 100
MIN_RATINGS_FOR_TOP_BOOKS = 3


class RecommendationPipelineError(Exception):
    """The pipeline could not produce any candidate."""


@dataclass
class GenerationResult:
    """Outcome of one generate() call."""
    recommendations: List[FinalRecommendation]
    session_id: str
    agents_used: List[str] = field(default_factory=list)
    processing_time_ms: int = 0
    cached: bool = False


class RecommendationOrchestrator:
    """
    Composes the pipeline stages with the completion client, cache and
    session store.

    Args:
        llm_client: Completion client shared by Profiler and Curator
        session_store: Where finished runs and ratings are persisted
        cache: Recommendation cache (injected so tests control size/TTL)
        use_optimizations: Reported pipeline variant
    """

    def __init__(
        self,
        llm_client: CompletionClient,
        session_store: SessionStore,
        cache: Optional[RecommendationCache[List[FinalRecommendation]]] = None,
        use_optimizations: bool = False,
    ):
        self.llm_client = llm_client
        self.session_store = session_store
        self.cache: RecommendationCache[List[FinalRecommendation]] = cache or RecommendationCache()
        self.use_optimizations = use_optimizations
        self.last_used_agents: List[str] = []
        self.total_requests = 0
        self._response_times: Deque[int] = deque(maxlen=RESPONSE_TIME_WINDOW)

    @property
    def pipeline_type(self) -> str:
        return "AI_ONLY_OPTIMIZED" if self.use_optimizations else "AI_ONLY_STANDARD"

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def _run_pipeline(self, survey: SurveyInput, agents: List[str]) -> List[FinalRecommendation]:
        agents.append("Profiler")
        profile = await analyze_profile(survey, self.llm_client)

        agents.append("Curator")
        candidates = await generate_book_candidates(profile, survey, self.llm_client)
        if not candidates:
            raise RecommendationPipelineError("AI failed to generate any book recommendations")

        agents.append("Filter")
        filtered = filter_books(candidates, survey)
        if not filtered:
            logger.warning("All books were filtered out, using unfiltered results")
            filtered = candidates

        agents.append("Evaluator")
        evaluated = evaluate_matches(filtered, profile, survey)

        agents.append("Presenter")
        return present_recommendations(evaluated, profile, survey)

    async def recommend(self, survey: SurveyInput) -> List[FinalRecommendation]:
        """Run the pipeline (or serve a cached result) for a survey."""
        recommendations, _, _ = await self._recommend(survey)
        return recommendations

    async def _recommend(self, survey: SurveyInput) -> Tuple[List[FinalRecommendation], bool, List[str]]:
        """
        Return (recommendations, served_from_cache, agents_used).

        Raises:
            LLMUnavailableError: No Gemini credential configured
            LLMServiceError: Completion failed after retries
            RecommendationPipelineError: Curator produced no candidates
        """
        start = time.monotonic()
        self.total_requests += 1
        cache_key = build_cache_key(survey)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached recommendations")
            self._record_time(start)
            return cached, True, []

        if not self.llm_client.is_available():
            logger.error("AI models unavailable, aborting before pipeline start")
            raise LLMUnavailableError()

        pipeline = "OPTIMIZED" if self.use_optimizations else "STANDARD"
        logger.info(f"Starting {pipeline} recommendation pipeline (mode={survey.survey_mode})")

        agents: List[str] = []
        self.last_used_agents = agents
        try:
            recommendations = await self._run_pipeline(survey, agents)
        except Exception:
            elapsed = int((time.monotonic() - start) * 1000)
            logger.error(
                f"{pipeline} pipeline failed after {elapsed}ms "
                f"(agents: {', '.join(agents)})"
            )
            raise

        elapsed = self._record_time(start)
        logger.info(
            f"{pipeline} pipeline complete in {elapsed}ms: "
            f"{len(recommendations)} recommendations from {len(agents)} agents"
        )

        self.cache.set(cache_key, recommendations)
        return recommendations, False, agents

    async def generate(self, survey: SurveyInput) -> GenerationResult:
        """Run recommend() and persist a session for the result."""
        start = time.monotonic()
        recommendations, cached, agents = await self._recommend(survey)

        session = await self.session_store.create_session(
            survey,
            recommendations,
            user_email=survey.user_email,
        )

        return GenerationResult(
            recommendations=recommendations,
            session_id=session.id,
            agents_used=list(agents),
            processing_time_ms=int((time.monotonic() - start) * 1000),
            cached=cached,
        )

    def _record_time(self, start: float) -> int:
        elapsed = int((time.monotonic() - start) * 1000)
        self._response_times.append(elapsed)
        return elapsed

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def submit_rating(self, session_id: str, book_id: str, rating: int) -> bool:
        return await self.session_store.submit_rating(session_id, book_id, rating)

    async def get_session(self, session_id: str) -> Optional[SurveySession]:
        return await self.session_store.get_session(session_id)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def system_status(self) -> Dict[str, bool]:
        """AI availability is critical; the database can fall back to memory."""
        ai_available = self.llm_client.is_available()
        return {
            "ai": ai_available,
            "database": not self.session_store.uses_in_memory_storage,
            "overall": ai_available,
        }

    def clear_caches(self) -> None:
        self.cache.clear()
        self._response_times.clear()
        logger.info("All caches cleared")

    def performance_metrics(self) -> Dict[str, Any]:
        stats = self.cache.stats()
        times = list(self._response_times)
        return {
            "cache_size": stats["size"],
            "cache_hits": stats["hits"],
            "cache_misses": stats["misses"],
            "cache_hit_rate": stats["hit_rate"],
            "total_requests": self.total_requests,
            "average_response_time_ms": int(sum(times) / len(times)) if times else 0,
            "pipeline_type": self.pipeline_type,
        }

    def pipeline_description(self) -> Dict[str, Any]:
        variant = "Optimized" if self.use_optimizations else "Standard"
        return {
            "type": self.pipeline_type,
            "agents": list(PIPELINE_AGENTS),
            "ai_calls": AI_CALLS_PER_RUN,
            "description": f"{variant} pipeline with AI-generated complete recommendations",
        }

    def generate_insights(
        self,
        analytics: Dict[str, Any],
        book_ratings: Dict[str, Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        insights: List[Dict[str, Any]] = []
        total_sessions = analytics["total_sessions"]

        mode_performance = sorted(
            (
                {
                    "mode": mode,
                    "count": count,
                    "percentage": round(count / total_sessions * 100, 1) if total_sessions else 0.0,
                }
                for mode, count in analytics["sessions_by_mode"].items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )
        top_mode = mode_performance[0] if mode_performance else {"mode": "quick", "percentage": 0.0}
        insights.append({
            "type": "mode_popularity",
            "data": mode_performance,
            "message": f"{top_mode['mode']} mode is most popular ({top_mode['percentage']:.1f}%)",
        })

        distribution = analytics["ratings_distribution"]
        total_ratings = sum(distribution.values())
        if total_ratings > 0:
            positive = distribution.get("2", 0) / total_ratings * 100
            insights.append({
                "type": "satisfaction",
                "data": distribution,
                "message": f"{positive:.1f}% of ratings are positive (rating 2)",
            })

        top_books = sorted(
            (book for book in book_ratings.values() if book["total_ratings"] >= MIN_RATINGS_FOR_TOP_BOOKS),
            key=lambda book: book["average_rating"],
            reverse=True,
        )[:5]
        if top_books:
            insights.append({
                "type": "top_books",
                "data": top_books,
                "message": f"\"{top_books[0]['title']}\" has the highest average rating ({top_books[0]['average_rating']:.2f})",
            })

        variant = "optimized" if self.use_optimizations else "standard"
        insights.append({
            "type": "pipeline_performance",
            "data": {"type": self.pipeline_type, "ai_calls": AI_CALLS_PER_RUN},
            "message": f"Using {variant} AI-only pipeline with {AI_CALLS_PER_RUN} AI calls per recommendation",
        })
        return insights

    async def analytics(self) -> Dict[str, Any]:
        """Session analytics, per-book ratings, insights and pipeline description."""
        session_analytics = await self.session_store.get_analytics()
        book_ratings = await self.session_store.get_ratings_by_book()
        return {
            **session_analytics,
            "book_performance": book_ratings,
            "insights": self.generate_insights(session_analytics, book_ratings),
            "pipeline": self.pipeline_description(),
        }


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_orchestrator: Optional[RecommendationOrchestrator] = None


def build_orchestrator() -> RecommendationOrchestrator:
    """Build an orchestrator wired from settings."""
    return RecommendationOrchestrator(
        llm_client=CompletionClient(),
        session_store=SessionStore(get_service_role_client()),
        cache=RecommendationCache(
            max_size=settings.CACHE_MAX_SIZE,
            ttl_seconds=settings.cache_ttl,
        ),
        use_optimizations=settings.USE_OPTIMIZATIONS,
    )


def get_orchestrator() -> RecommendationOrchestrator:
    """
    FastAPI dependency returning the lazily-built process-wide orchestrator.

    Tests override it with app.dependency_overrides.
    """
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = build_orchestrator()
        logger.info(f"Recommendation orchestrator initialized ({_orchestrator.pipeline_type})")
    return _orchestrator
