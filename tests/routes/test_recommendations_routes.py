"""
Tests for the /recommendations, /sessions and /health endpoints.

The orchestrator dependency is overridden with one built around a scripted
completion client and an in-memory session store.
"""

import json

import pytest
from fastapi.testclient import TestClient

from booksoul.main import app
from booksoul.services.llm_client import LLMQuotaExceededError, LLMTimeoutError
from booksoul.services.recommendation_cache import RecommendationCache
from booksoul.services.recommendation_service import (
    RecommendationOrchestrator,
    get_orchestrator,
)
from booksoul.services.session_service import SessionStore

PROFILE_JSON = json.dumps({"emotionalState": "curious", "cognitiveStyle": "analytical"})
BOOKS_JSON = json.dumps([
    {"title": f"Book {i}", "author": "Author", "description": "A calm story.", "matchScore": 90 - i}
    for i in range(5)
])

QUICK_SURVEY = {
    "survey_mode": "quick",
    "favorite_genres": ["fiction"],
    "current_mood": "curious",
    "reading_goal": "entertain",
    "data_consent": True,
}


@pytest.fixture
def client():
    """Create test client for FastAPI app."""
    return TestClient(app)


@pytest.fixture
def orchestrator_factory(fake_llm):
    """Install an orchestrator built around scripted LLM responses."""
    def _install(*responses, available=True):
        orchestrator = RecommendationOrchestrator(
            llm_client=fake_llm(*responses, available=available),
            session_store=SessionStore(None),
            cache=RecommendationCache(),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return orchestrator

    yield _install

    # Clean up after test
    app.dependency_overrides.clear()


# ============================================================================
# HEALTH
# ============================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "booksoul-backend"}


# ============================================================================
# GENERATE
# ============================================================================

def test_generate_success(client, orchestrator_factory):
    orchestrator_factory(PROFILE_JSON, BOOKS_JSON)

    response = client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY})

    assert response.status_code == 200
    data = response.json()
    assert len(data["recommendations"]) == 3
    assert data["session_id"].startswith("mem_")
    assert data["metadata"]["mode"] == "quick"
    assert data["metadata"]["agents_used"] == ["Profiler", "Curator", "Filter", "Evaluator", "Presenter"]
    first = data["recommendations"][0]
    assert first["title"] == "Book 0"
    assert set(first["purchase_links"]) == {"amazon", "empik", "tania_ksiazka"}


def test_generate_without_consent_returns_400(client, orchestrator_factory):
    orchestrator = orchestrator_factory(PROFILE_JSON, BOOKS_JSON)

    response = client.post(
        "/recommendations/generate",
        json={"survey_data": {**QUICK_SURVEY, "data_consent": False}},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "consent_required"
    assert orchestrator.total_requests == 0


def test_generate_invalid_survey_returns_422(client, orchestrator_factory):
    orchestrator_factory()

    response = client.post(
        "/recommendations/generate",
        json={"survey_data": {"survey_mode": "cinema", "favorite_films": ["Only one"], "data_consent": True}},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_generate_unavailable_llm_returns_503(client, orchestrator_factory):
    orchestrator_factory(available=False)

    response = client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY})

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "service_unavailable"


@pytest.mark.parametrize("error,status_code,kind", [
    (LLMQuotaExceededError(), 429, "quota_exceeded"),
    (LLMTimeoutError(), 503, "timeout"),
])
def test_generate_llm_failure_mapped_to_status(client, orchestrator_factory, error, status_code, kind):
    orchestrator_factory(error)

    response = client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY})

    assert response.status_code == status_code
    detail = response.json()["detail"]
    assert detail["error"] == kind
    assert detail["details"] == error.message


# ============================================================================
# DIAGNOSTICS
# ============================================================================

def test_status_endpoint(client, orchestrator_factory):
    orchestrator_factory()

    data = client.get("/recommendations/status").json()

    assert data["status"] == "available"
    assert data["ai_models"] == "available"
    assert data["database"] == "in-memory fallback"


def test_performance_and_clear_cache(client, orchestrator_factory):
    orchestrator_factory(PROFILE_JSON, BOOKS_JSON)
    client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY})

    assert client.get("/recommendations/performance").json()["cache_size"] == 1

    response = client.post("/recommendations/clear-cache")
    assert response.status_code == 200
    assert client.get("/recommendations/performance").json()["cache_size"] == 0


def test_analytics_endpoint(client, orchestrator_factory):
    orchestrator_factory(PROFILE_JSON, BOOKS_JSON)
    client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY})

    data = client.get("/recommendations/analytics").json()

    assert data["total_sessions"] == 1
    assert data["sessions_by_mode"] == {"quick": 1}
    assert data["pipeline"]["type"] == "AI_ONLY_STANDARD"


# ============================================================================
# SESSIONS
# ============================================================================

def test_rate_and_fetch_session(client, orchestrator_factory):
    orchestrator_factory(PROFILE_JSON, BOOKS_JSON)
    generated = client.post("/recommendations/generate", json={"survey_data": QUICK_SURVEY}).json()
    session_id = generated["session_id"]
    book_id = generated["recommendations"][0]["id"]

    response = client.post("/sessions/rating", json={"session_id": session_id, "book_id": book_id, "rating": 2})
    assert response.status_code == 200
    assert response.json()["status"] == "RECORDED"

    session = client.get(f"/sessions/{session_id}").json()
    assert session["user_ratings"] == {book_id: 2}

    analytics = client.get("/sessions/analytics").json()
    assert analytics["ratings_distribution"]["2"] == 1


def test_rating_out_of_range_returns_422(client, orchestrator_factory):
    orchestrator_factory()

    response = client.post("/sessions/rating", json={"session_id": "mem_1", "book_id": "b", "rating": 5})

    assert response.status_code == 422


def test_rating_unknown_session_returns_404(client, orchestrator_factory):
    orchestrator_factory()

    response = client.post("/sessions/rating", json={"session_id": "mem_missing", "book_id": "b", "rating": 1})

    assert response.status_code == 404


def test_unknown_session_returns_404(client, orchestrator_factory):
    orchestrator_factory()

    assert client.get("/sessions/mem_missing").status_code == 404
