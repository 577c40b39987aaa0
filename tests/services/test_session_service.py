"""
Tests for the survey session store.

Supabase is a MagicMock; its query chain is configured per test. Failures
are simulated with postgrest APIError and httpx errors.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from booksoul.agents.recommendation.parser import normalize_book
from booksoul.agents.recommendation.presenter import present_recommendations
from booksoul.services.session_service import (
    IN_MEMORY_PREFIX,
    SessionStore,
    calculate_analytics,
    calculate_book_ratings,
    validate_rating,
)


@pytest.fixture
def recommendations(quick_survey, profile):
    books = [normalize_book({"title": t, "author": "A", "description": "d"}) for t in ("Dune", "Emma")]
    return present_recommendations(books, profile, quick_survey)


def api_error():
    return APIError({"message": "boom", "code": "500", "hint": None, "details": None})


def row(**fields):
    data = {
        "id": "0b4e9a3c-0000-4000-8000-000000000001",
        "survey_mode": "quick",
        "survey_data": {"survey_mode": "quick"},
        "recommendations": [],
        "user_ratings": {},
        "user_email": None,
        "created_at": "2025-01-01T00:00:00+00:00",
        "updated_at": "2025-01-01T00:00:00+00:00",
        "session_metadata": {},
    }
    data.update(fields)
    return data


# ============================================================================
# IN-MEMORY
# ============================================================================

@pytest.mark.asyncio
async def test_in_memory_round_trip(quick_survey, recommendations):
    store = SessionStore(None)

    session = await store.create_session(quick_survey, recommendations, user_email="r@example.com")

    assert session.id.startswith(IN_MEMORY_PREFIX)
    assert session.user_email == "r@example.com"
    assert "user_email" not in session.survey_data
    assert await store.submit_rating(session.id, recommendations[0].id, 2) is True

    stored = await store.get_session(session.id)
    assert stored.user_ratings == {recommendations[0].id: 2}
    assert len(stored.recommendations) == 2


@pytest.mark.asyncio
async def test_rating_unknown_session_returns_false():
    store = SessionStore(None)

    assert await store.submit_rating("mem_missing", "book", 1) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [-1, 3, True, "2", 1.5])
async def test_invalid_rating_rejected(rating):
    store = SessionStore(None)

    with pytest.raises(ValueError):
        await store.submit_rating("mem_x", "book", rating)


def test_validate_rating_accepts_ternary_values():
    assert [validate_rating(r) for r in (0, 1, 2)] == [0, 1, 2]


@pytest.mark.asyncio
async def test_get_unknown_session_returns_none():
    assert await SessionStore(None).get_session("mem_nope") is None


# ============================================================================
# SUPABASE
# ============================================================================

@pytest.mark.asyncio
async def test_session_inserted_into_supabase(supabase_client, quick_survey, recommendations):
    supabase_client.table.return_value.insert.return_value.execute.return_value = MagicMock(
        data=[row(id="uuid-1")]
    )
    store = SessionStore(supabase_client)

    session = await store.create_session(quick_survey, recommendations)

    assert session.id == "uuid-1"
    supabase_client.table.assert_called_with("survey_sessions")
    inserted = supabase_client.table.return_value.insert.call_args.args[0]
    assert inserted["survey_mode"] == "quick"
    assert len(inserted["recommendations"]) == 2
    assert inserted["session_metadata"]["user_agent"] == "BookSoul-Web-App"


@pytest.mark.asyncio
async def test_book_inspiration_always_in_memory(supabase_client, inspiration_survey, recommendations):
    store = SessionStore(supabase_client)

    session = await store.create_session(inspiration_survey, recommendations)

    assert session.id.startswith(IN_MEMORY_PREFIX)
    supabase_client.table.assert_not_called()


@pytest.mark.asyncio
async def test_insert_failure_falls_back_to_memory(supabase_client, quick_survey, recommendations):
    supabase_client.table.return_value.insert.return_value.execute.side_effect = api_error()
    store = SessionStore(supabase_client)

    session = await store.create_session(quick_survey, recommendations)

    assert session.id.startswith(IN_MEMORY_PREFIX)
    assert await store.get_session(session.id) is not None


@pytest.mark.asyncio
async def test_rating_merged_into_existing_ratings(supabase_client):
    table = supabase_client.table.return_value
    table.select.return_value.eq.return_value.execute.return_value = MagicMock(
        data=[{"user_ratings": {"book-1": 0}}]
    )
    store = SessionStore(supabase_client)

    assert await store.submit_rating("uuid-1", "book-2", 2) is True

    update = table.update.call_args.args[0]
    assert update["user_ratings"] == {"book-1": 0, "book-2": 2}
    table.update.return_value.eq.assert_called_with("id", "uuid-1")


@pytest.mark.asyncio
async def test_rating_unknown_supabase_session_returns_false(supabase_client):
    supabase_client.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(data=[])
    store = SessionStore(supabase_client)

    assert await store.submit_rating("uuid-unknown", "book", 1) is False


@pytest.mark.asyncio
async def test_rating_network_failure_falls_back_to_memory(supabase_client):
    supabase_client.table.return_value.select.return_value.eq.return_value.execute.side_effect = httpx.ConnectError("down")
    store = SessionStore(supabase_client)

    assert await store.submit_rating("uuid-1", "book", 1) is False


@pytest.mark.asyncio
async def test_get_session_from_supabase(supabase_client):
    supabase_client.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(
        data=[row(id="uuid-7", user_ratings={"b": 1})]
    )
    store = SessionStore(supabase_client)

    session = await store.get_session("uuid-7")

    assert session.id == "uuid-7"
    assert session.user_ratings == {"b": 1}


# ============================================================================
# ANALYTICS
# ============================================================================

def test_calculate_analytics():
    rows = [
        row(id="1", survey_mode="quick", user_ratings={"a": 2, "b": 0}, created_at="2025-01-01"),
        row(id="2", survey_mode="cinema", user_ratings={}, created_at="2025-01-03"),
        row(id="3", survey_mode="quick", user_ratings={"c": 2}, created_at="2025-01-02"),
    ]

    analytics = calculate_analytics(rows)

    assert analytics["total_sessions"] == 3
    assert analytics["sessions_by_mode"] == {"quick": 2, "cinema": 1}
    assert analytics["ratings_distribution"] == {"0": 1, "1": 0, "2": 2}
    assert analytics["average_rating"] == round(4 / 3, 4)
    assert analytics["sessions_with_ratings"] == 2
    assert [s["id"] for s in analytics["recent_sessions"]] == ["2", "3", "1"]


def test_calculate_analytics_empty():
    analytics = calculate_analytics([])

    assert analytics["total_sessions"] == 0
    assert analytics["average_rating"] == 0.0


def test_calculate_book_ratings():
    rows = [
        row(recommendations=[{"id": "a", "title": "Dune", "author": "Herbert"}, {"id": "b", "title": "Emma", "author": "Austen"}],
            user_ratings={"a": 2}),
        row(recommendations=[{"id": "a", "title": "Dune", "author": "Herbert"}], user_ratings={"a": 1}),
    ]

    ratings = calculate_book_ratings(rows)

    assert list(ratings) == ["a"]
    assert ratings["a"]["ratings"] == [2, 1]
    assert ratings["a"]["average_rating"] == 1.5
    assert ratings["a"]["total_ratings"] == 2


@pytest.mark.asyncio
async def test_analytics_merge_supabase_and_memory(supabase_client, inspiration_survey, recommendations):
    supabase_client.table.return_value.select.return_value.execute.return_value = MagicMock(
        data=[row(id="uuid-1", survey_mode="quick", user_ratings={"x": 1})]
    )
    store = SessionStore(supabase_client)
    await store.create_session(inspiration_survey, recommendations)

    analytics = await store.get_analytics()

    assert analytics["total_sessions"] == 2
    assert analytics["sessions_by_mode"] == {"quick": 1, "bookInspiration": 1}


@pytest.mark.asyncio
async def test_analytics_survive_supabase_failure(supabase_client):
    supabase_client.table.return_value.select.return_value.execute.side_effect = api_error()
    store = SessionStore(supabase_client)

    analytics = await store.get_analytics()

    assert analytics["total_sessions"] == 0
