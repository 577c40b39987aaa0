"""
Pytest configuration for BookSoul backend tests.

Sets up test environment and global fixtures.
"""
import os
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")
# Empty Supabase credentials keep sessions in memory unless a test injects a client
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""

from booksoul.schemas.recommendations import UserProfile  # noqa: E402
from booksoul.schemas.survey import SurveyInput  # noqa: E402
from booksoul.services.llm_client import LLMServiceError  # noqa: E402


class FakeCompletionClient:
    """
    Stand-in for CompletionClient returning scripted responses in order.

    Items in `responses` may be strings (returned) or exceptions (raised).
    """

    def __init__(self, responses: Optional[List[object]] = None, available: bool = True):
        self.responses = list(responses or [])
        self.available = available
        self.calls: List[dict] = []

    def is_available(self) -> bool:
        return self.available

    async def complete(self, prompt: str, **kwargs) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        if not self.responses:
            raise LLMServiceError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response  # type: ignore[return-value]


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client for testing the session store.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    mock_client = MagicMock()
    return mock_client


@pytest.fixture
def quick_survey() -> SurveyInput:
    return SurveyInput(
        survey_mode="quick",
        favorite_genres=["fiction", "mystery"],
        current_mood="curious",
        reading_goal="entertain",
        action_pace="moderate",
        data_consent=True,
    )


@pytest.fixture
def deep_survey() -> SurveyInput:
    return SurveyInput(
        survey_mode="deep",
        favorite_genres=["literary fiction"],
        current_mood="tired",
        reading_goal="relax",
        stress_level="high",
        complexity_tolerance="low",
        book_length="short",
        data_consent=True,
    )


@pytest.fixture
def cinema_survey() -> SurveyInput:
    return SurveyInput(
        survey_mode="cinema",
        favorite_films=["Inception", "Interstellar"],
        film_connection="mind-bending plots",
        data_consent=True,
    )


@pytest.fixture
def polish_cinema_survey() -> SurveyInput:
    return SurveyInput(
        survey_mode="cinema",
        favorite_films=["Ida", "Zimna wojna"],
        film_connection="Piękne zdjęcia i cisza, która mówi więcej niż słowa",
        data_consent=True,
    )


@pytest.fixture
def inspiration_survey() -> SurveyInput:
    return SurveyInput(
        survey_mode="bookInspiration",
        favorite_books=[
            {"title": "Stoner", "reason": "a quiet life told with dignity"},
        ],
        data_consent=True,
    )


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        emotional_state="curious",
        cognitive_style="analytical",
        personality_traits=["curious", "open-minded"],
        reading_motivation="entertainment",
        confidence=0.8,
        survey_mode="quick",
        generated_at="2025-01-01T00:00:00+00:00",
    )


@pytest.fixture
def fake_llm():
    """Factory for scripted completion clients."""
    def _make(*responses, available: bool = True) -> FakeCompletionClient:
        return FakeCompletionClient(list(responses), available=available)
    return _make
