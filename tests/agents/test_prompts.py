"""
Tests for the Profiler and Curator prompt builders.
"""

from booksoul.agents.recommendation.prompts import (
    NOT_SPECIFIED,
    build_curation_prompt,
    build_profile_prompt,
)
from booksoul.schemas.survey import SurveyInput


def test_profile_prompt_contains_quick_answers(quick_survey):
    prompt = build_profile_prompt(quick_survey)

    assert "Favorite Genres: fiction, mystery" in prompt
    assert "Current Mood: curious" in prompt
    assert "Themes to Avoid: " + NOT_SPECIFIED in prompt
    assert "Respond in English" in prompt


def test_profile_prompt_is_deterministic(quick_survey):
    assert build_profile_prompt(quick_survey) == build_profile_prompt(quick_survey)


def test_cinema_prompt_uses_films_not_genres(cinema_survey):
    prompt = build_profile_prompt(cinema_survey)

    assert "Favorite Films/Series: Inception, Interstellar" in prompt
    assert "Film Connection: mind-bending plots" in prompt
    assert "Favorite Genres" not in prompt
    assert "cinematic preferences" in prompt


def test_deep_prompt_includes_deep_extras():
    survey = SurveyInput(
        survey_mode="deep",
        favorite_genres=["history"],
        current_mood="calm",
        reading_goal="learn",
        stress_level="low",
        want_to_learn=["economics", "philosophy"],
    )

    prompt = build_profile_prompt(survey)

    assert "Stress Level: low" in prompt
    assert "Learning Interest: economics, philosophy" in prompt
    assert "Book Length Preference: " + NOT_SPECIFIED in prompt


def test_book_inspiration_prompt_lists_books_and_reasons(inspiration_survey, profile):
    prompt = build_curation_prompt(profile, inspiration_survey, 6)

    assert '"Stoner" (why it mattered: a quiet life told with dignity)' in prompt
    assert "Are NOT the favorite books themselves" in prompt


def test_curation_prompt_requests_book_count_and_schema(quick_survey, profile):
    prompt = build_curation_prompt(profile, quick_survey, 5)

    assert "Recommend exactly 5 REAL, EXISTING books" in prompt
    assert '"matchScore": number' in prompt
    assert "Personality Traits: curious, open-minded" in prompt


def test_curation_prompt_language_directive(polish_cinema_survey, profile):
    prompt = build_curation_prompt(profile, polish_cinema_survey, 4, "pl")

    assert "Respond in Polish" in prompt
