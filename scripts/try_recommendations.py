#!/usr/bin/env python3
"""
Recommendation pipeline local runner

Runs the full five-stage pipeline against the real Gemini API without
starting the HTTP server or touching Supabase (sessions stay in memory).

Usage:
    python scripts/try_recommendations.py
    python scripts/try_recommendations.py --mode cinema --films "Arrival" "Inception" --connection "quiet sci-fi"
    python scripts/try_recommendations.py --suite
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List

from dotenv import load_dotenv

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv()
os.environ.setdefault("VALIDATE_CONFIG", "false")

from booksoul.config import settings  # noqa: E402
from booksoul.schemas.survey import SurveyInput  # noqa: E402
from booksoul.services.llm_client import CompletionClient, LLMServiceError  # noqa: E402
from booksoul.services.recommendation_service import (  # noqa: E402
    GenerationResult,
    RecommendationOrchestrator,
    RecommendationPipelineError,
)
from booksoul.services.session_service import SessionStore  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


SUITE: List[Dict[str, Any]] = [
    {
        "name": "QUICK: curious reader, fiction and mystery",
        "survey": {
            "survey_mode": "quick",
            "favorite_genres": ["fiction", "mystery"],
            "current_mood": "curious",
            "reading_goal": "entertain",
            "action_pace": "moderate",
        },
    },
    {
        "name": "DEEP: stressed reader avoiding violence, short books",
        "survey": {
            "survey_mode": "deep",
            "favorite_genres": ["literary fiction"],
            "current_mood": "tired",
            "reading_goal": "relax",
            "stress_level": "high",
            "triggers": ["violence"],
            "complexity_tolerance": "low",
            "book_length": "short",
        },
    },
    {
        "name": "CINEMA: Polish film connection",
        "survey": {
            "survey_mode": "cinema",
            "favorite_films": ["Ida", "Zimna wojna"],
            "film_connection": "Piękne zdjęcia i cisza, która mówi więcej niż słowa",
        },
    },
    {
        "name": "BOOK INSPIRATION: two favorite books",
        "survey": {
            "survey_mode": "bookInspiration",
            "favorite_books": [
                {"title": "The Remains of the Day", "reason": "restrained, melancholic narrator"},
                {"title": "Stoner", "reason": "a quiet life told with dignity"},
            ],
        },
    },
]


def build_orchestrator() -> RecommendationOrchestrator:
    return RecommendationOrchestrator(
        llm_client=CompletionClient(),
        session_store=SessionStore(None),
        use_optimizations=settings.USE_OPTIMIZATIONS,
    )


def print_result(result: GenerationResult) -> None:
    print("\n" + "=" * 60)
    print(f"SESSION: {result.session_id}  ({result.processing_time_ms} ms, cached={result.cached})")
    print(f"AGENTS:  {' → '.join(result.agents_used)}")
    print("=" * 60)

    for i, book in enumerate(result.recommendations, 1):
        print(f"\n--- Book #{i} ---")
        print(f"  Title:     {book.title}")
        print(f"  Author:    {book.author}")
        print(f"  Score:     {book.match_score}")
        print(f"  Genres:    {', '.join(book.genres)}")
        print(f"  Details:   {book.book_details.length}, {book.book_details.reading_time}")
        print(f"  Why:       {book.personalized_description}")
        for step in book.matching_steps:
            print(f"    • {step}")


async def run_survey(orchestrator: RecommendationOrchestrator, survey_data: Dict[str, Any]) -> bool:
    survey = SurveyInput.model_validate({**survey_data, "data_consent": True})
    print(f"\nMode: {survey.survey_mode}. Calling Gemini ({settings.GEMINI_MODEL})...")

    try:
        result = await orchestrator.generate(survey)
    except LLMServiceError as e:
        print(f"\n❌ AI service failure ({e.kind}): {e.message}")
        return False
    except RecommendationPipelineError as e:
        print(f"\n❌ Pipeline failure: {e}")
        return False

    print_result(result)
    return True


async def run_suite(orchestrator: RecommendationOrchestrator) -> None:
    passed = 0
    for i, case in enumerate(SUITE, 1):
        print(f"\n\n{'#' * 70}")
        print(f"# RUN {i}/{len(SUITE)}: {case['name']}")
        print(f"{'#' * 70}")
        if await run_survey(orchestrator, case["survey"]):
            passed += 1

        # Delay between runs to avoid rate limits
        await asyncio.sleep(2)

    print("\n" + "=" * 70)
    print(f"Total: {len(SUITE)} | Succeeded: {passed} | Failed: {len(SUITE) - passed}")
    print("=" * 70)


def main():
    parser = argparse.ArgumentParser(description="Run the recommendation pipeline locally")
    parser.add_argument("--mode", choices=["quick", "deep", "cinema", "bookInspiration"], default="quick")
    parser.add_argument("--genres", nargs="*", default=["fiction"])
    parser.add_argument("--mood", default="curious")
    parser.add_argument("--goal", default="entertain")
    parser.add_argument("--films", nargs="*", default=[])
    parser.add_argument("--connection", default=None, help="What connects the films (cinema mode)")
    parser.add_argument("--books", nargs="*", default=[], help="Favorite book titles (bookInspiration mode)")
    parser.add_argument("--suite", action="store_true", help="Run one survey per mode")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if not settings.is_llm_configured():
        print("\n⚠️  ERROR: GOOGLE_API_KEY environment variable not set!")
        print("   Get your API key at: https://aistudio.google.com/app/apikey")
        sys.exit(1)

    orchestrator = build_orchestrator()

    if args.suite:
        asyncio.run(run_suite(orchestrator))
        return

    survey_data: Dict[str, Any] = {"survey_mode": args.mode}
    if args.mode == "cinema":
        survey_data.update(favorite_films=args.films, film_connection=args.connection)
    elif args.mode == "bookInspiration":
        survey_data["favorite_books"] = [{"title": title, "reason": ""} for title in args.books]
    else:
        survey_data.update(
            favorite_genres=args.genres,
            current_mood=args.mood,
            reading_goal=args.goal,
            stress_level="medium" if args.mode == "deep" else None,
        )

    ok = asyncio.run(run_survey(orchestrator, survey_data))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
