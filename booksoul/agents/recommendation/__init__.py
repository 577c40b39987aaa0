"""
Book Recommendation Pipeline - five named stages

Profiler → Curator → Filter → Evaluator → Presenter

- Profiler and Curator each make one Gemini call (via CompletionClient)
  and parse the JSON answer with the response validator in parser.py.
- Filter, Evaluator and Presenter are pure local transforms.

The stages are plain functions composed by the orchestrator in:
- booksoul/services/recommendation_service.py

Prompt templates are in:
- booksoul/agents/recommendation/prompts.py
"""

from booksoul.agents.recommendation.content_filter import filter_books
from booksoul.agents.recommendation.curator import generate_book_candidates
from booksoul.agents.recommendation.evaluator import evaluate_matches
from booksoul.agents.recommendation.parser import (
    AIResponseParseError,
    parse_book_candidates,
)
from booksoul.agents.recommendation.presenter import present_recommendations
from booksoul.agents.recommendation.profiler import analyze_profile

__all__ = [
    "analyze_profile",
    "generate_book_candidates",
    "filter_books",
    "evaluate_matches",
    "present_recommendations",
    "parse_book_candidates",
    "AIResponseParseError",
]
