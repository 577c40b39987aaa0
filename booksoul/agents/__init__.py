"""
AI components for the BookSoul backend.

The recommendation pipeline is a fixed chain of five stages, two of which
call Gemini through the shared CompletionClient:

    Profiler (LLM) → Curator (LLM) → Filter → Evaluator → Presenter

It is not an agent framework: each stage is a plain function and the
orchestrator in booksoul/services/recommendation_service.py runs them in
order.
"""

from booksoul.agents.recommendation import (
    AIResponseParseError,
    analyze_profile,
    evaluate_matches,
    filter_books,
    generate_book_candidates,
    parse_book_candidates,
    present_recommendations,
)

__all__ = [
    "analyze_profile",
    "generate_book_candidates",
    "filter_books",
    "evaluate_matches",
    "present_recommendations",
    "parse_book_candidates",
    "AIResponseParseError",
]
