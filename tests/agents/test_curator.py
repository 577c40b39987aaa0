"""
Tests for the Curator stage.
"""

import json

import pytest

from booksoul.agents.recommendation.curator import (
    BOOK_COUNT_BY_MODE,
    CURATOR_MAX_TOKENS,
    CURATOR_TEMPERATURE,
    generate_book_candidates,
    get_fallback_book,
    remove_duplicates,
)
from booksoul.agents.recommendation.parser import normalize_book
from booksoul.agents.recommendation.presenter import present_recommendations
from booksoul.services.llm_client import LLMRateLimitError


def books_json(*titles):
    return json.dumps([
        {"title": title, "author": "Some Author", "description": f"About {title}.", "pageCount": 320}
        for title in titles
    ])


@pytest.mark.asyncio
async def test_candidates_are_enriched(quick_survey, profile, fake_llm):
    llm = fake_llm(books_json("Dune", "Emma"))

    candidates = await generate_book_candidates(profile, quick_survey, llm)

    assert [c.title for c in candidates] == ["Dune", "Emma"]
    for book in candidates:
        assert book.id.startswith("ai_book_")
        assert book.cover_url.startswith("https://images.pexels.com/")
        assert "amazon.com" in book.purchase_links.amazon
        assert book.source == "ai_generated"
    assert llm.calls[0]["temperature"] == CURATOR_TEMPERATURE
    assert llm.calls[0]["max_tokens"] == CURATOR_MAX_TOKENS


@pytest.mark.asyncio
async def test_book_count_depends_on_mode(cinema_survey, profile, fake_llm):
    llm = fake_llm(books_json("Solaris"))

    await generate_book_candidates(profile, cinema_survey, llm)

    assert f"Recommend exactly {BOOK_COUNT_BY_MODE['cinema']} REAL" in llm.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_unparsable_answer_yields_single_fallback_book(quick_survey, profile, fake_llm):
    candidates = await generate_book_candidates(profile, quick_survey, fake_llm("no books today"))

    assert len(candidates) == 1
    assert candidates[0].source == "fallback"
    assert candidates[0].title == "The Alchemist"


@pytest.mark.asyncio
async def test_no_valid_books_yields_fallback(quick_survey, profile, fake_llm):
    llm = fake_llm(json.dumps([{"title": "Missing author", "description": "x"}]))

    candidates = await generate_book_candidates(profile, quick_survey, llm)

    assert [c.source for c in candidates] == ["fallback"]


@pytest.mark.asyncio
async def test_fallback_book_is_localized(polish_cinema_survey, profile, fake_llm):
    candidates = await generate_book_candidates(profile, polish_cinema_survey, fake_llm("[]"))

    assert candidates[0].title == "Alchemik"


@pytest.mark.asyncio
async def test_completion_failure_propagates(quick_survey, profile, fake_llm):
    with pytest.raises(LLMRateLimitError):
        await generate_book_candidates(profile, quick_survey, fake_llm(LLMRateLimitError()))


def test_remove_duplicates_is_case_insensitive():
    books = [
        normalize_book({"title": "Dune", "author": "Frank Herbert", "description": "a"}),
        normalize_book({"title": "DUNE", "author": "frank herbert", "description": "b"}),
        normalize_book({"title": "Dune", "author": "Someone Else", "description": "c"}),
    ]

    unique = remove_duplicates(books)

    assert [b.description for b in unique] == ["a", "c"]


@pytest.mark.asyncio
async def test_titles_differing_only_in_punctuation_get_distinct_ids(quick_survey, profile, fake_llm):
    llm = fake_llm(json.dumps([
        {"title": "Dune: Messiah", "author": "Frank Herbert", "description": "a"},
        {"title": "Dune, Messiah", "author": "Frank Herbert", "description": "b"},
        {"title": "Łódź Stories", "author": "Some Author", "description": "c"},
        {"title": "?ódź Stories", "author": "Some Author", "description": "d"},
        {"title": "Emma", "author": "Jane Austen", "description": "e"},
    ]))

    candidates = await generate_book_candidates(profile, quick_survey, llm)
    final = present_recommendations(candidates, profile, quick_survey)

    assert [c.description for c in candidates] == ["a", "c", "e"]
    ids = [book.id for book in final]
    assert len(set(ids)) == len(ids)


def test_fallback_book_satisfies_invariants():
    book = get_fallback_book("en")

    assert 70 <= book.match_score <= 98
    assert 150 <= book.page_count <= 800
    assert len(book.matching_steps) == 3
    assert book.psychological_match.is_complete()
