"""
Curator - second pipeline stage.

Asks the LLM for a mode-dependent number of real books matching the
profile, parses them through the response validator and enriches each
survivor with id, cover image and purchase links.

If the answer is unparsable or no candidate survives validation, the
Curator returns exactly one localized static fallback book so the reader
always gets a recommendation. Completion failures propagate.
"""

import logging
from typing import Any, Dict, List, cast

from booksoul.agents.recommendation.parser import (
    AIResponseParseError,
    default_psychological_match,
    fallback_steps,
    parse_book_candidates,
)
from booksoul.agents.recommendation.prompts import (
    CURATOR_SYSTEM_PROMPT,
    build_curation_prompt,
)
from booksoul.schemas.recommendations import BookCandidate, UserProfile
from booksoul.schemas.survey import SurveyInput
from booksoul.services.llm_client import CompletionClient
from booksoul.utils.books import (
    book_key,
    generate_book_id,
    generate_cover_url,
    generate_purchase_links,
)
from booksoul.utils.locale import detect_language, get_strings

logger = logging.getLogger(__name__)

CURATOR_TEMPERATURE = 0.8
CURATOR_MAX_TOKENS = 8000

BOOK_COUNT_BY_MODE: Dict[str, int] = {
    "quick": 5,
    "cinema": 4,
    "deep": 7,
    "bookInspiration": 6,
}
DEFAULT_BOOK_COUNT = 5

AI_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.6


def book_count_for_mode(mode: str) -> int:
    return BOOK_COUNT_BY_MODE.get(mode, DEFAULT_BOOK_COUNT)


def remove_duplicates(candidates: List[BookCandidate]) -> List[BookCandidate]:
    """
    Drop repeated title+author pairs, keeping the first.

    Pairs are compared on the same folded key the book id is built from,
    so "Dune: Messiah" and "Dune, Messiah" count as one book.
    """
    seen = set()
    unique = []
    for book in candidates:
        key = book_key(book.title, book.author)
        if key in seen:
            continue
        seen.add(key)
        unique.append(book)
    return unique


def enrich_candidate(book: BookCandidate) -> BookCandidate:
    return book.model_copy(update={
        "id": generate_book_id(book.title, book.author),
        "cover_url": generate_cover_url(book.title),
        "purchase_links": generate_purchase_links(book.title, book.author),
        "source": "ai_generated",
        "confidence": AI_CONFIDENCE,
    })


def get_fallback_book(language: str) -> BookCandidate:
    """The single static recommendation used when the Curator has nothing."""
    data = cast(Dict[str, Any], get_strings(language)["fallback_book"])
    title, author = data["title"], data["author"]

    return BookCandidate(
        id=generate_book_id(title, author),
        title=title,
        author=author,
        genres=list(data["genres"]),
        description=data["description"],
        personalized_description=data["personalized_description"],
        match_reason=data["match_reason"],
        emotional_tone="light",
        complexity="low",
        page_count=208,
        publication_year=1988,
        themes=list(data["themes"]),
        match_score=80,
        matching_steps=fallback_steps(language),
        psychological_match=default_psychological_match(language),
        cover_url=generate_cover_url(title),
        purchase_links=generate_purchase_links(title, author),
        source="fallback",
        confidence=FALLBACK_CONFIDENCE,
    )


async def generate_book_candidates(
    profile: UserProfile,
    survey: SurveyInput,
    llm_client: CompletionClient,
) -> List[BookCandidate]:
    """
    Generate enriched book candidates for the profile.

    Returns:
        List[BookCandidate]: At least one candidate (the fallback book when
        the LLM answer is unusable)

    Raises:
        LLMServiceError: The completion call failed after retries
    """
    language = detect_language(survey)
    book_count = book_count_for_mode(survey.survey_mode)
    logger.info(f"Curator: requesting {book_count} books (mode={survey.survey_mode}, language={language})")

    prompt = build_curation_prompt(profile, survey, book_count, language)
    response_text = await llm_client.complete(
        prompt,
        temperature=CURATOR_TEMPERATURE,
        max_tokens=CURATOR_MAX_TOKENS,
        system_instruction=CURATOR_SYSTEM_PROMPT,
    )

    try:
        candidates = parse_book_candidates(response_text, language)
    except AIResponseParseError as e:
        logger.error(f"Curator: AI response unparsable, using fallback book ({e})")
        logger.debug(f"Curator raw response: {response_text[:500]}...")
        return [get_fallback_book(language)]

    candidates = remove_duplicates(candidates)
    if not candidates:
        logger.warning("Curator: no valid books in AI response, using fallback book")
        return [get_fallback_book(language)]

    enriched = [enrich_candidate(book) for book in candidates]
    logger.info(f"Curator: generated {len(enriched)} candidates")
    return enriched
