"""
Presenter - last pipeline stage.

Decides final recommendation cardinality (by survey mode) and guarantees
every display field of FinalRecommendation: id, cover image, purchase
links, localized book details, psychological match and personalized
description.
"""

import logging
import random
import string
import time
from typing import Dict, List

from booksoul.agents.recommendation.evaluator import generate_psychological_match
from booksoul.schemas.recommendations import (
    BookCandidate,
    FinalRecommendation,
    UserProfile,
)
from booksoul.schemas.survey import SurveyInput
from booksoul.utils.books import (
    default_book_details,
    generate_book_details,
    generate_cover_url,
    generate_purchase_links,
)
from booksoul.utils.locale import detect_language, t

logger = logging.getLogger(__name__)

RECOMMENDATION_COUNT_BY_MODE: Dict[str, int] = {
    "quick": 3,
    "cinema": 2,
    "deep": 4,
}
DEFAULT_RECOMMENDATION_COUNT = 3

_ID_ALPHABET = string.ascii_lowercase + string.digits


def recommendation_count_for_mode(mode: str) -> int:
    return RECOMMENDATION_COUNT_BY_MODE.get(mode, DEFAULT_RECOMMENDATION_COUNT)


def generate_recommendation_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"rec_{int(time.time() * 1000)}_{suffix}"


def generate_fallback_description(book: BookCandidate, survey: SurveyInput, language: str) -> str:
    """Localized personalized description built from the survey answers."""
    if survey.survey_mode == "cinema":
        return t(
            language,
            "personalized_cinema",
            films=t(language, "psych_joiner").join(survey.favorite_films[:2]),
            connection=survey.film_connection or t(language, "personalized_cinema_connection_default"),
            description=book.description,
        )

    if survey.survey_mode == "bookInspiration" and survey.favorite_books:
        return t(
            language,
            "personalized_inspiration",
            title=survey.favorite_books[0].title,
            description=book.description,
        )

    kind_key = "personalized_kind_novel" if "fiction" in book.genres else "personalized_kind_book"
    return t(
        language,
        "personalized_genre",
        mood=survey.current_mood or t(language, "personalized_mood_default"),
        goal=survey.reading_goal or t(language, "personalized_goal_default"),
        genres="/".join(book.genres),
        kind=t(language, kind_key),
        description=book.description,
    )


def finalize_book(
    book: BookCandidate,
    profile: UserProfile,
    survey: SurveyInput,
    language: str,
) -> FinalRecommendation:
    data = book.model_dump()
    data.update(
        id=book.id or generate_recommendation_id(),
        cover_url=book.cover_url or generate_cover_url(book.title),
        purchase_links=book.purchase_links or generate_purchase_links(book.title, book.author),
        book_details=generate_book_details(book.page_count, book.complexity, language),
        psychological_match=book.psychological_match or generate_psychological_match(profile, language),
    )
    if not book.personalized_description.strip():
        data["personalized_description"] = generate_fallback_description(book, survey, language)
    return FinalRecommendation.model_validate(data)


def recover_book(
    book: BookCandidate,
    profile: UserProfile,
    survey: SurveyInput,
    language: str,
) -> FinalRecommendation:
    """Rebuild a book from generated defaults after finalize_book failed."""
    data = book.model_dump()
    data.update(
        id=book.id or generate_recommendation_id(),
        cover_url=generate_cover_url(book.title),
        purchase_links=generate_purchase_links(book.title, book.author),
        book_details=default_book_details(language),
        psychological_match=generate_psychological_match(profile, language),
        personalized_description=generate_fallback_description(book, survey, language),
    )
    return FinalRecommendation.model_validate(data)


def present_recommendations(
    candidates: List[BookCandidate],
    profile: UserProfile,
    survey: SurveyInput,
) -> List[FinalRecommendation]:
    """
    Keep the top N for the survey mode and complete every display field.

    A failure on one book is recovered with generated defaults and never
    aborts the batch.
    """
    language = detect_language(survey)
    top_books = candidates[:recommendation_count_for_mode(survey.survey_mode)]

    final = []
    for book in top_books:
        try:
            final.append(finalize_book(book, profile, survey, language))
        except Exception as e:
            logger.warning(f"Presenter: failed to finalize '{book.title}', using defaults ({type(e).__name__})")
            final.append(recover_book(book, profile, survey, language))

    logger.info(f"Presenter: prepared {len(final)} final recommendations")
    return final
