"""
Filter - third pipeline stage.

Four local, sequential filters: triggers, complexity, length, availability.
Each one may shrink the list but never reorders it, and none of them raise.
Filtering is advisory: the orchestrator reverts to the unfiltered list when
everything is removed.
"""

import logging
from datetime import datetime
from typing import Dict, List

from booksoul.schemas.recommendations import BookCandidate
from booksoul.schemas.survey import SurveyInput

logger = logging.getLogger(__name__)

TRIGGER_KEYWORDS: Dict[str, List[str]] = {
    "violence": ["violence", "violent", "murder", "killing", "war", "battle", "fight"],
    "sexual": ["sexual", "sex", "erotic", "romance", "intimate"],
    "death": ["death", "dying", "suicide", "grief", "loss", "funeral"],
    "mental": ["depression", "anxiety", "mental illness", "therapy", "psychiatric"],
    "addiction": ["addiction", "drugs", "alcohol", "substance abuse"],
    "abuse": ["abuse", "domestic violence", "trauma", "assault"],
    "war": ["war", "military", "combat", "battlefield", "conflict"],
}

COMPLEXITY_ORDER = ["low", "medium", "high", "academic"]

MAX_BOOK_AGE_YEARS = 100


def get_trigger_keywords(triggers: List[str]) -> List[str]:
    """Expand trigger tags into keywords; unknown tags contribute nothing."""
    keywords: List[str] = []
    for trigger in triggers:
        keywords.extend(TRIGGER_KEYWORDS.get(trigger.lower(), []))
    return keywords


def apply_content_filters(books: List[BookCandidate], survey: SurveyInput) -> List[BookCandidate]:
    if not survey.triggers:
        return books

    keywords = get_trigger_keywords(survey.triggers)
    if not keywords:
        return books

    kept = []
    for book in books:
        content = " ".join([book.description, *book.themes, *book.genres]).lower()
        hit = next((keyword for keyword in keywords if keyword in content), None)
        if hit:
            logger.debug(f"Filter: removed '{book.title}' due to trigger keyword '{hit}'")
            continue
        kept.append(book)
    return kept


def apply_difficulty_filters(books: List[BookCandidate], survey: SurveyInput) -> List[BookCandidate]:
    tolerance = (survey.complexity_tolerance or "").lower()
    if tolerance not in COMPLEXITY_ORDER:
        return books

    allowed = COMPLEXITY_ORDER.index(tolerance)
    if survey.survey_mode == "deep":
        allowed += 1

    kept = []
    for book in books:
        if COMPLEXITY_ORDER.index(book.complexity) <= allowed:
            kept.append(book)
        else:
            logger.debug(f"Filter: removed '{book.title}' due to complexity {book.complexity} > {tolerance}")
    return kept


def _fits_length(page_count: int, preference: str) -> bool:
    if preference == "short":
        return page_count <= 250
    if preference == "medium":
        return 150 <= page_count <= 450
    if preference == "long":
        return page_count >= 350
    return True


def apply_length_filters(books: List[BookCandidate], survey: SurveyInput) -> List[BookCandidate]:
    preference = (survey.book_length or "").lower()
    if not preference or preference == "any":
        return books

    kept = []
    for book in books:
        if _fits_length(book.page_count, preference):
            kept.append(book)
        else:
            logger.debug(f"Filter: removed '{book.title}' due to length {book.page_count} pages ({preference})")
    return kept


def apply_availability_filters(books: List[BookCandidate]) -> List[BookCandidate]:
    current_year = datetime.now().year

    kept = []
    for book in books:
        year = book.publication_year
        if year is None or current_year - MAX_BOOK_AGE_YEARS <= year <= current_year:
            kept.append(book)
        else:
            logger.debug(f"Filter: removed '{book.title}' due to publication year {year}")
    return kept


def filter_books(candidates: List[BookCandidate], survey: SurveyInput) -> List[BookCandidate]:
    """Apply the trigger, complexity, length and availability filters in order."""
    logger.info(f"Filter: filtering {len(candidates)} candidates")

    books = apply_content_filters(list(candidates), survey)
    books = apply_difficulty_filters(books, survey)
    books = apply_length_filters(books, survey)
    books = apply_availability_filters(books)

    logger.info(f"Filter: {len(books)} books passed filters")
    return books
