"""
LLM response parsing and validation for the recommendation agents.

LLM output is an untrusted external schema. Nothing here deserializes it
straight into the strict records; every field is read from the loosely-typed
JSON, checked and defaulted by normalize_book() so BookCandidate invariants
hold from construction onwards.

Known limitation: the array is located with the first "[" and the last "]" of
the cleaned text. Prose around the JSON that itself contains brackets breaks
the extraction and is reported as an unparsable response.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from booksoul.schemas.recommendations import BookCandidate, PsychologicalMatch
from booksoul.utils.locale import DEFAULT_LANGUAGE, get_list, t

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10
MAX_GENRES = 3
MAX_THEMES = 4

MATCH_SCORE_MIN, MATCH_SCORE_MAX, MATCH_SCORE_DEFAULT = 70, 98, 85
PAGE_COUNT_MIN, PAGE_COUNT_MAX, PAGE_COUNT_DEFAULT = 150, 800, 300
PUBLICATION_YEAR_MIN, PUBLICATION_YEAR_DEFAULT = 1950, 2020

VALID_TONES = ("light", "medium", "heavy")
VALID_COMPLEXITIES = ("low", "medium", "high")
REQUIRED_BOOK_FIELDS = ("title", "author", "description")

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class AIResponseParseError(Exception):
    """The LLM returned text that does not contain the expected JSON."""


# =============================================================================
# FIELD VALIDATORS
# =============================================================================

def _to_int(value: Any) -> Optional[int]:
    """Integer value of a loosely typed field ("320", 320.0, "320 pages")."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else None  # NaN check
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def validate_match_score(score: Any) -> int:
    num = _to_int(score)
    if num is None or num < MATCH_SCORE_MIN or num > MATCH_SCORE_MAX:
        return MATCH_SCORE_DEFAULT
    return num


def validate_emotional_tone(tone: Any) -> str:
    return tone if tone in VALID_TONES else "medium"


def validate_complexity(complexity: Any) -> str:
    return complexity if complexity in VALID_COMPLEXITIES else "medium"


def validate_page_count(page_count: Any) -> int:
    num = _to_int(page_count)
    if num is None or num < PAGE_COUNT_MIN or num > PAGE_COUNT_MAX:
        return PAGE_COUNT_DEFAULT
    return num


def validate_publication_year(year: Any) -> int:
    num = _to_int(year)
    if num is None or num < PUBLICATION_YEAR_MIN or num > datetime.now().year:
        return PUBLICATION_YEAR_DEFAULT
    return num


def _string_list(value: Any, limit: int) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()][:limit]


def _pick(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def validate_book_structure(book: Any) -> bool:
    """A raw book survives only with non-empty string title, author and description."""
    if not isinstance(book, dict):
        return False
    for field in REQUIRED_BOOK_FIELDS:
        value = book.get(field)
        if not isinstance(value, str) or not value.strip():
            logger.warning(f"AI-generated book missing required field: {field}")
            return False
    return True


def default_psychological_match(language: str = DEFAULT_LANGUAGE) -> PsychologicalMatch:
    """Generic psychological match used when the LLM omitted it."""
    return PsychologicalMatch(
        mood_alignment=t(language, "psych_mood", value=t(language, "psych_mood_default")),
        cognitive_match=t(language, "psych_cognitive", value=t(language, "psych_cognitive_default")),
        therapeutic_value=t(language, "psych_therapeutic", value=t(language, "psych_therapeutic_default")),
        personality_fit=t(language, "psych_personality", value=t(language, "psych_personality_default")),
    )


def parse_psychological_match(raw: Any) -> Optional[PsychologicalMatch]:
    """Build a PsychologicalMatch if all four sub-fields are non-empty strings."""
    if not isinstance(raw, dict):
        return None
    values = [
        _pick(raw, "moodAlignment", "mood_alignment"),
        _pick(raw, "cognitiveMatch", "cognitive_match"),
        _pick(raw, "therapeuticValue", "therapeutic_value"),
        _pick(raw, "personalityFit", "personality_fit"),
    ]
    if not all(isinstance(v, str) and v.strip() for v in values):
        return None
    return PsychologicalMatch(
        mood_alignment=values[0].strip(),
        cognitive_match=values[1].strip(),
        therapeutic_value=values[2].strip(),
        personality_fit=values[3].strip(),
    )


def normalize_book(raw: Dict[str, Any], language: str = DEFAULT_LANGUAGE) -> BookCandidate:
    """
    Merge a raw LLM book object with defaults into a BookCandidate.

    Expects validate_book_structure(raw) to be True.
    """
    description = str(raw["description"]).strip()

    genres = _string_list(_pick(raw, "genres", "genre"), MAX_GENRES) or [t(language, "default_genre")]
    themes = _string_list(raw.get("themes"), MAX_THEMES) or [t(language, "default_theme")]
    steps = _string_list(_pick(raw, "matchingSteps", "matching_steps"), 10) or [t(language, "default_step")]

    match_reason = _pick(raw, "matchReason", "match_reason")
    if not isinstance(match_reason, str) or not match_reason.strip():
        match_reason = t(language, "default_match_reason")

    personalized = _pick(raw, "personalizedDescription", "personalized_description")
    if not isinstance(personalized, str) or not personalized.strip():
        personalized = description or t(language, "default_personalized")

    psych = parse_psychological_match(_pick(raw, "psychologicalMatch", "psychological_match"))

    return BookCandidate(
        title=str(raw["title"]).strip(),
        author=str(raw["author"]).strip(),
        genres=genres,
        description=description,
        personalized_description=personalized.strip(),
        match_reason=match_reason.strip(),
        emotional_tone=validate_emotional_tone(_pick(raw, "emotionalTone", "emotional_tone")),
        complexity=validate_complexity(raw.get("complexity")),
        page_count=validate_page_count(_pick(raw, "pageCount", "page_count")),
        publication_year=validate_publication_year(_pick(raw, "publicationYear", "publication_year")),
        themes=themes,
        match_score=validate_match_score(_pick(raw, "matchScore", "match_score")),
        matching_steps=steps,
        psychological_match=psych or default_psychological_match(language),
    )


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _clean_response_text(text: str) -> str:
    cleaned = _CODE_FENCE.sub("", text.strip())
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    # Smart quotes and trailing commas are common LLM JSON mistakes
    cleaned = cleaned.replace("“", '"').replace("”", '"')
    return cleaned


def _load_json_slice(text: str, opener: str, closer: str) -> Any:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end < start:
        raise AIResponseParseError(f"No JSON {'array' if opener == '[' else 'object'} found in response")

    json_string = _TRAILING_COMMA.sub(r"\1", text[start:end + 1])
    try:
        return json.loads(json_string)
    except json.JSONDecodeError as e:
        raise AIResponseParseError(f"Invalid JSON in response: {e}") from e


def parse_book_candidates(
    response_text: Optional[str],
    language: str = DEFAULT_LANGUAGE,
    max_books: int = MAX_CANDIDATES,
) -> List[BookCandidate]:
    """
    Parse the Curator's LLM response into validated BookCandidates.

    Elements missing title/author/description are dropped; the rest are
    normalized and the list is capped to max_books.

    Raises:
        AIResponseParseError: no JSON array in the text, invalid JSON, or
            the JSON is not an array.
    """
    if not response_text or not response_text.strip():
        raise AIResponseParseError("Empty response")

    cleaned = _clean_response_text(response_text)
    logger.debug(f"Attempting to parse JSON: {cleaned[:200]}...")

    books = _load_json_slice(cleaned, "[", "]")
    if not isinstance(books, list):
        raise AIResponseParseError("Response is not an array")

    validated = [
        normalize_book(book, language)
        for book in books
        if validate_book_structure(book)
    ][:max_books]

    logger.info(f"Parsed {len(validated)} valid books out of {len(books)} returned by the AI")
    return validated


def parse_profile_response(response_text: Optional[str]) -> Dict[str, Any]:
    """
    Parse the Profiler's LLM response into a raw dict.

    Raises:
        AIResponseParseError: no JSON object found or invalid JSON.
    """
    if not response_text or not response_text.strip():
        raise AIResponseParseError("Empty response")

    data = _load_json_slice(_clean_response_text(response_text), "{", "}")
    if not isinstance(data, dict):
        raise AIResponseParseError("Profile response is not an object")
    return data


def fallback_steps(language: str = DEFAULT_LANGUAGE) -> List[str]:
    """Generic matching steps (three) for when nothing survey-specific is known."""
    return get_list(language, "step_generic")
