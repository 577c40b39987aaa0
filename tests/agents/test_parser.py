"""
Tests for the LLM response parser/validator.

Covers:
- JSON array extraction (fences, surrounding prose, trailing commas)
- Required-field filtering and the 10-candidate cap
- Field normalisation into BookCandidate invariants
- Profile object parsing
"""

import json
from datetime import datetime

import pytest

from booksoul.agents.recommendation.parser import (
    AIResponseParseError,
    normalize_book,
    parse_book_candidates,
    parse_profile_response,
    validate_book_structure,
    validate_match_score,
    validate_page_count,
    validate_publication_year,
)


def raw_book(**overrides):
    book = {
        "title": "The Name of the Rose",
        "author": "Umberto Eco",
        "genres": ["mystery", "historical"],
        "description": "A murder mystery in a medieval abbey.",
        "personalizedDescription": "A puzzle for a curious mind.",
        "matchReason": "Clever mystery for a curious reader",
        "emotionalTone": "medium",
        "complexity": "high",
        "pageCount": 512,
        "publicationYear": 1980,
        "themes": ["knowledge", "faith"],
        "matchScore": 91,
        "matchingSteps": ["one", "two", "three"],
        "psychologicalMatch": {
            "moodAlignment": "Feeds curiosity",
            "cognitiveMatch": "Rewards analysis",
            "therapeuticValue": "Absorbing escape",
            "personalityFit": "For puzzle lovers",
        },
    }
    book.update(overrides)
    return book


# ============================================================================
# EXTRACTION
# ============================================================================

def test_parses_plain_json_array():
    books = parse_book_candidates(json.dumps([raw_book()]))

    assert len(books) == 1
    assert books[0].title == "The Name of the Rose"
    assert books[0].match_score == 91
    assert books[0].psychological_match.mood_alignment == "Feeds curiosity"


def test_strips_code_fences_and_surrounding_prose():
    text = "Here you go:\n```json\n" + json.dumps([raw_book()]) + "\n```\nEnjoy!"

    books = parse_book_candidates(text)

    assert [b.author for b in books] == ["Umberto Eco"]


def test_tolerates_trailing_commas():
    text = '[{"title": "A", "author": "B", "description": "C",},]'

    books = parse_book_candidates(text)

    assert len(books) == 1


def test_no_array_raises_parse_error():
    with pytest.raises(AIResponseParseError):
        parse_book_candidates("I could not think of any books, sorry.")


def test_invalid_json_raises_parse_error():
    with pytest.raises(AIResponseParseError):
        parse_book_candidates('[{"title": "A", "author": }]')


def test_empty_response_raises_parse_error():
    with pytest.raises(AIResponseParseError):
        parse_book_candidates("   ")


def test_elements_missing_required_fields_are_dropped():
    text = json.dumps([
        raw_book(),
        raw_book(title=""),
        raw_book(author=None),
        {"title": "No description", "author": "X"},
        "not an object",
    ])

    books = parse_book_candidates(text)

    assert len(books) == 1


def test_result_is_capped_at_ten_books():
    text = json.dumps([raw_book(title=f"Book {i}") for i in range(15)])

    books = parse_book_candidates(text)

    assert len(books) == 10
    assert books[0].title == "Book 0"


# ============================================================================
# NORMALISATION
# ============================================================================

@pytest.mark.parametrize("score,expected", [
    (91, 91), (70, 70), (98, 98), (69, 85), (99, 85), ("88", 88), (None, 85), ("high", 85),
])
def test_match_score_range(score, expected):
    assert validate_match_score(score) == expected


@pytest.mark.parametrize("pages,expected", [
    (320, 320), ("320 pages", 320), (149, 300), (801, 300), (None, 300),
])
def test_page_count_range(pages, expected):
    assert validate_page_count(pages) == expected


def test_publication_year_range():
    assert validate_publication_year(1980) == 1980
    assert validate_publication_year(1949) == 2020
    assert validate_publication_year(datetime.now().year + 1) == 2020
    assert validate_publication_year("unknown") == 2020


def test_normalize_fills_defaults_for_minimal_book():
    book = normalize_book({"title": " Dune ", "author": "Frank Herbert", "description": "Desert planet."})

    assert book.title == "Dune"
    assert book.genres == ["fiction"]
    assert book.themes == ["general"]
    assert book.emotional_tone == "medium"
    assert book.complexity == "medium"
    assert book.page_count == 300
    assert book.publication_year == 2020
    assert book.match_score == 85
    assert book.personalized_description == "Desert planet."
    assert book.psychological_match is not None
    assert book.psychological_match.is_complete()


def test_normalize_rejects_unknown_enum_values():
    book = normalize_book(raw_book(emotionalTone="dark", complexity="academic"))

    assert book.emotional_tone == "medium"
    assert book.complexity == "medium"


def test_normalize_caps_genres_and_themes():
    book = normalize_book(raw_book(genres=["a", "b", "c", "d"], themes=["1", "2", "3", "4", "5"]))

    assert book.genres == ["a", "b", "c"]
    assert book.themes == ["1", "2", "3", "4"]


def test_normalize_accepts_single_genre_string():
    book = normalize_book(raw_book(genres=None, genre="poetry"))

    assert book.genres == ["poetry"]


def test_incomplete_psychological_match_replaced_with_default():
    book = normalize_book(raw_book(psychologicalMatch={"moodAlignment": "x"}))

    assert book.psychological_match.mood_alignment.startswith("Complements")


def test_polish_defaults_when_language_is_pl():
    book = normalize_book({"title": "Lalka", "author": "Bolesław Prus", "description": "Powieść."}, "pl")

    assert book.genres == ["beletrystyka"]
    assert book.match_reason == "Pasuje do Twoich preferencji czytelniczych"


def test_validate_book_structure():
    assert validate_book_structure(raw_book())
    assert not validate_book_structure(raw_book(description="   "))
    assert not validate_book_structure(["title"])


# ============================================================================
# PROFILE
# ============================================================================

def test_parse_profile_response_extracts_object():
    text = 'Profile:\n```json\n{"emotionalState": "calm", "personalityTraits": ["a"],}\n```'

    data = parse_profile_response(text)

    assert data == {"emotionalState": "calm", "personalityTraits": ["a"]}


def test_parse_profile_response_without_object_raises():
    with pytest.raises(AIResponseParseError):
        parse_profile_response("no json here")
