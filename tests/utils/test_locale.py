"""
Tests for reader language detection and localized strings.
"""

from booksoul.schemas.survey import SurveyInput
from booksoul.utils.locale import (
    LOCALE_STRINGS,
    detect_language,
    get_list,
    is_polish_preference,
    polish_score,
    t,
    translate_difficulty,
)


def test_english_survey_detected_as_english(cinema_survey):
    assert detect_language(cinema_survey) == "en"
    assert not is_polish_preference(cinema_survey)


def test_polish_free_text_detected_as_polish(polish_cinema_survey):
    assert detect_language(polish_cinema_survey) == "pl"


def test_polish_book_reason_detected_as_polish():
    survey = SurveyInput(
        survey_mode="bookInspiration",
        favorite_books=[{"title": "Lalka", "reason": "Bardzo lubię klimat tej książki"}],
    )

    assert detect_language(survey) == "pl"


def test_quick_survey_without_free_text_defaults_to_english(quick_survey):
    assert detect_language(quick_survey) == "en"


def test_single_common_word_is_not_enough():
    assert polish_score(["tak"]) == 1
    assert polish_score(["łódź"]) >= 2


def test_every_locale_has_the_same_keys():
    assert set(LOCALE_STRINGS["en"]) == set(LOCALE_STRINGS["pl"])


def test_t_formats_template():
    assert t("en", "step_mood", mood="calm") == "Current mood: calm → Emotionally resonant content"


def test_unknown_language_falls_back_to_english():
    assert t("de", "language_name") == "English"


def test_translate_difficulty():
    assert translate_difficulty("high", "pl") == "Trudna"
    assert translate_difficulty("low", "en") == "low"
    assert translate_difficulty("unknown", "pl") == "Umiarkowana"


def test_get_list_returns_copy():
    formats = get_list("en", "formats")
    formats.append("Scroll")

    assert get_list("en", "formats") == ["Physical", "E-book", "Audiobook"]
