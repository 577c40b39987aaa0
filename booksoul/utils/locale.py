"""
Reader language detection and localized strings.

The survey UI is bilingual (English / Polish) but does not send a language
tag, so the language is inferred from the free-text answers. Every
user-facing string produced by the backend (prompt language directive,
fallback book, generated matching steps, book details) comes from
LOCALE_STRINGS; agents never inline literals.
"""

import logging
import re
from typing import Dict, Iterable, List, cast

from booksoul.schemas.survey import SurveyInput

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "pl")

_POLISH_DIACRITICS = re.compile(r"[ąćęłńóśźż]", re.IGNORECASE)
_POLISH_WORDS = re.compile(
    r"\b(się|jest|dla|czy|jak|gdzie|kiedy|dlaczego|bardzo|tylko|może|będzie|"
    r"można|przez|oraz|także|jednak|również|ponieważ|dlatego|żeby|aby|jeśli|"
    r"chociaż|który|która|które|tego|jego|jej|ich|ten|mnie|"
    r"książka|książki|książkę|bohater|historia|świat|życie|miłość|ale|lubię|"
    r"podoba|klimat|nie|tak|że)\b",
    re.IGNORECASE,
)

# Minimum score before we switch to Polish: one diacritic is worth two points,
# one common word is worth one.
POLISH_SCORE_THRESHOLD = 2


def _survey_free_text(survey: SurveyInput) -> List[str]:
    texts: List[str] = []
    if survey.film_connection:
        texts.append(survey.film_connection)
    if survey.favorite_authors:
        texts.append(survey.favorite_authors)
    texts.extend(survey.favorite_films)
    for book in survey.favorite_books:
        texts.append(book.title)
        if book.reason:
            texts.append(book.reason)
    return texts


def polish_score(texts: Iterable[str]) -> int:
    """Score how Polish a set of strings looks."""
    score = 0
    for text in texts:
        score += 2 * len(_POLISH_DIACRITICS.findall(text))
        score += len(_POLISH_WORDS.findall(text))
    return score


def is_polish_preference(survey: SurveyInput) -> bool:
    """True when the reader wrote their free-text answers in Polish."""
    texts = _survey_free_text(survey)
    return polish_score(texts) >= POLISH_SCORE_THRESHOLD


def detect_language(survey: SurveyInput) -> str:
    """Return the locale tag ("pl" or "en") used for all generated text."""
    language = "pl" if is_polish_preference(survey) else DEFAULT_LANGUAGE
    logger.debug(
        f"Language detection: {language} "
        f"(based on {len(_survey_free_text(survey))} text fields)"
    )
    return language


LOCALE_STRINGS: Dict[str, Dict[str, object]] = {
    "en": {
        "language_name": "English",
        # Book details
        "length_short": "Short",
        "length_medium": "Medium",
        "length_long": "Long",
        "length_format": "{label} ({pages} pages)",
        "reading_time_short": "2-4 hours",
        "reading_time_medium": "4-6 hours",
        "reading_time_long": "8-12 hours",
        "formats": ["Physical", "E-book", "Audiobook"],
        "difficulty": {"low": "low", "medium": "medium", "high": "high"},
        # Matching steps
        "step_films": "Film preferences: {films} → Similar narrative style",
        "step_film_connection": "Connection: \"{connection}\" → Matching thematic elements",
        "step_adaptation": "Screen-to-page analysis → Cinematic storytelling potential",
        "step_mood": "Current mood: {mood} → Emotionally resonant content",
        "step_goal": "Reading goal: {goal} → Aligned purpose and themes",
        "step_genres": "Genre preference: {genres} → Strong genre match",
        "step_pace": "Preferred pace: {pace} → Comfortable narrative rhythm",
        "step_favorite_book": "You loved \"{title}\" → Kindred themes and atmosphere",
        "step_generic": [
            "General compatibility with your reading preferences",
            "Themes that fit your current reading profile",
            "Well-regarded book with broad reader appeal",
        ],
        # Psychological match
        "psych_mood": "Complements your {value}",
        "psych_cognitive": "Matches your {value} preferences",
        "psych_therapeutic": "Supports your {value}",
        "psych_personality": "Appeals to {value} traits",
        "psych_mood_default": "current emotional state",
        "psych_cognitive_default": "cognitive",
        "psych_therapeutic_default": "reading goals",
        "psych_personality_default": "your personality",
        "psych_joiner": " and ",
        # Parser defaults
        "default_match_reason": "Matches your reading preferences",
        "default_theme": "general",
        "default_genre": "fiction",
        "default_step": "Matches your reading preferences",
        "default_personalized": "A great book recommendation for you.",
        # Presenter fallback descriptions
        "personalized_cinema": "Based on your love for {films}, this book captures the same {connection} that draws you to great cinema. {description}",
        "personalized_cinema_connection_default": "compelling storytelling",
        "personalized_genre": "Perfect for your {mood} mood and {goal}, this {genres} {kind} offers exactly what you're seeking. {description}",
        "personalized_mood_default": "current",
        "personalized_goal_default": "reading goals",
        "personalized_kind_novel": "novel",
        "personalized_kind_book": "book",
        "personalized_inspiration": "Because \"{title}\" meant so much to you, this book offers a similar experience. {description}",
        # Static fallback book
        "fallback_book": {
            "title": "The Alchemist",
            "author": "Paulo Coelho",
            "genres": ["fiction", "philosophical"],
            "description": "A young shepherd travels from Spain to the Egyptian desert in search of treasure and discovers the importance of listening to his heart.",
            "personalized_description": "A gentle, hopeful story about following your own path, a safe choice for almost any mood.",
            "match_reason": "A widely loved, accessible novel chosen while personalised suggestions were unavailable",
            "themes": ["self-discovery", "destiny", "journey"],
        },
    },
    "pl": {
        "language_name": "Polish",
        "length_short": "Krótka",
        "length_medium": "Średnia",
        "length_long": "Długa",
        "length_format": "{label} ({pages} stron)",
        "reading_time_short": "2-4 godziny",
        "reading_time_medium": "4-6 godzin",
        "reading_time_long": "8-12 godzin",
        "formats": ["Fizyczna", "E-book", "Audiobook"],
        "difficulty": {"low": "Łatwa", "medium": "Umiarkowana", "high": "Trudna"},
        "step_films": "Ulubione filmy: {films} → Podobny styl narracji",
        "step_film_connection": "Łączy je: \"{connection}\" → Pasujące motywy",
        "step_adaptation": "Analiza ekran-książka → Filmowy sposób opowiadania",
        "step_mood": "Obecny nastrój: {mood} → Treść, która z nim rezonuje",
        "step_goal": "Cel czytania: {goal} → Zgodne motywy i przesłanie",
        "step_genres": "Ulubione gatunki: {genres} → Trafny wybór gatunkowy",
        "step_pace": "Preferowane tempo: {pace} → Wygodny rytm narracji",
        "step_favorite_book": "Pokochałeś \"{title}\" → Pokrewne motywy i klimat",
        "step_generic": [
            "Ogólna zgodność z Twoimi preferencjami czytelniczymi",
            "Motywy pasujące do Twojego profilu czytelnika",
            "Ceniona książka o szerokim gronie czytelników",
        ],
        "psych_mood": "Dopełnia Twój stan: {value}",
        "psych_cognitive": "Pasuje do Twojego stylu: {value}",
        "psych_therapeutic": "Wspiera Twoją motywację: {value}",
        "psych_personality": "Przemawia do cech: {value}",
        "psych_mood_default": "obecny nastrój",
        "psych_cognitive_default": "poznawczy",
        "psych_therapeutic_default": "cele czytelnicze",
        "psych_personality_default": "Twoja osobowość",
        "psych_joiner": " i ",
        "default_match_reason": "Pasuje do Twoich preferencji czytelniczych",
        "default_theme": "ogólne",
        "default_genre": "beletrystyka",
        "default_step": "Pasuje do Twoich preferencji czytelniczych",
        "default_personalized": "Świetna propozycja książki dla Ciebie.",
        "personalized_cinema": "Skoro kochasz {films}, ta książka odda ten sam {connection}, który przyciąga Cię do kina. {description}",
        "personalized_cinema_connection_default": "wciągający sposób opowiadania",
        "personalized_genre": "Idealna na Twój nastrój ({mood}) i cel ({goal}): {genres} {kind}, która daje dokładnie to, czego szukasz. {description}",
        "personalized_mood_default": "obecny",
        "personalized_goal_default": "cele czytelnicze",
        "personalized_kind_novel": "powieść",
        "personalized_kind_book": "książka",
        "personalized_inspiration": "Ponieważ \"{title}\" tak wiele dla Ciebie znaczyła, ta książka oferuje podobne doświadczenie. {description}",
        "fallback_book": {
            "title": "Alchemik",
            "author": "Paulo Coelho",
            "genres": ["beletrystyka", "filozoficzna"],
            "description": "Młody pasterz wyrusza z Hiszpanii na egipską pustynię w poszukiwaniu skarbu i odkrywa, jak ważne jest słuchanie własnego serca.",
            "personalized_description": "Ciepła, pełna nadziei opowieść o podążaniu własną drogą, bezpieczny wybór na niemal każdy nastrój.",
            "match_reason": "Powszechnie lubiana, przystępna powieść wybrana, gdy spersonalizowane propozycje były niedostępne",
            "themes": ["odkrywanie siebie", "przeznaczenie", "podróż"],
        },
    },
}


def get_strings(language: str) -> Dict[str, object]:
    """Return the string table for a locale tag, falling back to English."""
    return LOCALE_STRINGS.get(language, LOCALE_STRINGS[DEFAULT_LANGUAGE])


def t(language: str, key: str, **kwargs: object) -> str:
    """Format a localized template."""
    template = get_strings(language)[key]
    if not isinstance(template, str):
        raise TypeError(f"Locale key '{key}' is not a string template")
    return template.format(**kwargs) if kwargs else template


def translate_difficulty(complexity: str, language: str) -> str:
    """Translate a complexity level into the reader's language."""
    table = cast(Dict[str, str], get_strings(language)["difficulty"])
    return table.get(complexity, table["medium"])


def get_list(language: str, key: str) -> List[str]:
    """Return a localized list value (formats, generic steps)."""
    return list(cast(List[str], get_strings(language)[key]))
