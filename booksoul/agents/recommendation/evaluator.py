"""
Evaluator - fourth pipeline stage.

Validates (never regenerates) what the Curator produced: match score,
matching steps and the psychological-match block. Missing pieces are built
from the survey and profile with localized templates. The result is sorted
by match score, descending and stable.
"""

import logging
from typing import Any, Dict, List

from booksoul.agents.recommendation.parser import validate_match_score
from booksoul.schemas.recommendations import (
    BookCandidate,
    PsychologicalMatch,
    UserProfile,
)
from booksoul.schemas.survey import SurveyInput
from booksoul.utils.locale import detect_language, get_list, t

logger = logging.getLogger(__name__)

MIN_MATCHING_STEPS = 3


def generate_matching_steps(survey: SurveyInput, language: str) -> List[str]:
    """Mode-specific "why it matches" steps, padded to at least three."""
    steps: List[str] = []

    if survey.survey_mode == "cinema":
        if survey.favorite_films:
            steps.append(t(language, "step_films", films=", ".join(survey.favorite_films[:2])))
        if survey.film_connection:
            steps.append(t(language, "step_film_connection", connection=survey.film_connection))
        steps.append(t(language, "step_adaptation"))
    elif survey.survey_mode == "bookInspiration":
        for book in survey.favorite_books[:2]:
            steps.append(t(language, "step_favorite_book", title=book.title))
    else:
        if survey.current_mood:
            steps.append(t(language, "step_mood", mood=survey.current_mood))
        if survey.reading_goal:
            steps.append(t(language, "step_goal", goal=survey.reading_goal))
        if survey.favorite_genres:
            steps.append(t(language, "step_genres", genres=", ".join(survey.favorite_genres[:2])))
        if survey.action_pace:
            steps.append(t(language, "step_pace", pace=survey.action_pace))

    for generic in get_list(language, "step_generic"):
        if len(steps) >= MIN_MATCHING_STEPS:
            break
        steps.append(generic)
    return steps


def generate_psychological_match(profile: UserProfile, language: str) -> PsychologicalMatch:
    """Psychological-match block phrased from the reader's profile."""
    traits = t(language, "psych_joiner").join(profile.personality_traits)
    return PsychologicalMatch(
        mood_alignment=t(language, "psych_mood", value=profile.emotional_state or t(language, "psych_mood_default")),
        cognitive_match=t(language, "psych_cognitive", value=profile.cognitive_style or t(language, "psych_cognitive_default")),
        therapeutic_value=t(language, "psych_therapeutic", value=profile.reading_motivation or t(language, "psych_therapeutic_default")),
        personality_fit=t(language, "psych_personality", value=traits or t(language, "psych_personality_default")),
    )


def evaluate_candidate(
    book: BookCandidate,
    profile: UserProfile,
    survey: SurveyInput,
    language: str,
) -> BookCandidate:
    update: Dict[str, Any] = {"match_score": validate_match_score(book.match_score)}

    if len(book.matching_steps) < MIN_MATCHING_STEPS:
        update["matching_steps"] = generate_matching_steps(survey, language)

    if book.psychological_match is None or not book.psychological_match.is_complete():
        update["psychological_match"] = generate_psychological_match(profile, language)

    return book.model_copy(update=update)


def evaluate_matches(
    candidates: List[BookCandidate],
    profile: UserProfile,
    survey: SurveyInput,
) -> List[BookCandidate]:
    """
    Validate every candidate and sort by match score (descending, stable).

    A failure on one candidate is recovered with generated defaults and
    never aborts the batch.
    """
    logger.info(f"Evaluator: evaluating {len(candidates)} books")
    language = detect_language(survey)

    evaluated = []
    for book in candidates:
        try:
            evaluated.append(evaluate_candidate(book, profile, survey, language))
        except Exception as e:
            logger.warning(f"Evaluator: failed to evaluate '{book.title}', using defaults ({type(e).__name__})")
            evaluated.append(book.model_copy(update={
                "match_score": validate_match_score(None),
                "matching_steps": generate_matching_steps(survey, language),
                "psychological_match": generate_psychological_match(profile, language),
            }))

    # sorted() is stable: equal scores keep their input order
    evaluated = sorted(evaluated, key=lambda book: book.match_score, reverse=True)

    top_score = evaluated[0].match_score if evaluated else 0
    logger.info(f"Evaluator: evaluation complete, top score: {top_score}")
    return evaluated
