"""
Profiler - first pipeline stage.

Turns survey answers into a UserProfile with one low-temperature LLM call.
Completion failures (LLMServiceError) propagate to the orchestrator; an
unparsable answer falls back to a rule-based profile built from the survey
mode and the raw mood/goal/pace strings.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from booksoul.agents.recommendation.parser import (
    AIResponseParseError,
    parse_profile_response,
)
from booksoul.agents.recommendation.prompts import (
    PROFILER_SYSTEM_PROMPT,
    build_profile_prompt,
)
from booksoul.schemas.recommendations import UserProfile
from booksoul.schemas.survey import SurveyInput
from booksoul.services.llm_client import CompletionClient
from booksoul.utils.locale import detect_language

logger = logging.getLogger(__name__)

PROFILER_TEMPERATURE = 0.3
PROFILER_MAX_TOKENS = 800

BASE_CONFIDENCE = 0.5
CONFIDENCE_PER_FIELD = 0.05
MAX_FIELD_BONUS = 0.3
MODE_BONUS = 0.1
MAX_CONFIDENCE = 0.95

_LEVELS = ("low", "medium", "high")


def calculate_confidence(survey: SurveyInput) -> float:
    """0.5 + 0.05 per non-empty field (max +0.3) + mode bonus, capped at 0.95."""
    data_points = sum(1 for value in survey.model_dump().values() if value)
    confidence = BASE_CONFIDENCE + min(data_points * CONFIDENCE_PER_FIELD, MAX_FIELD_BONUS)

    if survey.survey_mode == "deep":
        confidence += MODE_BONUS
    if survey.survey_mode == "cinema" and len(survey.favorite_films) >= 2:
        confidence += MODE_BONUS

    return round(min(confidence, MAX_CONFIDENCE), 4)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _level(value: Any) -> str:
    return value if value in _LEVELS else "medium"


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _traits(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, str) and item.strip()][:6]


def get_fallback_profile(survey: SurveyInput) -> UserProfile:
    """Rule-based profile used when the LLM answer cannot be parsed."""
    if survey.survey_mode == "cinema":
        return UserProfile(
            emotional_state="Seeking cinematic storytelling experience",
            cognitive_style="Visual and narrative-driven",
            personality_traits=["cinephile", "story-focused", "emotionally engaged"],
            reading_motivation="Finding books that capture film-like experiences",
            therapeutic_needs="Escapism through immersive narratives",
            preferred_narrative_style="Cinematic and visual",
            complexity_level="medium",
            emotional_tolerance="medium",
            confidence=0.6,
            survey_mode=survey.survey_mode,
            generated_at=_now(),
            source="fallback",
        )

    return UserProfile(
        emotional_state=survey.current_mood or "neutral",
        cognitive_style="balanced",
        personality_traits=["curious", "open-minded"],
        reading_motivation=survey.reading_goal or "entertainment",
        therapeutic_needs="moderate",
        preferred_narrative_style=survey.action_pace or "moderate",
        complexity_level=_level(survey.complexity_tolerance),
        emotional_tolerance="medium",
        confidence=0.7,
        survey_mode=survey.survey_mode,
        generated_at=_now(),
        source="fallback",
    )


def build_profile(data: Dict[str, Any], survey: SurveyInput) -> UserProfile:
    """Merge a parsed LLM profile object with defaults."""
    return UserProfile(
        emotional_state=_text(data.get("emotionalState"), survey.current_mood or "neutral"),
        cognitive_style=_text(data.get("cognitiveStyle"), "balanced"),
        personality_traits=_traits(data.get("personalityTraits")),
        reading_motivation=_text(data.get("readingMotivation"), survey.reading_goal or "entertainment"),
        therapeutic_needs=_text(data.get("therapeuticNeeds"), "moderate"),
        preferred_narrative_style=_text(data.get("preferredNarrativeStyle"), survey.action_pace or "balanced"),
        complexity_level=_level(data.get("complexityLevel")),
        emotional_tolerance=_level(data.get("emotionalTolerance")),
        confidence=calculate_confidence(survey),
        survey_mode=survey.survey_mode,
        generated_at=_now(),
        source="ai",
    )


async def analyze_profile(survey: SurveyInput, llm_client: CompletionClient) -> UserProfile:
    """
    Build the reader's psychological profile.

    Raises:
        LLMServiceError: The completion call failed after retries
    """
    logger.info(f"Profiler: analyzing profile (mode={survey.survey_mode})")

    prompt = build_profile_prompt(survey, detect_language(survey))
    response_text = await llm_client.complete(
        prompt,
        temperature=PROFILER_TEMPERATURE,
        max_tokens=PROFILER_MAX_TOKENS,
        system_instruction=PROFILER_SYSTEM_PROMPT,
    )

    try:
        profile = build_profile(parse_profile_response(response_text), survey)
    except AIResponseParseError as e:
        logger.warning(f"Profiler: failed to parse AI response, using fallback ({e})")
        return get_fallback_profile(survey)

    logger.info(f"Profiler: profile analysis complete (confidence={profile.confidence})")
    return profile
